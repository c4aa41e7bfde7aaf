"""Helpers around Slack's use of OAuth bearer authentication."""


class SlackAccessToken:
    """Opaque wrapper so the raw token never ends up in logs or reprs."""

    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    def __repr__(self) -> str:
        return "SlackAccessToken(<redacted>)"

    __str__ = __repr__

    def __eq__(self, other) -> bool:
        return isinstance(other, SlackAccessToken) and other.value == self.value

    def __hash__(self) -> int:
        return hash(self.value)

    def auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.value}"}
