"""What failure can look like when talking to the Slack Web API."""

NOT_IN_CHANNEL = "not_in_channel"
UNAUTHENTICATED = {"invalid_auth", "not_authed"}


class SlackError(Exception):
    """Base class for every unexceptional Slack failure."""


class APIRequestFailed(SlackError):
    """The request never produced a usable response (network, timeout, decode)."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Slack API request failed: {detail}")


class APIProtocolError(APIRequestFailed):
    """Slack answered, but not in the ``ok``/``error`` shape we expect."""


class APIResponseError(SlackError):
    """Slack answered ``ok: false`` with an error code."""

    def __init__(self, error: str):
        self.error = error
        super().__init__(f"Slack API returned error: {error}")

    @property
    def is_not_in_channel(self) -> bool:
        return self.error == NOT_IN_CHANNEL

    @property
    def is_unauthenticated(self) -> bool:
        return self.error in UNAUTHENTICATED


class UnknownChannel(SlackError):
    """The channel is absent from a complete, fresh channel directory."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Unknown Slack channel: {channel}")
