"""
Support a limited set of Heroku webhook events, forwarding them onto a
messaging platform.

Webhooks are created on Heroku's side with Mercury's ``/api/v1/heroku/hook``
endpoint as the target. The ``platform`` query param picks the destination,
e.g. ``?platform=slack&channel=playground``. Events can be filtered by
choosing entity types (``api:release``, ``dyno``) when creating the webhook.

Payloads are barely documented; see
https://devcenter.heroku.com/articles/app-webhooks#receiving-webhooks
Only the fields used here are validated, everything else is ignored.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Literal, Optional, Union

from pydantic import BaseModel, StrictStr, ValidationError, conint

from mercury.heroku.dashboard import activity_page_url
from mercury.heroku.platform import Platform
from mercury.slack import Message, SlackAccessToken, SlackClient, post_message

logger = logging.getLogger(__name__)

# There's no indication these descriptions are stable on Heroku's side.
ROLLBACK_RE = re.compile(r"Rollback to (?P<version>.+)")
ENV_VARS_RE = re.compile(r"(?P<change>.+) config vars")


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class AppData(BaseModel):
    name: StrictStr


class UserData(BaseModel):
    email: Optional[StrictStr] = None


class ReleaseData(BaseModel):
    app: AppData
    description: StrictStr
    user: Optional[UserData] = None


class ReleasePayload(BaseModel):
    """The ``api:release`` entity.

    Several payloads fire per release (e.g. "create" then "update"); only the
    "update" one carries the final description.
    https://help.heroku.com/JP3QR5I5/why-am-i-receiving-2-web-hook-events-for-a-single-release
    """

    resource: Literal["release"] = "release"
    action: Optional[StrictStr] = None
    data: ReleaseData


class DynoData(BaseModel):
    app: AppData
    name: StrictStr
    type: StrictStr
    state: StrictStr
    # Absent or null for anything but exits.
    exit_status: Optional[conint(strict=True, ge=0, le=255)] = None


class DynoPayload(BaseModel):
    """The ``dyno`` entity (not ``api:dyno``)."""

    resource: Literal["dyno"]
    action: Optional[StrictStr] = None
    data: DynoData


HookPayload = Union[ReleasePayload, DynoPayload]

_PAYLOAD_TYPES: dict[str, type[BaseModel]] = {
    "release": ReleasePayload,
    "dyno": DynoPayload,
}


class WebhookDecodeError(Exception):
    """The body is not a payload we can read. Carries the HTTP status to use."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def parse_payload(body: bytes) -> Optional[HookPayload]:
    """
    Parse a raw webhook body. Returns None for resource types we don't handle.

    Payloads predating the ``resource`` field are treated as releases.
    """
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise WebhookDecodeError(400, "Request body is not valid JSON") from exc

    if not isinstance(raw, dict):
        raise WebhookDecodeError(422, "Webhook payload must be a JSON object")

    resource = raw.get("resource", "release")
    if not isinstance(resource, str):
        raise WebhookDecodeError(422, "Webhook payload field 'resource' must be a string")

    model = _PAYLOAD_TYPES.get(resource)
    if model is None:
        return None

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        err = exc.errors()[0]
        loc = ".".join(str(p) for p in err["loc"])
        raise WebhookDecodeError(422, f"Invalid webhook payload: {loc}: {err['msg']}") from exc


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rollback:
    version: str


@dataclass(frozen=True)
class EnvVarsChange:
    raw_change: str


@dataclass(frozen=True)
class DynoCrash:
    name: str
    status_code: int


HookEvent = Union[Rollback, EnvVarsChange, DynoCrash]


@dataclass(frozen=True)
class IgnoredAction:
    reason: str


@dataclass(frozen=True)
class UnsupportedEvent:
    description: str


@dataclass(frozen=True)
class Delivered:
    event: HookEvent


ForwardResult = Union[IgnoredAction, UnsupportedEvent, Delivered]


def decode_release_description(description: str) -> Union[HookEvent, UnsupportedEvent]:
    """Rollbacks are tried before env var changes; anything else is unsupported."""
    m = ROLLBACK_RE.fullmatch(description)
    if m:
        return Rollback(version=m.group("version"))

    m = ENV_VARS_RE.fullmatch(description)
    if m:
        return EnvVarsChange(raw_change=m.group("change"))

    return UnsupportedEvent(description=description)


def dyno_crash_status(data: DynoData) -> Optional[int]:
    """Exit status of a relevant crash, or None. One-off ``run`` dynos are ignored."""
    code = data.exit_status
    if code is not None and code > 0 and data.type != "run" and data.state == "crashed":
        return code
    return None


def decode_event(payload: Optional[HookPayload]) -> Union[HookEvent, IgnoredAction, UnsupportedEvent]:
    if payload is None:
        return IgnoredAction("unsupported resource")

    if isinstance(payload, ReleasePayload):
        if payload.action != "update":
            return IgnoredAction(f"release action {payload.action!r}")
        return decode_release_description(payload.data.description)

    status_code = dyno_crash_status(payload.data)
    if status_code is None:
        return IgnoredAction(f"dyno {payload.data.name} is not a crash")
    return DynoCrash(name=payload.data.name, status_code=status_code)


# ---------------------------------------------------------------------------
# Formatting & forwarding
# ---------------------------------------------------------------------------


def format_event(event: HookEvent, app_name: str) -> tuple[str, str]:
    """Title and description for an event."""
    if isinstance(event, Rollback):
        return f"🏳️ {app_name}", f"Rollback to {event.version}"
    if isinstance(event, EnvVarsChange):
        return f"⚙️  {app_name}", f"Environment variables changed: {event.raw_change}"
    return f"☢️  {app_name}", f"Dyno {event.name} crashed with status code {event.status_code}"


def to_message(event: HookEvent, app_name: str, channel: str) -> Message:
    title, description = format_event(event, app_name)
    return Message(
        channel=channel,
        title=title,
        description=description,
        link=activity_page_url(app_name),
    )


async def forward(
    client: SlackClient,
    token: SlackAccessToken,
    platform: Platform,
    payload: Optional[HookPayload],
) -> ForwardResult:
    """
    Filter a verified payload and forward any supported event to ``platform``.

    Slack failures propagate as SlackError.
    """
    decoded = decode_event(payload)
    if isinstance(decoded, (IgnoredAction, UnsupportedEvent)):
        return decoded

    msg = to_message(decoded, payload.data.app.name, platform.channel)
    await post_message(client, msg, token)
    return Delivered(decoded)
