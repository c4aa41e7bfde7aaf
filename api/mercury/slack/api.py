"""Slack Web API client.

Every Slack method answers with the same envelope, distinguished only by the
``ok`` boolean::

    {"ok": true, "channels": [...]}
    {"ok": false, "error": "invalid_auth"}

Responses are decoded in two phases: ``ok`` is inspected first, then the body is
validated against either the caller's success model or :class:`ErrorResponse`.
Anything else (``ok`` missing, not a literal boolean, ``ok: false`` without an
error string) is a protocol violation.
"""

import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional, TypeVar

import httpx
from pydantic import BaseModel, StrictStr, ValidationError

from mercury.slack.auth import SlackAccessToken
from mercury.slack.channel import ChannelDirectory
from mercury.slack.errors import APIProtocolError, APIRequestFailed, APIResponseError

if TYPE_CHECKING:
    from mercury.config import Settings

logger = logging.getLogger(__name__)

API_BASE = "https://slack.com/api"

T = TypeVar("T", bound=BaseModel)


class OkResponse(BaseModel):
    """The universal successful response; methods extend it with their fields."""

    ok: Literal[True]


class ErrorResponse(BaseModel):
    """The universal unsuccessful response."""

    ok: Literal[False]
    error: StrictStr


def decode_result(payload: Any, model: type[T]) -> T:
    """Decode a Slack envelope into ``model``, raising on ``ok: false``."""
    if not isinstance(payload, dict):
        raise APIProtocolError("expected a JSON object")

    ok = payload.get("ok")
    if ok is True:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise APIProtocolError(f"unexpected {model.__name__} shape: {exc}") from exc

    if ok is False:
        try:
            err = ErrorResponse.model_validate(payload)
        except ValidationError as exc:
            raise APIProtocolError("ok: false without an error string") from exc
        raise APIResponseError(err.error)

    raise APIProtocolError(f"invalid 'ok' value: {ok!r}")


class SlackClient:
    """
    Owns the HTTP connection pool used for every Slack call, plus the channel
    directory built on top of it.

    Pass ``transport`` to substitute the Slack endpoint (e.g. an
    ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str = API_BASE,
        *,
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache_ttl: float = ChannelDirectory.DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.channels = ChannelDirectory(self, ttl=cache_ttl, clock=clock)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SlackClient":
        return cls(
            settings.slack_api_base,
            timeout=settings.slack_timeout,
            cache_ttl=settings.channel_cache_ttl_hours * 3600,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get(
        self,
        path: str,
        token: SlackAccessToken,
        model: type[T],
        params: Optional[dict[str, Any]] = None,
    ) -> T:
        return await self._call("GET", path, token, model, params=params)

    async def post(
        self,
        path: str,
        token: SlackAccessToken,
        model: type[T],
        body: Optional[dict[str, Any]] = None,
    ) -> T:
        return await self._call("POST", path, token, model, json=body)

    async def _call(
        self,
        method: str,
        path: str,
        token: SlackAccessToken,
        model: type[T],
        **kwargs,
    ) -> T:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._http.request(method, url, headers=token.auth_header(), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Slack %s %s failed: %s", method, path, type(exc).__name__)
            raise APIRequestFailed(f"{type(exc).__name__}: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise APIProtocolError(
                f"non-JSON response from {path} (HTTP {resp.status_code})"
            ) from exc

        return decode_result(payload, model)
