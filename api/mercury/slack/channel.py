"""
Resolve channel names, as seen in the Slack UI, to the channel IDs Slack's API
expects.

Channels can be renamed, so the API addresses them by ID. Consumers supply
names; the directory maps them via ``conversations.list`` and caches the full
map for a fixed TTL. A fresh map is authoritative: a name missing from it is an
unknown channel, not a cue to refetch.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal, Optional

from pydantic import BaseModel, StrictStr, field_validator

from mercury.slack.auth import SlackAccessToken
from mercury.slack.errors import UnknownChannel

if TYPE_CHECKING:
    from mercury.slack.api import SlackClient

logger = logging.getLogger(__name__)

# Maximum supported is 1000, but 200 is "recommended".
PAGE_SIZE = 200


def normalize_channel_name(name: str) -> str:
    """Channel names can't contain hashes, so a leading one is optional."""
    return name[1:] if name.startswith("#") else name


class ChannelMeta(BaseModel):
    id: StrictStr
    name: StrictStr


class PaginationMeta(BaseModel):
    next_cursor: Optional[StrictStr] = None

    @field_validator("next_cursor")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class ListResponse(BaseModel):
    """https://api.slack.com/methods/conversations.list#examples"""

    ok: Literal[True]
    channels: list[ChannelMeta]
    response_metadata: PaginationMeta


class JoinResponse(BaseModel):
    """https://api.slack.com/methods/conversations.join#examples"""

    ok: Literal[True]


@dataclass(frozen=True)
class CacheEntry:
    channels: dict[str, str]
    created_at: float


class ChannelDirectory:
    """Name -> ID map with TTL-based staleness.

    The lock is held for the whole read-or-refetch path, so concurrent misses
    produce one enumeration, and the map is only installed once fully built.
    """

    DEFAULT_TTL = 24 * 60 * 60

    def __init__(
        self,
        client: "SlackClient",
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._lock = asyncio.Lock()

    def _is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        return entry is not None and self._clock() - entry.created_at < self.ttl

    async def resolve(self, name: str, token: SlackAccessToken) -> str:
        """Get the channel ID for ``name``, fetching the directory if needed."""
        normalized = normalize_channel_name(name)

        async with self._lock:
            entry = self._entry
            if not self._is_fresh(entry):
                channels = await self._fetch_all(token)
                entry = CacheEntry(channels=channels, created_at=self._clock())
                self._entry = entry
                logger.info("Channel directory refreshed with %d channels", len(channels))

        channel_id = entry.channels.get(normalized)
        if channel_id is None:
            raise UnknownChannel(name)
        return channel_id

    async def _fetch_all(self, token: SlackAccessToken) -> dict[str, str]:
        channels: dict[str, str] = {}
        cursor: Optional[str] = None

        while True:
            params = {"limit": PAGE_SIZE, "exclude_archived": "true"}
            if cursor:
                params["cursor"] = cursor

            page = await self._client.get("/conversations.list", token, ListResponse, params=params)
            for meta in page.channels:
                channels[meta.name] = meta.id

            cursor = page.response_metadata.next_cursor
            if not cursor:
                return channels

    async def join(self, channel_id: str, token: SlackAccessToken) -> None:
        """We must join public channels before we can message in them."""
        await self._client.post("/conversations.join", token, JoinResponse, body={"channel": channel_id})
        logger.info("Joined channel %s", channel_id)
