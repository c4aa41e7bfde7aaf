"""Send structured messages to any Slack channel, joining it if necessary."""

import logging
import re
from typing import Optional
from urllib.parse import urlsplit

from pydantic import AliasChoices, BaseModel, Field, field_validator

from mercury.slack.api import OkResponse, SlackClient
from mercury.slack.auth import SlackAccessToken
from mercury.slack.block import Block, context, escape, mrkdwn, plain_text, section
from mercury.slack.errors import APIResponseError
from mercury.slack.mention import Mention, to_user_group_id

logger = logging.getLogger(__name__)

# Characters that would end or split a mrkdwn link if they reached Slack raw.
UNSAFE_URL_CHARS = re.compile(r"[\s<>|]")


class Message(BaseModel):
    """
    A structured message which does not permit custom formatting.

    Deliberately a little generalised to reduce coupling to Slack and to avoid
    escaping issues: title and description only ever reach Slack as plaintext.
    """

    channel: str = Field(..., min_length=1, description="Channel name, with or without '#'")
    title: str
    description: str = Field(..., validation_alias=AliasChoices("desc", "description"))
    link: Optional[str] = None
    mention: Optional[Mention] = Field(None, validation_alias=AliasChoices("cc", "mention"))
    avatar: Optional[str] = None
    # Render the title as the poster's display name rather than inline.
    title_as_username: bool = False

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("link", "avatar", mode="before")
    @classmethod
    def validate_url(cls, v):
        if v is None or v == "":
            return None
        if not isinstance(v, str):
            raise ValueError("must be a URL string")
        if UNSAFE_URL_CHARS.search(v):
            raise ValueError("must not contain whitespace, '<', '>' or '|'")
        parts = urlsplit(v)
        if not parts.scheme or not (parts.netloc or parts.path):
            raise ValueError("must be an absolute URL")
        return v


def fmt_link(url: str) -> str:
    """
    Prettify a URL down to host and path, falling back to the raw URL when it
    has no host (e.g. ``data:`` URLs). Both halves are mrkdwn-escaped, and a
    ``|`` in the href is percent-encoded so it can't split the link.

    >>> fmt_link("https://unsplash.com/it?set_locale=it-IT")
    '<https://unsplash.com/it?set_locale=it-IT|unsplash.com/it>'
    """
    href = escape(url.replace("|", "%7C"))
    parts = urlsplit(url)
    host = parts.hostname
    if not host:
        return href

    host = host.removeprefix("www.")
    path = "" if parts.path in ("", "/") else parts.path
    return f"<{href}|{escape(host + path)}>"


def fmt_mention(mention: Mention) -> str:
    return f"cc <!subteam^{to_user_group_id(mention)}>"


def build_blocks(msg: Message) -> list[Block]:
    """Map a Message onto its block representation on Slack's end."""
    primary = msg.description if msg.title_as_username else f"{msg.title}: {msg.description}"
    blocks = [section(plain_text(primary))]

    if msg.mention is not None:
        blocks.append(section(mrkdwn(fmt_mention(msg.mention))))

    if msg.link:
        blocks.append(context(mrkdwn(fmt_link(msg.link))))

    return blocks


def build_request(channel_id: str, msg: Message) -> dict:
    """https://api.slack.com/methods/chat.postMessage#args"""
    body = {
        "channel": channel_id,
        "blocks": build_blocks(msg),
        # Notification fallback; never rendered alongside blocks.
        "text": f"{msg.title}: {msg.description}",
    }
    if msg.title_as_username:
        body["username"] = msg.title
    if msg.avatar:
        body["icon_url"] = msg.avatar
    return body


async def post_message(client: SlackClient, msg: Message, token: SlackAccessToken) -> None:
    """
    Post a message, joining the channel and retrying once if we're not a member.

    Raises UnknownChannel, APIResponseError, or APIRequestFailed.
    """
    channel_id = await client.channels.resolve(msg.channel, token)

    try:
        await _try_post_message(client, channel_id, msg, token)
    except APIResponseError as exc:
        if not exc.is_not_in_channel:
            raise
        logger.info("Not in channel %s, joining and retrying", msg.channel)
        await client.channels.join(channel_id, token)
        await _try_post_message(client, channel_id, msg, token)

    logger.info("Message posted to %s", msg.channel)


async def _try_post_message(
    client: SlackClient,
    channel_id: str,
    msg: Message,
    token: SlackAccessToken,
) -> None:
    await client.post("/chat.postMessage", token, OkResponse, body=build_request(channel_id, msg))
