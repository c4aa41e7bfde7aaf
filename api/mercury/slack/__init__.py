"""
Post a structured Message to any Slack channel.

The Slack app needs these bot scopes:

- ``channels:read``: map channel names to channel IDs.
- ``channels:join``: join channels automatically (optional if the bot is
  added to channels by hand).
- ``chat:write``: send messages to channels.
- ``chat:write.customize``: post under a custom username and avatar.
"""

from mercury.slack.api import SlackClient
from mercury.slack.auth import SlackAccessToken
from mercury.slack.errors import (
    APIProtocolError,
    APIRequestFailed,
    APIResponseError,
    SlackError,
    UnknownChannel,
)
from mercury.slack.message import Message, post_message

__all__ = [
    "SlackClient",
    "SlackAccessToken",
    "SlackError",
    "APIRequestFailed",
    "APIProtocolError",
    "APIResponseError",
    "UnknownChannel",
    "Message",
    "post_message",
]
