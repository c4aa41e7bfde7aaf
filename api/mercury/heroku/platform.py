"""Onward messaging platforms for Heroku webhooks, chosen by query string."""

from typing import Literal

from pydantic import BaseModel, Field


class SlackPlatform(BaseModel):
    """Post a fixed message to the given Slack channel.

    e.g. ``/api/v1/heroku/hook?platform=slack&channel=playground``
    """

    platform: Literal["slack"]
    channel: str = Field(..., min_length=1)


# Only one platform today; becomes a discriminated union when more arrive.
Platform = SlackPlatform
