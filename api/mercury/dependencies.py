"""Dependencies shared by routes across requests, held on ``app.state``."""

from fastapi import Request

from mercury.config import Settings
from mercury.slack import SlackClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_slack_client(request: Request) -> SlackClient:
    return request.app.state.slack_client
