"""Receive dyno crash, rollback, and config var webhooks from Heroku."""

from mercury.heroku.auth import HerokuSecret
from mercury.heroku.platform import Platform

__all__ = ["HerokuSecret", "Platform"]
