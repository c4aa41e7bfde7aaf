import sys
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    slack_token: str = ""
    heroku_secret: Optional[str] = None

    app_name: str = "Mercury"
    debug: bool = False

    host: str = "0.0.0.0"
    port: int = 80

    # CORS: comma-separated allowed origins (empty = allow all for dev)
    cors_origins: str = ""

    # Slack Web API
    slack_api_base: str = "https://slack.com/api"
    slack_timeout: float = 15

    # Channel name -> ID cache lifetime (hours)
    channel_cache_ttl_hours: float = 24

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()

if not settings.slack_token:
    print(
        "FATAL: SLACK_TOKEN environment variable is not set. Refusing to start.",
        file=sys.stderr,
    )
    sys.exit(1)
