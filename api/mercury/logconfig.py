"""Logging config handed to uvicorn, which otherwise only configures its own loggers."""

import copy
import logging

from uvicorn.config import LOGGING_CONFIG

APP_LOGGERS = ("mercury", "webhooks")


def build_log_config(debug: bool = False) -> dict:
    config = copy.deepcopy(LOGGING_CONFIG)
    level = logging.getLevelName(logging.DEBUG if debug else logging.INFO)
    for name in APP_LOGGERS:
        config["loggers"][name] = {"handlers": ["default"], "level": level, "propagate": False}
    return config
