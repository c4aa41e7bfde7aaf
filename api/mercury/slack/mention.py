"""Supported Slack mentions for the Web and API teams."""

from enum import Enum


class Mention(str, Enum):
    """
    Fixed mention targets.

    Group IDs could be looked up from friendly names the way channels are, but
    then every consumer would have to track exact group names. Groups rarely
    change, so they're hardcoded instead.
    """

    WEB_TEAM = "web"
    API_TEAM = "api"


# Populated by hand from the Slack workspace.
USER_GROUP_IDS = {
    Mention.WEB_TEAM: "SAWPVDSUW",
    Mention.API_TEAM: "SAVLBV4J0",
}


def to_user_group_id(mention: Mention) -> str:
    return USER_GROUP_IDS[mention]
