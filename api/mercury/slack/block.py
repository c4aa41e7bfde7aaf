"""
A minimal slice of Slack's Block Kit.

Blocks let us mix rich formatting with foreign plaintext, but a single section
can't contain both, so each piece of copy gets its own block. Context blocks
carry the smaller copy. Only ``plain_text`` is safe for foreign input;
``mrkdwn`` is reserved for text we build ourselves.

https://api.slack.com/reference/block-kit/blocks
"""

from typing import Any

Block = dict[str, Any]


def plain_text(text: str) -> dict[str, str]:
    return {"type": "plain_text", "text": text}


def mrkdwn(text: str) -> dict[str, str]:
    return {"type": "mrkdwn", "text": text}


def escape(text: str) -> str:
    """Escape the control characters mrkdwn reserves.

    https://api.slack.com/reference/surfaces/formatting#escaping
    """
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def section(text: dict[str, str]) -> Block:
    """Ordinary, standalone copy."""
    return {"type": "section", "text": text}


def context(*elements: dict[str, str]) -> Block:
    """Small copy, rendered compactly together."""
    return {"type": "context", "elements": list(elements)}
