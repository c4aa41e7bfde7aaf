"""Heroku signs webhook bodies with a shared secret (HMAC-SHA256, base64)."""

import base64
import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "Heroku-Webhook-Hmac-SHA256"


class HerokuSecret:
    """Opaque wrapper so the shared secret never ends up in logs or reprs."""

    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    def __repr__(self) -> str:
        return "HerokuSecret(<redacted>)"

    __str__ = __repr__


class SignatureError(Exception):
    pass


class SignatureMissing(SignatureError):
    def __init__(self):
        super().__init__(f"Missing {SIGNATURE_HEADER} header")


class SignatureInvalid(SignatureError):
    def __init__(self):
        super().__init__(f"Invalid {SIGNATURE_HEADER} header")


def sign(secret: HerokuSecret, body: bytes) -> str:
    """Compute the signature Heroku would send for ``body``."""
    digest = hmac.new(secret.value.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify(secret: HerokuSecret, body: bytes, signature: str) -> bool:
    """``body`` must be the raw request bytes, untouched by any decoding."""
    return hmac.compare_digest(sign(secret, body).encode(), signature.encode())


def check_signature(secret: HerokuSecret, body: bytes, signature: Optional[str]) -> None:
    if signature is None:
        raise SignatureMissing()
    if not verify(secret, body, signature):
        raise SignatureInvalid()
