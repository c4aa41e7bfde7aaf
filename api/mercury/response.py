"""Standard response envelope for the Mercury API."""

from typing import Any


def single_response(item: Any) -> dict:
    return {"data": item}


def error_content(code: int, message: Any) -> dict:
    return {"error": {"code": code, "message": message}}
