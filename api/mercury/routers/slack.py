import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from mercury.auth import require_slack_token
from mercury.dependencies import get_slack_client
from mercury.response import single_response
from mercury.slack import (
    APIResponseError,
    Message,
    SlackAccessToken,
    SlackClient,
    SlackError,
    UnknownChannel,
    post_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def slack_error_status(exc: SlackError) -> int:
    if isinstance(exc, APIResponseError) and exc.is_unauthenticated:
        return 401
    if isinstance(exc, UnknownChannel):
        return 400
    return 500


def slack_http_exception(exc: SlackError) -> HTTPException:
    logger.error("%s", exc)
    return HTTPException(status_code=slack_error_status(exc), detail=str(exc))


@router.post("", summary="Post a message to a Slack channel")
async def post_slack_message(
    request: Request,
    token: SlackAccessToken = Depends(require_slack_token),
    client: SlackClient = Depends(get_slack_client),
):
    """
    Accepts a Message as ``application/x-www-form-urlencoded``: ``channel``,
    ``title``, ``desc``, and optionally ``link``, ``cc`` (``web`` or ``api``)
    and ``avatar``. The title is posted as the sender's display name.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != FORM_CONTENT_TYPE:
        raise HTTPException(
            status_code=415,
            detail=f"Form requests must have `Content-Type: {FORM_CONTENT_TYPE}`",
        )

    form = await request.form()
    fields = {k: v for k, v in form.items() if isinstance(v, str)}
    fields.pop("title_as_username", None)
    try:
        msg = Message.model_validate({**fields, "title_as_username": True})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    try:
        await post_message(client, msg, token)
    except SlackError as exc:
        raise slack_http_exception(exc) from exc

    return single_response({"status": "delivered", "channel": msg.channel})
