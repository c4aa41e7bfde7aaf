import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from mercury.config import Settings
from mercury.dependencies import get_settings, get_slack_client
from mercury.heroku.auth import SIGNATURE_HEADER, HerokuSecret, SignatureError, check_signature
from mercury.heroku.platform import Platform
from mercury.heroku.webhook import (
    Delivered,
    IgnoredAction,
    WebhookDecodeError,
    forward,
    parse_payload,
)
from mercury.slack import SlackAccessToken, SlackClient, SlackError

wh_logger = logging.getLogger("webhooks")

router = APIRouter(prefix="/heroku", tags=["heroku"])


@router.post("/hook", summary="Receive a Heroku webhook")
async def receive_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: SlackClient = Depends(get_slack_client),
):
    """
    The ``Heroku-Webhook-Hmac-SHA256`` header must carry the base64 HMAC-SHA256
    of the raw body, keyed by the shared secret.

    Ignored and unsupported events are still acknowledged with 200, otherwise
    Heroku keeps retrying them.
    """
    content_type = request.headers.get("content-type")
    if content_type is None:
        raise HTTPException(status_code=400, detail="Header of type `content-type` was missing")
    if content_type.split(";")[0].strip().lower() != "application/json":
        raise HTTPException(status_code=415, detail="Expected `Content-Type: application/json`")

    try:
        platform = Platform.model_validate(dict(request.query_params))
    except ValidationError as exc:
        err = exc.errors()[0]
        loc = ".".join(str(p) for p in err["loc"])
        raise HTTPException(
            status_code=400,
            detail=f"Failed to deserialize query string: {loc}: {err['msg']}",
        ) from exc

    if not settings.heroku_secret:
        wh_logger.error("Rejecting webhook: HEROKU_SECRET is not configured")
        raise HTTPException(status_code=401, detail="Webhook secret not configured")

    # Verify against the raw bytes, before any decoding.
    body = await request.body()
    try:
        check_signature(HerokuSecret(settings.heroku_secret), body, request.headers.get(SIGNATURE_HEADER))
    except SignatureError as exc:
        wh_logger.warning("Rejecting webhook: %s", exc)
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    try:
        payload = parse_payload(body)
    except WebhookDecodeError as exc:
        wh_logger.warning("Undecodable webhook: %s", exc.message)
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    try:
        result = await forward(client, SlackAccessToken(settings.slack_token), platform, payload)
    except SlackError as exc:
        wh_logger.error("Forwarding webhook to Slack failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    if isinstance(result, Delivered):
        wh_logger.info("Forwarded %s to #%s", type(result.event).__name__, platform.channel)
        return {"status": "delivered"}
    if isinstance(result, IgnoredAction):
        wh_logger.debug("Ignored webhook: %s", result.reason)
        return {"status": "ignored"}

    wh_logger.info("Unsupported webhook event: %r", result.description)
    return {"status": "unsupported"}
