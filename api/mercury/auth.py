import logging
import secrets

from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mercury.slack import SlackAccessToken

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _get_client_ip(request: Request) -> str:
    xff = request.headers.get("X-Forwarded-For")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def require_slack_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
) -> SlackAccessToken:
    """
    The caller must present the configured Slack token as a bearer token.
    It's then used as-is for onward Slack calls.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    expected = request.app.state.settings.slack_token
    # Constant-time comparison
    if not secrets.compare_digest(credentials.credentials.encode(), expected.encode()):
        logger.warning("Failed auth attempt from %s", _get_client_ip(request))
        raise HTTPException(status_code=401, detail="Invalid bearer token")

    return SlackAccessToken(credentials.credentials)
