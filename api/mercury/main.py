import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mercury.config import Settings, settings as default_settings
from mercury.middleware import (
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from mercury.response import error_content
from mercury.routers import heroku, slack
from mercury.slack import SlackClient

API_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    slack_client: Optional[SlackClient] = None,
) -> FastAPI:
    settings = settings or default_settings
    slack_client = slack_client or SlackClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.heroku_secret:
            logger.warning("No HEROKU_SECRET set; Heroku webhooks will be rejected")
        yield
        await slack_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Relay structured notifications and Heroku webhooks into Slack.",
        version=API_VERSION,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.slack_client = slack_client

    # CORS
    cors_origins = (
        [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
        if settings.cors_origins
        else ["*"]
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # --- Exception Handlers ---

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_content(exc.status_code, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for err in exc.errors():
            clean = {k: v for k, v in err.items() if k not in ("ctx", "url")}
            if "msg" in clean:
                clean["msg"] = str(clean["msg"])
            errors.append(clean)
        return JSONResponse(
            status_code=422,
            content={"error": {"code": 422, "message": "Validation error", "details": errors}},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_content(500, "Internal server error"))

    # --- Routes ---

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(slack.router)
    api_v1.include_router(heroku.router)

    @api_v1.get("/health", summary="Health check")
    async def health():
        return {"status": "ok", "version": API_VERSION}

    app.include_router(api_v1)

    @app.get("/", summary="API root")
    async def root():
        return {"name": settings.app_name, "status": "ok", "version": API_VERSION}

    return app


app = create_app()
