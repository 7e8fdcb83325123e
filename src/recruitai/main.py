from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import logging

from recruitai.api import ai, health, notifications, processing, uploads
from recruitai.config import Settings, settings as default_settings
from recruitai.container import Services, build_services
from recruitai.utils.errors import RecruitAIError
from recruitai.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def error_body(message: str, details=None) -> dict:
    body = {"error": message}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Every failure leaves the API as ``{error, details?}``."""

    @app.exception_handler(RecruitAIError)
    async def handle_app_error(request: Request, exc: RecruitAIError):
        if exc.status_code >= 500:
            logger.error(f"[api] {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.public_message, getattr(exc, "details", None)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path", "form")),
                "constraint": err["type"],
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Validation failed", details),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"[api] Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error"),
        )


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        logger.info("[backend] RecruitAI processing service starting...")
        app.state.services = services or build_services(settings)
        await app.state.services.startup()
        logger.info("[backend] Services initialized")
        yield
        logger.info("[backend] RecruitAI processing service shutting down...")
        await app.state.services.shutdown()

    app = FastAPI(
        title="RecruitAI Processing API",
        description="Uploads, AI processing jobs and notifications for the recruiting platform",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(uploads.router)
    app.include_router(ai.router)
    app.include_router(processing.router)
    app.include_router(notifications.router)
    app.include_router(health.router)

    return app


app = create_app()
