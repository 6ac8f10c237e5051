"""
FastAPI application entry point for the forms backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from formsapp.config import Settings, get_settings
from formsapp.db import DuplicateEmailError
from formsapp.dependencies import build_db_client, build_rate_limiter
from formsapp.ratelimit import RateLimitMiddleware
from formsapp.routes import router

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
}


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": message}, headers=headers
    )


def _first_error_message(errors: list) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Drop the "body"/"query" source prefix FastAPI puts on request errors.
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
    message = first.get("msg", "Invalid request")
    return f"{'.'.join(loc)}: {message}" if loc else message


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return _error(400, _first_error_message(exc.errors()))

    @app.exception_handler(ValidationError)
    async def payload_validation_error(request: Request, exc: ValidationError):
        return _error(400, _first_error_message(exc.errors()))

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email(request: Request, exc: DuplicateEmailError):
        return _error(400, "Email already in use")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Forms Backend", version="0.1.0")
    # Routes read settings through Depends(get_settings); pin them to this app.
    app.dependency_overrides[get_settings] = lambda: settings
    app.state.settings = settings
    app.state.db = build_db_client(settings)

    register_error_handlers(app)

    if settings.rate_limit_enabled:
        app.state.rate_limiter = build_rate_limiter(settings)
        app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)

    # Sits inside CORS and security headers so 500s still carry them.
    @app.middleware("http")
    async def unexpected_errors(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error on %s %s", request.method, request.url.path
            )
            return _error(500, "Internal server error")

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix=settings.api_prefix)
    logger.info(
        "App configured: auth=%s validation=%s rate_limit=%s",
        settings.auth_mode,
        settings.validate_requests,
        settings.rate_limit_enabled,
    )
    return app


app = create_app()
