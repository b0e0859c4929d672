"""MindCoach FastAPI application.

Every failure leaves the API as ``{"error": message}``:

- request validation: 400
- state-machine misuse (``SessionError``): 409
- undecodable model output (``DecodeError``): 502
- model endpoint unreachable or rejecting (``TransportError``): 503
- anything unexpected: 500
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from . import __version__
from .agents.base.errors import DecodeError, TransportError
from .api import chat, exercise, reflect
from .core.config import settings
from .core.logging import configure_logging
from .db.base import create_tables, dispose_engine
from .db.repository import STORAGE_ERRORS
from .observability.langsmith import initialize_langsmith
from .session.machine import SessionError

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable, please retry"
DECODE_FAILED_MESSAGE = "The AI returned an unusable answer, please retry"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging(settings)
    initialize_langsmith(settings)
    uses_sql = settings.REPOSITORY_BACKEND == "sql"
    if uses_sql:
        try:
            await create_tables()
        except STORAGE_ERRORS as exc:
            logger.warning(f"Could not create profile tables, storage calls will fail: {exc}")
    logger.info(f"{settings.APP_NAME} {__version__} ready ({settings.REPOSITORY_BACKEND} storage)")
    yield
    if uses_sql:
        await dispose_engine()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _first_validation_error(exc: RequestValidationError) -> str:
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        return f"{field}: {message}" if field else message
    return "Invalid request"


async def _on_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, _first_validation_error(exc))


async def _on_session_error(request: Request, exc: SessionError) -> JSONResponse:
    return error_response(409, str(exc))


async def _on_decode_error(request: Request, exc: DecodeError) -> JSONResponse:
    logger.warning(f"{request.url.path}: model output not decodable ({exc.reason})")
    return error_response(502, DECODE_FAILED_MESSAGE)


async def _on_transport_error(request: Request, exc: TransportError) -> JSONResponse:
    logger.error(f"{request.url.path}: model endpoint failed (status={exc.status})")
    return error_response(503, SERVICE_UNAVAILABLE_MESSAGE)


async def _on_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.url.path}: unhandled error")
    return error_response(500, str(exc) if settings.DEBUG else "Internal server error")


EXCEPTION_HANDLERS = (
    (HTTPException, _on_http_error),
    (RequestValidationError, _on_validation_error),
    (SessionError, _on_session_error),
    (DecodeError, _on_decode_error),
    (TransportError, _on_transport_error),
    (Exception, _on_unexpected_error),
)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="AI-guided cognitive training coach",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST"],
        allow_headers=settings.cors_allow_headers_list,
    )

    for module in (chat, exercise, reflect):
        app.include_router(module.router, prefix=settings.API_V1_PREFIX)

    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "app": settings.APP_NAME, "version": __version__}

    return app


app = create_app()
