from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import NotFoundError, TodoAppError, ValidationError
from .images import normalize_jpeg
from .logging_config import setup_logging
from .photos import Normalizer, PhotoAttachmentManager
from .repositories import build_registry
from .routers import health as health_router
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .storage import ObjectStore, get_object_store

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Create, list, update and delete todos, and manage their photos.",
    },
]


def _status_for(exc: TodoAppError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    return 500


async def todo_error_handler(request: Request, exc: TodoAppError) -> JSONResponse:
    """
    Render domain errors as ``{"error": message}``.

    Validation -> 400, not found -> 404, transform and storage failures -> 500.
    """
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(
            "{method} {path} failed: {type} - {message}",
            method=request.method,
            path=request.url.path,
            type=type(exc).__name__,
            message=exc.message,
        )
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "Request validation failed",
            "detail": [... pydantic/fastapi error details ...]
        }
    """
    return JSONResponse(
        status_code=400,
        content={
            "error": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    object_store: Optional[ObjectStore] = None,
    normalizer: Optional[Normalizer] = None,
) -> FastAPI:
    """
    Build the FastAPI application and its process-scoped state.

    Args:
        settings: Settings to use; read from the environment when omitted.
        object_store: Photo store; derived from settings when omitted.
        normalizer: Image transform; defaults to the Pillow JPEG normalizer.
    """
    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json_format=settings.json_logging)

    app = FastAPI(
        title="Todo Backend",
        description="Backend API service for managing todos with optional JPEG photos.",
        version="0.2.0",
        openapi_tags=openapi_tags,
    )

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TodoAppError, todo_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    registry = build_registry(seed_todos=settings.seed_todos)
    store = object_store if object_store is not None else get_object_store(settings)
    app.state.settings = settings
    app.state.registry = registry
    app.state.photos = PhotoAttachmentManager(
        registry,
        store,
        normalizer or normalize_jpeg,
        max_bytes=settings.max_photo_bytes,
        url_ttl=settings.photo_url_ttl_seconds,
    )

    app.include_router(health_router.router)
    app.include_router(todos_router.router)

    logger.info(
        "Todo backend ready (env={env}, photo storage {state})",
        env=settings.app_env,
        state="enabled" if store.is_configured() else "disabled",
    )
    return app


app = create_app()
