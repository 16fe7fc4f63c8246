"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from practice_service.api.v1.router import api_router
from practice_service.common.request_id import RequestIDMiddleware
from practice_service.core.config import settings
from practice_service.core.errors import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from practice_service.core.logging import get_logger, setup_logging
from practice_service.db.base import Base, import_models
from practice_service.db.engine import engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    # Create tables outside production-like environments (otherwise use migrations)
    if settings.ENV in ("dev", "test"):
        import_models()
        Base.metadata.create_all(bind=engine)
    logger.info(
        "Practice Session API started",
        extra={"env": settings.ENV, "question_bank_backend": settings.QUESTION_BANK_BACKEND},
    )
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Practice sessions: untimed and ironman question runs with review",
        openapi_url="/openapi.json" if settings.ENV != "prod" else None,
        docs_url="/docs" if settings.ENV != "prod" else None,
        redoc_url="/redoc" if settings.ENV != "prod" else None,
        lifespan=lifespan,
    )

    # First added is innermost
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


app = create_app()
