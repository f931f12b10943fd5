"""
LearnChat API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database import engine, Base
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .limiter import limiter
from .logging_config import api_logger
from .responses import (
    api_exception_handler,
    validation_exception_handler,
    storage_exception_handler,
    unexpected_exception_handler,
)
from .routes import (
    auth_router,
    chat_router,
    training_router,
    models_router,
    learning_router,
    training_data_router,
    memory_router,
    health_router,
)
from .worker.trainer import TrainingRegistry

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    # Create tables (in production, use Alembic migrations instead)
    Base.metadata.create_all(bind=engine)
    api_logger.info("LearnChat API started", environment=settings.environment)

    yield  # App is running

    api_logger.info("LearnChat API stopped")


app = FastAPI(
    title="LearnChat API",
    description="Backend API for the LearnChat learning assistant",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Per-process cancellation tokens for running training jobs
app.state.training_registry = TrainingRegistry()

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Error taxonomy
app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
app.add_exception_handler(Exception, unexpected_exception_handler)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

# CORS - Properly configured with specific methods
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Routes
app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(training_router)
app.include_router(models_router)
app.include_router(learning_router)
app.include_router(training_data_router)
app.include_router(memory_router)
app.include_router(health_router)


@app.get("/")
def root():
    """Root endpoint redirects to API docs."""
    return {
        "message": "LearnChat API",
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }


@app.options("/{rest_of_path:path}", include_in_schema=False)
def options_ok(rest_of_path: str):
    """Answer bare OPTIONS requests; CORS preflights never reach this."""
    return Response(status_code=200)
