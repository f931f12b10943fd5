"""
LearnChat API Response Utilities
Standardized response format and error handling
"""
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, List, Optional
from datetime import datetime

from .logging_config import api_logger


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None, **fields) -> Dict:
    """Create success response"""
    response = {"success": True, **fields}

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    return response


def paginated(items: List, total: int, page: int = 1, per_page: int = 20, **fields) -> Dict:
    """Paginated list response"""
    return {
        "data": items,
        "pagination": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": (total + per_page - 1) // per_page,
            "has_next": page * per_page < total,
            "has_prev": page > 1,
        },
        **fields,
        "timestamp": _timestamp(),
    }


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ApiException(HTTPException):
    """Custom API exception with error codes"""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str = None,
        details: Dict = None,
        headers: Dict[str, str] = None,
    ):
        self.error_code = error_code or f"ERR_{status_code}"
        self.details = details or {}
        super().__init__(status_code=status_code, detail=message, headers=headers)


class ValidationError(ApiException):
    """Missing or malformed request fields."""

    def __init__(self, message: str, **details):
        super().__init__(400, message, "VALIDATION_ERROR", details)


class AuthError(ApiException):
    """Missing, invalid or expired credential."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(401, message, "UNAUTHORIZED", headers={"WWW-Authenticate": "Bearer"})


class NotFoundError(ApiException):
    """Resource absent or not owned by the caller."""

    def __init__(self, resource: str = "Resource", id: Any = None):
        message = f"{resource} not found" if id is None else f"{resource} '{id}' not found"
        super().__init__(404, message, "NOT_FOUND")


class ConflictError(ApiException):
    """Duplicate resource or an operation already in progress."""

    def __init__(self, message: str = "Resource conflict", **details):
        super().__init__(400, message, "CONFLICT", details)


class UpstreamError(ApiException):
    """Datastore or external model failure."""

    def __init__(self, message: str = "Upstream service failed", **details):
        super().__init__(500, message, "UPSTREAM_ERROR", details)


HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "RATE_LIMITED",
}


def error_body(message: str, error_code: str, details: Optional[Dict] = None) -> Dict:
    body = {"ok": False, "error": message, "error_code": error_code}
    if details:
        body.update(details)
    body["timestamp"] = _timestamp()
    return body


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def api_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler for ApiException and plain HTTP exceptions"""
    if isinstance(exc, ApiException):
        api_logger.warning(
            f"API Error: {exc.detail}",
            status_code=exc.status_code,
            error_code=exc.error_code,
            path=request.url.path,
        )
        body = error_body(exc.detail, exc.error_code, exc.details)
    else:
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        body = error_body(
            str(exc.detail),
            HTTP_ERROR_CODES.get(exc.status_code, f"HTTP_{exc.status_code}"),
        )

    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and query parameters are 400s"""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))

    api_logger.warning(f"Validation Error: {message}", path=request.url.path)
    return JSONResponse(status_code=400, content=error_body(message, "VALIDATION_ERROR"))


async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Datastore failures are logged and reported generically"""
    api_logger.error("Storage error", error=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("A storage error occurred", "UPSTREAM_ERROR"),
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything not mapped above"""
    api_logger.error(f"Unexpected error: {exc}", error=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )


# ============================================================
# VALIDATION HELPERS
# ============================================================

def clamp(value: float, low: float, high: float) -> float:
    """Clamp a numeric field into [low, high]"""
    return max(low, min(high, value))
