"""Custom exceptions and centralized exception handlers."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


AVAILABLE_ROUTES = ["/api", "/health", "/rpc"]


class AppException(Exception):
    """Base application exception with structured error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.status_code = status_code or self.status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the `{success: false, ...}` error envelope."""
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
            "status": self.status_code,
            **({"details": self.details} if self.details else {}),
        }


class NotFoundError(AppException):
    """Resource not found."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


class ValidationError(AppException):
    """Malformed or out-of-range input."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    message = "Validation failed"


class ConflictError(AppException):
    """Unique constraint violation, or delete blocked by dependent rows."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    message = "Resource conflict"


class InvalidStateError(AppException):
    """Operation not allowed in the entity's current state."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_STATE"
    message = "Operation not allowed in the current state"


class MethodNotAllowedError(AppException):
    """Procedure called with the wrong HTTP method."""

    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    error_code = "METHOD_NOT_ALLOWED"
    message = "Method not allowed"


def validation_details(errors: list[dict[str, Any]]) -> dict[str, Any]:
    """Reduce pydantic error dicts to a JSON-safe list of field errors."""
    return {
        "errors": [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in errors
        ]
    }


def register_exception_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers."""

    def _headers(request: Request) -> dict[str, str]:
        return {"X-Request-ID": getattr(request.state, "request_id", "unknown")}

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict()),
            headers=_headers(request),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(details=validation_details(exc.errors()))
        return JSONResponse(
            status_code=error.status_code,
            content=jsonable_encoder(error.to_dict()),
            headers=_headers(request),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            content = {
                "success": False,
                "error": "Not Found",
                "message": f"Route {request.url.path} not found",
                "availableRoutes": AVAILABLE_ROUTES,
            }
        else:
            content = {
                "success": False,
                "error": "HTTP_ERROR",
                "message": str(exc.detail),
                "status": exc.status_code,
            }
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=_headers(request),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Log the actual error but return generic message
        import logging

        logger = logging.getLogger("piggy.error")
        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "path": request.url.path,
                "method": request.method,
            },
        )

        from .config import settings

        content: dict[str, Any] = {
            "success": False,
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "status": 500,
        }
        if settings.expose_errors:
            import traceback

            content["message"] = str(exc)
            content["stack"] = traceback.format_exception(exc)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
            headers=_headers(request),
        )
