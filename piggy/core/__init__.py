"""Core infrastructure: settings, logging, exceptions."""

from .config import settings
from .exceptions import (
    AppException,
    ConflictError,
    InvalidStateError,
    MethodNotAllowedError,
    NotFoundError,
    ValidationError,
)


__all__ = [
    "AppException",
    "ConflictError",
    "InvalidStateError",
    "MethodNotAllowedError",
    "NotFoundError",
    "ValidationError",
    "settings",
]
