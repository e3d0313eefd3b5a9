"""
Standard API response format and utility functions.
"""

from typing import Any

from ..core.exceptions import (
    AuthorizationError,
    NotFoundError,
    TransactionConflictError,
    ValidationError,
)


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Any = None) -> dict:
    return {"success": False, "data": data, "message": message}


def error_status(exc: Exception) -> int:
    """HTTP status for a domain exception."""
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, TransactionConflictError):
        return 409
    if isinstance(exc, ValidationError):
        return 400
    return 500
