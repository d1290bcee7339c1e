"""
Custom exceptions for the server provisioning service.

Store-level absence is never an exception (the store answers with
``None``/``False``). These exceptions are raised by the lifecycle engine
and mapped to HTTP responses by the API layer.
"""
from typing import Optional, Dict, Any
from fastapi import status


class ProvisionerException(Exception):
    """
    Base exception for all provisioning service errors.

    All custom exceptions should inherit from this base class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class BadRequestError(ProvisionerException):
    """
    Raised when caller-supplied data violates a precondition.

    Used for invalid creation requests, malformed identifiers and
    operations that are not allowed in the server's current state.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class NotFoundError(ProvisionerException):
    """Raised when the referenced identifier does not currently exist."""

    def __init__(self, resource: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource} not found with identifier: {resource_id}"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details or {"resource": resource, "resource_id": resource_id},
        )


class InternalError(ProvisionerException):
    """
    Raised for states the service asserts cannot happen.

    Examples: identifier generation exhausted its attempts, an illegal
    state transition, a second transition scheduled for the same server.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


__all__ = [
    "ProvisionerException",
    "BadRequestError",
    "NotFoundError",
    "InternalError",
]
