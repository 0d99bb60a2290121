"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py. Each class carries a stable `code` so callers can branch on the
failure kind without matching message text.

Payment failures form a closed family:
    ValidationError       — bad order id / amount, rejected before any network call
    ConfigError           — gateway credential missing
    GatewayConflictError  — gateway order id reused (recovered by the orchestrator)
    GatewayError          — any other gateway failure
    GatewayTransportError — gateway unreachable (subclass of GatewayError)
    PersistenceError      — gateway id could not be written onto the orders
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class PermissionDeniedError(DomainError):
    """Permission denied (403)."""
    code = "permission_denied"

    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class ConfigError(DomainError):
    """Server-side configuration missing (500)."""
    code = "config_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class GatewayError(DomainError):
    """Payment gateway rejected or failed the request (502)."""
    code = "gateway_error"

    def __init__(
        self,
        message: str,
        *,
        gateway_status: int | None = None,
        response_text: str = "",
        details: dict | None = None,
    ):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)
        self.gateway_status = gateway_status
        self.response_text = response_text


class GatewayTransportError(GatewayError):
    """Gateway could not be reached (network failure, timeout)."""
    code = "gateway_unreachable"


class GatewayConflictError(GatewayError):
    """The gateway order id was already used for an earlier transaction."""
    code = "gateway_conflict"


class PersistenceError(DomainError):
    """Order store write failed after the gateway accepted the transaction (500)."""
    code = "persistence_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
