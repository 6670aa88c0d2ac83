"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception.

    ``extra`` is merged into the JSON error body next to ``detail``.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.extra = extra or {}


class ValidationError(AppException):
    """Malformed or missing input, reported per field."""

    def __init__(
        self,
        detail: str = "Validation failed",
        errors: dict[str, str] | None = None,
    ) -> None:
        self.errors = errors or {}
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            extra={"errors": self.errors} if self.errors else None,
        )


class CapacityExceededError(AppException):
    """Stock, daily, slot or max-order ceiling violated."""

    def __init__(
        self,
        detail: str,
        ceiling: str,
        requested: int,
        remaining: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.ceiling = ceiling
        self.requested = requested
        self.remaining = remaining
        body = {"ceiling": ceiling, "requested": requested, "remaining": remaining}
        body.update(extra or {})
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            extra=body,
        )


class OverrideConfirmationRequired(AppException):
    """Vendor booking exceeds limits and needs an explicit confirm_exceed."""

    def __init__(self, detail: str, availability: dict[str, Any]) -> None:
        self.availability = availability
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            extra={
                "requires_confirmation": True,
                "message": detail,
                "availability": availability,
            },
        )


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Signature mismatch, expired token or cross-vendor access."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class StateConflictError(AppException):
    """Operation not allowed for the current status."""

    def __init__(self, detail: str = "This operation is not allowed for the current status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class IntegrationFailure(AppException):
    """Downstream email, webhook or gateway call failed."""

    def __init__(self, service: str, detail: str | None = None) -> None:
        self.service = service
        message = f"External service '{service}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)


class PersistenceFailure(AppException):
    """Transaction rolled back."""

    def __init__(self, detail: str = "Failed to persist changes") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
