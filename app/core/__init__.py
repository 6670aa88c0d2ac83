"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    CapacityExceededError,
    IntegrationFailure,
    NotFoundError,
    OverrideConfirmationRequired,
    PersistenceFailure,
    StateConflictError,
    ValidationError,
)
from app.core.security import (
    constant_time_equals,
    create_access_token,
    generate_cancel_token,
    sign_cancel_request,
    verify_token,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "CapacityExceededError",
    "IntegrationFailure",
    "NotFoundError",
    "OverrideConfirmationRequired",
    "PersistenceFailure",
    "StateConflictError",
    "ValidationError",
    "constant_time_equals",
    "create_access_token",
    "generate_cancel_token",
    "sign_cancel_request",
    "verify_token",
]
