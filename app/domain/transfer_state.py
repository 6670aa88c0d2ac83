"""Vendor payment transfer state machine.

States:
- pending: awaiting bank transfer
- processed: transfer issued by an admin
- complete: transfer confirmed received
"""

from app.core.exceptions import StateConflictError, ValidationError

TRANSFER_STATUSES = ("pending", "processed", "complete")

TRANSFER_TRANSITIONS = {
    "pending": {"processed", "complete"},
    "processed": {"complete", "pending"},
    "complete": {"pending", "processed"},
}


def assert_transfer_status(value: str) -> None:
    if value not in TRANSFER_STATUSES:
        raise ValidationError(
            "Invalid transfer status",
            errors={"status": f"must be one of {', '.join(TRANSFER_STATUSES)}"},
        )


def assert_transfer_transition(current: str, target: str) -> None:
    """Validate transfer state transition.

    Args:
        current: Current transfer status
        target: Target transfer status

    Raises:
        StateConflictError: If transition is not allowed
    """
    allowed = TRANSFER_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise StateConflictError(
            f"Invalid transfer transition: {current} -> {target}"
        )
