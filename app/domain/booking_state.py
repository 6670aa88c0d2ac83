"""Booking payment state machine.

States:
- pending: created, awaiting payment or cancellation
- paid: gateway capture verified
- failed: payment failed or marked failed
- cancelled: cancelled with a valid token, capacity restored
- expired: payment window elapsed
"""

from app.core.exceptions import StateConflictError

BOOKING_TRANSITIONS = {
    "pending": {"pending", "paid", "failed", "cancelled", "expired"},
    "paid": set(),
    "failed": set(),
    "cancelled": set(),
    "expired": set(),
}

# Targets a caller may set through the status endpoint
MANUAL_STATUS_TARGETS = {"pending", "failed"}


def assert_booking_transition(current: str, target: str) -> None:
    """Validate booking state transition.

    Args:
        current: Current booking status
        target: Target booking status

    Raises:
        StateConflictError: If transition is not allowed
    """
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise StateConflictError(
            f"Invalid booking transition: {current} -> {target}"
        )
