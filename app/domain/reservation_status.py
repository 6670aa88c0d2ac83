"""Reservation status vocabulary.

Legacy statuses coexist with the per-actor workflow statuses, so this is a
flat enumeration with membership helpers rather than a transition table.
"""

from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    WAITING = "waiting"
    CONFIRMED = "confirmed"
    CLIENT_CONFIRMED = "client_confirmed"
    RETAILER_CONFIRMED = "retailer_confirmed"
    ADMIN_CONFIRMED = "admin_confirmed"
    CANCELLED = "cancelled"
    CLIENT_CANCELLED = "client_cancelled"
    RETAILER_CANCELLED = "retailer_cancelled"
    ADMIN_CANCELLED = "admin_cancelled"
    CANCELLED_CLIENT_NO_RESPONSE = "cancelled_client_no_response"
    CANCELLED_RETAILER_NO_RESPONSE = "cancelled_retailer_no_response"
    ADMIN_GIVE_UP = "admin_give_up"
    ESCALATED_ADMIN = "escalated_admin"
    SHIPPED = "shipped"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


CONFIRMED_STATUSES = frozenset({
    ReservationStatus.CONFIRMED,
    ReservationStatus.CLIENT_CONFIRMED,
    ReservationStatus.RETAILER_CONFIRMED,
    ReservationStatus.ADMIN_CONFIRMED,
})

CANCELLED_STATUSES = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.CLIENT_CANCELLED,
    ReservationStatus.RETAILER_CANCELLED,
    ReservationStatus.ADMIN_CANCELLED,
    ReservationStatus.CANCELLED_CLIENT_NO_RESPONSE,
    ReservationStatus.CANCELLED_RETAILER_NO_RESPONSE,
    ReservationStatus.ADMIN_GIVE_UP,
})

WAITING_STATUSES = frozenset({
    ReservationStatus.WAITING,
    ReservationStatus.PENDING,
})


def parse_status(status: str | ReservationStatus) -> ReservationStatus:
    """Coerce a stored string; raises ValueError for unknown values."""
    if isinstance(status, ReservationStatus):
        return status
    return ReservationStatus(status)


def is_confirmed(status: str | ReservationStatus) -> bool:
    return parse_status(status) in CONFIRMED_STATUSES


def is_cancelled(status: str | ReservationStatus) -> bool:
    return parse_status(status) in CANCELLED_STATUSES


def is_waiting(status: str | ReservationStatus) -> bool:
    return parse_status(status) in WAITING_STATUSES
