"""Capacity rules for Blanes.

Pure functions: callers supply the configured limits and the quantities
already booked; nothing here touches the database.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

UNLIMITED = 9999
DEFAULT_SLOT_CAPACITY = 3
DEFAULT_SLOT_INTERVAL = 60
TIME_SLOT_TYPE = "time"


def remaining_daily_capacity(
    availability_per_day: int | None,
    booked_quantity: int,
    unlimited: int = UNLIMITED,
) -> int:
    """Remaining units for one day.

    ``None`` means no daily limit and yields the ``unlimited`` sentinel,
    ``0`` means the Blane is closed for the day.
    """
    if availability_per_day is None:
        return unlimited
    if availability_per_day == 0:
        return 0
    return max(0, availability_per_day - booked_quantity)


def slot_limit(max_reservation_par_creneau: int | None) -> int:
    if max_reservation_par_creneau is None:
        return DEFAULT_SLOT_CAPACITY
    return max_reservation_par_creneau


def reservation_type(type_time: str | None) -> str:
    return type_time or TIME_SLOT_TYPE


def is_time_slot_type(type_time: str | None) -> bool:
    return reservation_type(type_time) == TIME_SLOT_TYPE


def remaining_slot_capacity(max_reservation_par_creneau: int | None, booked_quantity: int) -> int:
    return max(0, slot_limit(max_reservation_par_creneau) - booked_quantity)


def is_slot_full(max_reservation_par_creneau: int | None, booked_quantity: int) -> bool:
    """A slot is full once its booked quantity reaches the per-slot ceiling."""
    return booked_quantity >= slot_limit(max_reservation_par_creneau)


def percentage_full(max_reservation_par_creneau: int | None, booked_quantity: int) -> int:
    limit = slot_limit(max_reservation_par_creneau)
    if limit <= 0:
        return 0
    return round(booked_quantity / limit * 100)


def generate_time_slots(
    heure_debut: str | None,
    heure_fin: str | None,
    interval_minutes: int | None = None,
) -> list[str]:
    """List HH:MM slot starts from ``heure_debut`` to ``heure_fin`` inclusive."""
    if not heure_debut or not heure_fin:
        return []
    interval = interval_minutes or DEFAULT_SLOT_INTERVAL
    if interval <= 0:
        return []

    current = datetime.strptime(heure_debut, "%H:%M")
    end = datetime.strptime(heure_fin, "%H:%M")
    slots: list[str] = []
    while current <= end:
        slots.append(current.strftime("%H:%M"))
        current += timedelta(minutes=interval)
    return slots


def is_valid_time(value: str) -> bool:
    try:
        datetime.strptime(value, "%H:%M")
    except ValueError:
        return False
    return len(value) == 5


@dataclass
class OrderLimitCheck:
    """Which order ceilings a requested quantity breaks."""

    requested_quantity: int
    daily_available: int
    stock_available: int
    max_orders: int

    @property
    def exceeds_daily_limit(self) -> bool:
        return self.requested_quantity > self.daily_available

    @property
    def exceeds_stock_limit(self) -> bool:
        return self.requested_quantity > self.stock_available

    @property
    def exceeds_max_orders(self) -> bool:
        return self.max_orders != 0 and self.requested_quantity > self.max_orders

    @property
    def exceeds_any(self) -> bool:
        return self.exceeds_daily_limit or self.exceeds_stock_limit or self.exceeds_max_orders

    def as_dict(self) -> dict:
        return {
            "daily_available": self.daily_available,
            "stock_available": self.stock_available,
            "max_orders": self.max_orders,
            "requested_quantity": self.requested_quantity,
            "exceeds_daily_limit": self.exceeds_daily_limit,
            "exceeds_stock_limit": self.exceeds_stock_limit,
            "exceeds_max_orders": self.exceeds_max_orders,
        }


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


@dataclass
class ReservationLimitCheck:
    """Which reservation ceilings a requested quantity breaks."""

    requested_quantity: int
    daily_available: int
    slot_available: int
    reservations_available: int

    @property
    def exceeds_daily_limit(self) -> bool:
        return self.requested_quantity > self.daily_available

    @property
    def exceeds_slot_limit(self) -> bool:
        return self.requested_quantity > self.slot_available

    @property
    def exceeds_max_reservations(self) -> bool:
        return self.requested_quantity > self.reservations_available

    @property
    def exceeds_any(self) -> bool:
        return (
            self.exceeds_daily_limit
            or self.exceeds_slot_limit
            or self.exceeds_max_reservations
        )

    def as_dict(self) -> dict:
        return {
            "daily_available": self.daily_available,
            "slot_available": self.slot_available,
            "reservations_available": self.reservations_available,
            "requested_quantity": self.requested_quantity,
            "exceeds_daily_limit": self.exceeds_daily_limit,
            "exceeds_slot_limit": self.exceeds_slot_limit,
            "exceeds_max_reservations": self.exceeds_max_reservations,
        }
