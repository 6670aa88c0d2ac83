"""Capacity queries: booked quantities per day and per slot."""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain import capacity
from app.models.blane import Blane
from app.models.booking import Order, Reservation
from app.utils.dates import local_day_bounds

# Only the canonical value is excluded from capacity sums
CANCELLED = "cancelled"


class CapacityService:
    """Remaining-capacity figures for a Blane, read from existing bookings."""

    async def booked_order_quantity(self, db: AsyncSession, blane_id, day: date) -> int:
        start, end = local_day_bounds(day)
        result = await db.execute(
            select(func.coalesce(func.sum(Order.quantity), 0)).where(
                Order.blane_id == blane_id,
                Order.created_at >= start,
                Order.created_at < end,
                Order.status != CANCELLED,
            )
        )
        return int(result.scalar_one())

    async def booked_reservation_quantity(self, db: AsyncSession, blane_id, day: date) -> int:
        result = await db.execute(
            select(func.coalesce(func.sum(Reservation.quantity), 0)).where(
                Reservation.blane_id == blane_id,
                Reservation.date == day,
                Reservation.status != CANCELLED,
            )
        )
        return int(result.scalar_one())

    async def booked_slot_quantity(
        self,
        db: AsyncSession,
        blane: Blane,
        day: date,
        slot_time: str | None = None,
        end_date: date | None = None,
    ) -> int:
        """Quantity booked in one slot: (date, time) or (date, end_date)."""
        query = select(func.coalesce(func.sum(Reservation.quantity), 0)).where(
            Reservation.blane_id == blane.id,
            Reservation.date == day,
            Reservation.status != CANCELLED,
        )
        if capacity.is_time_slot_type(blane.type_time):
            query = query.where(Reservation.time == slot_time)
        elif end_date is None:
            query = query.where(Reservation.end_date.is_(None))
        else:
            query = query.where(Reservation.end_date == end_date)

        result = await db.execute(query)
        return int(result.scalar_one())

    async def remaining_order_capacity(self, db: AsyncSession, blane: Blane, day: date) -> int:
        if blane.availability_per_day in (None, 0):
            return capacity.remaining_daily_capacity(
                blane.availability_per_day, 0, settings.unlimited_capacity_sentinel
            )
        booked = await self.booked_order_quantity(db, blane.id, day)
        return capacity.remaining_daily_capacity(
            blane.availability_per_day, booked, settings.unlimited_capacity_sentinel
        )

    async def remaining_reservation_capacity(self, db: AsyncSession, blane: Blane, day: date) -> int:
        if blane.availability_per_day in (None, 0):
            return capacity.remaining_daily_capacity(
                blane.availability_per_day, 0, settings.unlimited_capacity_sentinel
            )
        booked = await self.booked_reservation_quantity(db, blane.id, day)
        return capacity.remaining_daily_capacity(
            blane.availability_per_day, booked, settings.unlimited_capacity_sentinel
        )

    async def remaining_slot_capacity(
        self,
        db: AsyncSession,
        blane: Blane,
        day: date,
        slot_time: str | None = None,
        end_date: date | None = None,
    ) -> int:
        booked = await self.booked_slot_quantity(db, blane, day, slot_time, end_date)
        return capacity.remaining_slot_capacity(blane.max_reservation_par_creneau, booked)

    async def available_time_slots(self, db: AsyncSession, blane: Blane, day: date) -> dict:
        """Per-slot availability for a date, plus the daily aggregate."""
        max_per_slot = capacity.slot_limit(blane.max_reservation_par_creneau)
        daily_remaining = await self.remaining_reservation_capacity(db, blane, day)
        daily_limit = blane.availability_per_day
        daily = {
            "remaining": daily_remaining,
            "limit": daily_limit,
            "has_daily_limit": daily_limit is not None,
        }

        if capacity.is_time_slot_type(blane.type_time):
            result = await db.execute(
                select(Reservation.time, func.sum(Reservation.quantity))
                .where(
                    Reservation.blane_id == blane.id,
                    Reservation.date == day,
                    Reservation.time.is_not(None),
                    Reservation.end_date.is_(None),
                    Reservation.status != CANCELLED,
                )
                .group_by(Reservation.time)
            )
            booked_by_time = {row[0]: int(row[1] or 0) for row in result.all()}

            slots = []
            for slot_time in capacity.generate_time_slots(
                blane.heure_debut,
                blane.heure_fin,
                blane.intervale_reservation or settings.default_slot_interval_minutes,
            ):
                current = booked_by_time.get(slot_time, 0)
                full = capacity.is_slot_full(blane.max_reservation_par_creneau, current)
                slots.append({
                    "time": slot_time,
                    "available": not full and daily_remaining > 0,
                    "currentReservations": current,
                    "maxReservations": max_per_slot,
                    "remainingCapacity": max(0, max_per_slot - current),
                    "dailyAvailability": daily_remaining,
                    "dailyLimit": daily_limit,
                })

            return {"type": "time", "slots": slots, "daily_availability": daily}

        current = await self.booked_reservation_quantity(db, blane.id, day)
        full = capacity.is_slot_full(blane.max_reservation_par_creneau, current)
        return {
            "type": "date",
            "availability": {
                "date": day.isoformat(),
                "available": not full and daily_remaining > 0,
                "currentReservations": current,
                "maxReservations": max_per_slot,
                "remainingCapacity": max(0, max_per_slot - current),
                "percentageFull": capacity.percentage_full(blane.max_reservation_par_creneau, current),
                "dailyAvailability": daily_remaining,
                "dailyLimit": daily_limit,
            },
            "daily_availability": daily,
        }


capacity_service = CapacityService()
