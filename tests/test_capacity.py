from datetime import date, timedelta

from app.domain import capacity
from app.services.capacity_service import capacity_service
from app.utils.dates import local_today


def test_remaining_daily_capacity_limits():
    """Null is unlimited, zero is closed, otherwise limit minus booked."""
    assert capacity.remaining_daily_capacity(None, 40) == capacity.UNLIMITED
    assert capacity.remaining_daily_capacity(0, 0) == 0
    assert capacity.remaining_daily_capacity(5, 4) == 1
    assert capacity.remaining_daily_capacity(5, 7) == 0


def test_slot_limit_defaults_to_three():
    assert capacity.slot_limit(None) == 3
    assert capacity.remaining_slot_capacity(None, 1) == 2
    assert capacity.is_slot_full(2, 2)
    assert not capacity.is_slot_full(2, 1)
    assert capacity.percentage_full(4, 1) == 25


def test_generate_time_slots_inclusive():
    assert capacity.generate_time_slots("10:00", "12:00", 60) == ["10:00", "11:00", "12:00"]
    assert capacity.generate_time_slots("09:00", "10:00", 30) == ["09:00", "09:30", "10:00"]
    assert capacity.generate_time_slots(None, "12:00", 60) == []


def test_is_valid_time():
    assert capacity.is_valid_time("09:30")
    assert not capacity.is_valid_time("9:30")
    assert not capacity.is_valid_time("25:00")


def test_order_limit_check_flags():
    check = capacity.OrderLimitCheck(
        requested_quantity=12, daily_available=9999, stock_available=10, max_orders=0
    )
    assert check.exceeds_stock_limit
    assert not check.exceeds_daily_limit
    assert not check.exceeds_max_orders
    assert check.exceeds_any
    assert check.as_dict()["exceeds_stock_limit"] is True


def test_order_limit_check_max_orders_zero_is_unlimited():
    check = capacity.OrderLimitCheck(
        requested_quantity=50, daily_available=9999, stock_available=100, max_orders=0
    )
    assert not check.exceeds_any

    check.max_orders = 10
    assert check.exceeds_max_orders


def test_week_bounds_monday_to_sunday():
    start, end = capacity.week_bounds(date(2025, 1, 16))  # Thursday
    assert start == date(2025, 1, 13)
    assert end == date(2025, 1, 19)


async def test_booked_quantities_exclude_cancelled(db, reservation_blane, reservation_factory):
    day = local_today() + timedelta(days=2)
    await reservation_factory(reservation_blane, day, quantity=2)
    await reservation_factory(reservation_blane, day, quantity=1)
    await reservation_factory(reservation_blane, day, quantity=3, status="cancelled")

    booked = await capacity_service.booked_reservation_quantity(db, reservation_blane.id, day)
    assert booked == 3
    assert await capacity_service.remaining_reservation_capacity(db, reservation_blane, day) == 2


async def test_remaining_order_capacity_without_daily_limit(db, order_blane, order_factory):
    await order_factory(order_blane, quantity=4)
    remaining = await capacity_service.remaining_order_capacity(db, order_blane, local_today())
    assert remaining == 9999


async def test_remaining_order_capacity_counts_today(db, blane_factory, order_factory):
    blane = await blane_factory(availability_per_day=5)
    await order_factory(blane, quantity=3)
    await order_factory(blane, quantity=1, status="cancelled")

    assert await capacity_service.remaining_order_capacity(db, blane, local_today()) == 2


async def test_slot_capacity_by_time(db, slot_blane, reservation_factory):
    day = local_today() + timedelta(days=1)
    await reservation_factory(slot_blane, day, quantity=2, time="10:00")

    assert await capacity_service.remaining_slot_capacity(db, slot_blane, day, "10:00") == 0
    assert await capacity_service.remaining_slot_capacity(db, slot_blane, day, "11:00") == 2


async def test_available_time_slots(db, slot_blane, reservation_factory):
    day = local_today() + timedelta(days=1)
    await reservation_factory(slot_blane, day, quantity=1, time="11:00")
    await reservation_factory(slot_blane, day, quantity=2, time="12:00")

    result = await capacity_service.available_time_slots(db, slot_blane, day)

    assert result["type"] == "time"
    slots = {slot["time"]: slot for slot in result["slots"]}
    assert list(slots) == ["10:00", "11:00", "12:00"]
    assert slots["11:00"]["currentReservations"] == 1
    assert slots["11:00"]["remainingCapacity"] == 1
    assert slots["10:00"]["available"] is True
    assert slots["11:00"]["available"] is True
    assert slots["12:00"]["available"] is False
    assert result["daily_availability"]["has_daily_limit"] is False


async def test_available_time_slots_date_type(db, reservation_blane, reservation_factory):
    day = local_today() + timedelta(days=1)
    await reservation_factory(reservation_blane, day, quantity=4)

    result = await capacity_service.available_time_slots(db, reservation_blane, day)

    assert result["type"] == "date"
    availability = result["availability"]
    assert availability["currentReservations"] == 4
    assert availability["dailyAvailability"] == 1
    assert availability["percentageFull"] == 40
