import logging

from booking_engine.core.exceptions import (
    BusinessNotFound,
    StaffNotFound,
    ValidationError,
    returns_result,
)
from booking_engine.core.timeutils import DAY_NAMES, format_hhmm, parse_hhmm, validate_day_of_week
from booking_engine.models import BusinessHours, StaffSchedule
from booking_engine.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


def _parse_window(start: str | None, end: str | None, off: bool):
    """Validate an "HH:MM" pair. Times may be omitted only on a day off."""
    if off and start is None and end is None:
        return None, None
    if start is None or end is None:
        raise ValidationError("Both start and end times are required")
    start_time = parse_hhmm(start)
    end_time = parse_hhmm(end)
    if not off and start_time >= end_time:
        raise ValidationError(f"Closing time {end} must be after opening time {start}")
    return start_time, end_time


def _parse_week(items: list[dict], start_key: str, end_key: str, off) -> dict[int, tuple]:
    """Validate every day before anything is written. Returns {day: (start, end)}."""
    parsed = {}
    for item in items:
        day = validate_day_of_week(item.get("day_of_week"))
        if day in parsed:
            raise ValidationError(f"{DAY_NAMES[day]} is listed more than once")
        parsed[day] = _parse_window(item.get(start_key), item.get(end_key), off(item))
    return parsed


class HoursService:
    """
    Service for weekly business hours and staff schedules.

    Validates day-of-week and time strings before they reach the store,
    which then keeps exactly one row per weekday.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    async def _require_business(self, business_id: str) -> None:
        if not await self.store.get_business(business_id):
            raise BusinessNotFound(f"Business not found: {business_id}")

    async def _require_staff(self, staff_id: str) -> None:
        if not await self.store.get_staff_member(staff_id):
            raise StaffNotFound(f"Staff member not found: {staff_id}")

    # ============== Business Hours ==============

    @returns_result
    async def set_business_hours(
        self,
        business_id: str,
        day_of_week: int,
        open_time: str | None,
        close_time: str | None,
        is_closed: bool = False,
    ) -> BusinessHours:
        validate_day_of_week(day_of_week)
        await self._require_business(business_id)

        open_at, close_at = _parse_window(open_time, close_time, is_closed)
        row = await self.store.set_business_hours(business_id, day_of_week, open_at, close_at, is_closed)
        logger.info(
            "Business %s hours for %s set to %s",
            business_id, DAY_NAMES[day_of_week],
            "closed" if is_closed else f"{open_time}-{close_time}",
        )
        return row

    @returns_result
    async def set_weekly_business_hours(self, business_id: str, items: list[dict]) -> list[BusinessHours]:
        """Replace the hours of several days. Nothing is written unless every day is valid."""
        parsed = _parse_week(items, "open_time", "close_time", lambda item: item.get("is_closed", False))
        await self._require_business(business_id)

        closed = {item["day_of_week"]: item.get("is_closed", False) for item in items}
        rows = await self.store.set_weekly_hours(business_id, {
            day: {"open_time": open_at, "close_time": close_at, "is_closed": closed[day]}
            for day, (open_at, close_at) in parsed.items()
        })
        logger.info("Business %s hours updated for %s day(s)", business_id, len(rows))
        return rows

    @returns_result
    async def update_business_day(self, business_id: str, day_of_week: int, **changes) -> BusinessHours:
        """
        Change some fields of one day's hours; omitted fields keep their
        stored values. Accepts open_time, close_time and is_closed.
        """
        validate_day_of_week(day_of_week)
        await self._require_business(business_id)

        row = await self.store.get_business_hours_for_day(business_id, day_of_week)
        current = {
            "open_time": format_hhmm(row.open_time) if row else None,
            "close_time": format_hhmm(row.close_time) if row else None,
            "is_closed": row.is_closed if row else False,
        }
        unknown = set(changes) - set(current)
        if unknown:
            raise ValidationError(f"Unknown hours field(s): {', '.join(sorted(unknown))}")
        merged = {**current, **changes}

        open_at, close_at = _parse_window(merged["open_time"], merged["close_time"], merged["is_closed"])
        return await self.store.set_business_hours(
            business_id, day_of_week, open_at, close_at, merged["is_closed"]
        )

    @returns_result
    async def get_weekly_hours(self, business_id: str) -> list[dict]:
        """All seven days; a day without a row is reported closed."""
        await self._require_business(business_id)

        weekly = await self.store.get_weekly_hours(business_id)
        days = []
        for day in range(7):
            row = weekly.get(day)
            days.append({
                "day_of_week": day,
                "day_name": DAY_NAMES[day],
                "open_time": format_hhmm(row.open_time) if row else None,
                "close_time": format_hhmm(row.close_time) if row else None,
                "is_closed": row.is_closed if row else True,
            })
        return days

    # ============== Staff Schedules ==============

    @returns_result
    async def set_staff_schedule(
        self,
        staff_id: str,
        day_of_week: int,
        start_time: str | None,
        end_time: str | None,
        is_available: bool = True,
    ) -> StaffSchedule:
        validate_day_of_week(day_of_week)
        await self._require_staff(staff_id)

        start_at, end_at = _parse_window(start_time, end_time, not is_available)
        row = await self.store.set_staff_schedule(staff_id, day_of_week, start_at, end_at, is_available)
        logger.info(
            "Staff %s schedule for %s set to %s",
            staff_id, DAY_NAMES[day_of_week],
            f"{start_time}-{end_time}" if is_available else "off",
        )
        return row

    @returns_result
    async def set_weekly_staff_schedule(self, staff_id: str, items: list[dict]) -> list[StaffSchedule]:
        parsed = _parse_week(items, "start_time", "end_time", lambda item: not item.get("is_available", True))
        await self._require_staff(staff_id)

        available = {item["day_of_week"]: item.get("is_available", True) for item in items}
        rows = await self.store.set_weekly_schedule(staff_id, {
            day: {"start_time": start_at, "end_time": end_at, "is_available": available[day]}
            for day, (start_at, end_at) in parsed.items()
        })
        logger.info("Staff %s schedule updated for %s day(s)", staff_id, len(rows))
        return rows

    @returns_result
    async def get_weekly_schedule(self, staff_id: str) -> list[dict]:
        await self._require_staff(staff_id)

        weekly = await self.store.get_weekly_schedule(staff_id)
        days = []
        for day in range(7):
            row = weekly.get(day)
            days.append({
                "day_of_week": day,
                "day_name": DAY_NAMES[day],
                "start_time": format_hhmm(row.start_time) if row else None,
                "end_time": format_hhmm(row.end_time) if row else None,
                "is_available": row.is_available if row else False,
            })
        return days
