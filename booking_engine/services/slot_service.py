import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable

from booking_engine.core.config import Settings, get_settings
from booking_engine.core.exceptions import (
    BusinessNotFound,
    OutsideBusinessHours,
    ServiceNotAssignedToStaff,
    ServiceNotFound,
    SlotUnavailable,
    StaffNotFound,
    ValidationError,
    returns_result,
)
from booking_engine.core.timeutils import (
    day_of_week,
    intersect_times,
    local_date,
    local_to_utc,
    overlaps,
    to_utc_naive,
    utcnow,
)
from booking_engine.models import Appointment, Business, Service, StaffMember
from booking_engine.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class TimeSlot:
    staff_id: str
    staff_name: str
    start_time: datetime
    end_time: datetime
    is_available: bool


@dataclass
class SlotQuery:
    """Everything resolved once before generating slots for one or more days."""
    business: Business
    service: Service | None
    duration_minutes: int
    staff: list[StaffMember]
    step_minutes: int
    buffer_minutes: int


class SlotService:
    """
    Service for computing bookable time slots.

    Handles:
    - Generating slots for a business on a date, per staff member
    - Intersecting business hours with each staff member's schedule
    - Checking whether an exact interval can be booked
    - Searching forward for the next open slot
    """

    def __init__(
        self,
        store: EntityStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock

    # ============== Resolution ==============

    async def require_business(self, business_id: str) -> Business:
        business = await self.store.get_business(business_id)
        if not business:
            raise BusinessNotFound(f"Business not found: {business_id}")
        return business

    async def require_service(self, business: Business, service_id: str) -> Service:
        service = await self.store.get_service(service_id)
        if not service or service.business_id != business.id or not service.is_active:
            raise ServiceNotFound(f"Service not found: {service_id}")
        return service

    async def require_staff(self, business: Business, staff_id: str, service: Service | None = None) -> StaffMember:
        staff = await self.store.get_staff_member(staff_id)
        if not staff or staff.business_id != business.id or not staff.is_active:
            raise StaffNotFound(f"Staff member not found: {staff_id}")

        if service is not None:
            assigned = await self.store.list_staff_ids_for_service(service.id)
            # A service without assignments can be performed by anyone
            if assigned and staff.id not in assigned:
                raise ServiceNotAssignedToStaff(
                    f"{staff.name} does not perform {service.name}"
                )
        return staff

    async def capable_staff(self, business: Business, service: Service | None) -> list[StaffMember]:
        """Active staff of the business, in creation order, limited to the service's assignees."""
        staff = await self.store.list_staff_by_business(business.id)
        if service is None:
            return staff
        assigned = set(await self.store.list_staff_ids_for_service(service.id))
        if not assigned:
            return staff
        return [member for member in staff if member.id in assigned]

    def duration_for(self, service: Service | None, add_on_ids: list[str] | None = None) -> int:
        if service is None:
            if add_on_ids:
                raise ValidationError("Add-ons require a service")
            return self.settings.DEFAULT_SLOT_DURATION_MINUTES

        add_ons = {add_on.id: add_on for add_on in service.add_ons}
        extra = 0
        for add_on_id in add_on_ids or []:
            if add_on_id not in add_ons:
                raise ValidationError(f"Add-on {add_on_id} does not belong to {service.name}")
            extra += add_ons[add_on_id].duration_minutes
        return service.duration_minutes + extra

    def price_for(self, service: Service, add_on_ids: list[str] | None = None) -> Decimal:
        """Service price plus the prices of the chosen add-ons. Ids are checked by duration_for."""
        add_ons = {add_on.id: add_on for add_on in service.add_ons}
        total = Decimal(service.price or 0)
        for add_on_id in add_on_ids or []:
            total += Decimal(add_ons[add_on_id].price or 0)
        return total

    def timezone_of(self, business: Business) -> str:
        return business.timezone or self.settings.DEFAULT_TIMEZONE

    async def scheduling_settings(self, business: Business) -> tuple[int | None, int]:
        """(slot interval override, buffer minutes) for a business."""
        tenant = await self.store.get_tenant_for_business(business.id)
        interval = business.slot_interval_minutes
        buffer_minutes = 0
        if tenant:
            interval = interval or tenant.slot_interval_minutes
            buffer_minutes = tenant.appointment_buffer_minutes or 0
        return interval or self.settings.DEFAULT_SLOT_INTERVAL_MINUTES, buffer_minutes

    async def _build_query(
        self,
        business_id: str,
        service_id: str | None,
        staff_id: str | None,
        add_on_ids: list[str] | None,
    ) -> SlotQuery:
        business = await self.require_business(business_id)
        service = await self.require_service(business, service_id) if service_id else None
        duration = self.duration_for(service, add_on_ids)

        if staff_id:
            staff = [await self.require_staff(business, staff_id, service)]
        else:
            staff = await self.capable_staff(business, service)

        interval, buffer_minutes = await self.scheduling_settings(business)
        return SlotQuery(
            business=business,
            service=service,
            duration_minutes=duration,
            staff=staff,
            step_minutes=interval or duration,
            buffer_minutes=buffer_minutes,
        )

    # ============== Windows ==============

    async def _business_hours_window(self, business_id: str, dow: int) -> tuple[time, time] | None:
        hours = await self.store.get_business_hours_for_day(business_id, dow)
        if not hours or hours.is_closed or not hours.open_time or not hours.close_time:
            return None
        return hours.open_time, hours.close_time

    async def _staff_window(
        self,
        business: Business,
        staff_id: str,
        target_date: date,
        business_hours: tuple[time, time],
    ) -> tuple[datetime, datetime] | None:
        """Effective window in UTC: business hours intersected with the staff schedule."""
        schedule = await self.store.get_staff_schedule_for_day(staff_id, day_of_week(target_date))
        if not schedule or not schedule.is_available or not schedule.start_time or not schedule.end_time:
            return None

        window = intersect_times(business_hours, (schedule.start_time, schedule.end_time))
        if window is None:
            return None

        return (
            local_to_utc(target_date, window[0], self.timezone_of(business)),
            local_to_utc(target_date, window[1], self.timezone_of(business)),
        )

    async def effective_window(
        self, business: Business, staff_id: str, target_date: date
    ) -> tuple[datetime, datetime] | None:
        business_hours = await self._business_hours_window(business.id, day_of_week(target_date))
        if business_hours is None:
            return None
        return await self._staff_window(business, staff_id, target_date, business_hours)

    @staticmethod
    def _conflicting(
        start: datetime,
        end: datetime,
        appointments: list[Appointment],
        buffer_minutes: int,
    ) -> list[Appointment]:
        buffer = timedelta(minutes=buffer_minutes)
        return [
            appointment for appointment in appointments
            if overlaps(start, end + buffer, appointment.start_time, appointment.end_time + buffer)
        ]

    # ============== Slot Generation ==============

    async def _slots_for_day(self, query: SlotQuery, target_date: date) -> list[TimeSlot]:
        if not query.staff:
            return []

        business_hours = await self._business_hours_window(query.business.id, day_of_week(target_date))
        if business_hours is None:
            return []

        duration = timedelta(minutes=query.duration_minutes)
        step = timedelta(minutes=query.step_minutes)
        buffer = timedelta(minutes=query.buffer_minutes)
        ordered = []

        for order, staff in enumerate(query.staff):
            window = await self._staff_window(query.business, staff.id, target_date, business_hours)
            if window is None:
                continue
            window_start, window_end = window

            booked = await self.store.list_active_appointments_for_staff(
                staff.id, window_start - buffer, window_end + buffer
            )

            current = window_start
            while current + duration <= window_end:
                slot_end = current + duration
                taken = self._conflicting(current, slot_end, booked, query.buffer_minutes)
                ordered.append((current, order, TimeSlot(
                    staff_id=staff.id,
                    staff_name=staff.name,
                    start_time=current,
                    end_time=slot_end,
                    is_available=not taken,
                )))
                current += step

        ordered.sort(key=lambda item: (item[0], item[1]))
        return [slot for _, _, slot in ordered]

    async def ensure_interval_bookable(
        self,
        business: Business,
        staff_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: str | None = None,
    ) -> None:
        """
        Raise unless [start_time, end_time) fits the staff member's effective
        window for that weekday and overlaps none of their appointments.
        """
        target_date = local_date(start_time, self.timezone_of(business))
        window = await self.effective_window(business, staff_id, target_date)
        if window is None or start_time < window[0] or end_time > window[1]:
            raise OutsideBusinessHours()

        _, buffer_minutes = await self.scheduling_settings(business)
        buffer = timedelta(minutes=buffer_minutes)
        existing = await self.store.list_active_appointments_for_staff(
            staff_id,
            start_time - buffer,
            end_time + buffer,
            exclude_appointment_id=exclude_appointment_id,
        )
        if existing:
            raise SlotUnavailable()

    # ============== Public Operations ==============

    @returns_result
    async def get_available_slots(
        self,
        business_id: str,
        target_date: date,
        service_id: str | None = None,
        staff_id: str | None = None,
        add_on_ids: list[str] | None = None,
    ) -> list[TimeSlot]:
        """
        Get every candidate slot for a business on a date.

        Unavailable candidates are included with is_available=False, so
        counting open slots is a plain filter. A closed day, a business
        without staff, or staff without a schedule yield an empty list.
        """
        query = await self._build_query(business_id, service_id, staff_id, add_on_ids)
        return await self._slots_for_day(query, target_date)

    @returns_result
    async def find_next_available_slot(
        self,
        business_id: str,
        service_id: str,
        staff_id: str | None = None,
        add_on_ids: list[str] | None = None,
    ) -> TimeSlot | None:
        """First available slot starting after now, searching a bounded number of days."""
        query = await self._build_query(business_id, service_id, staff_id, add_on_ids)
        now = self.clock()
        today = local_date(now, self.timezone_of(query.business))

        for offset in range(self.settings.BOOKING_SEARCH_HORIZON_DAYS):
            slots = await self._slots_for_day(query, today + timedelta(days=offset))
            for slot in slots:
                if slot.is_available and slot.start_time > now:
                    return slot

        logger.info(
            "No open slot for business %s service %s within %s days",
            business_id, service_id, self.settings.BOOKING_SEARCH_HORIZON_DAYS,
        )
        return None

    @returns_result
    async def check_slot_available(
        self,
        business_id: str,
        staff_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: str | None = None,
    ) -> bool:
        business = await self.require_business(business_id)
        await self.require_staff(business, staff_id)
        await self.ensure_interval_bookable(
            business,
            staff_id,
            to_utc_naive(start_time),
            to_utc_naive(end_time),
            exclude_appointment_id,
        )
        return True

