import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import Callable

from booking_engine.core.config import Settings, get_settings
from booking_engine.core.exceptions import (
    AppointmentNotFound,
    BookingError,
    BusinessNotFound,
    CustomerNotFound,
    InvalidState,
    OutsideBusinessHours,
    PastStartTime,
    SlotUnavailable,
    StaffNotFound,
    ValidationError,
    returns_result,
)
from booking_engine.core.timeutils import local_to_utc, to_utc_naive
from booking_engine.models import Appointment, AppointmentStatus, Business, Customer, Service, StaffMember
from booking_engine.models.enums import TERMINAL_STATUSES, can_transition
from booking_engine.services.entity_store import EntityStore
from booking_engine.services.locks import StaffLockRegistry
from booking_engine.services.slot_service import SlotService

logger = logging.getLogger(__name__)


class BookingService:
    """
    Service for creating and managing appointments.

    Owns the appointment lifecycle:
    scheduled -> confirmed -> in_progress -> completed, with cancelled and
    no_show as side exits. Every conflict check and the write that follows it
    run under the lock of each staff member involved.
    """

    def __init__(
        self,
        store: EntityStore,
        slot_service: SlotService,
        locks: StaffLockRegistry | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.slots = slot_service
        self.settings = settings or get_settings()
        self.locks = locks or StaffLockRegistry(self.settings.STAFF_LOCK_TIMEOUT_SECONDS)
        self.clock = clock or slot_service.clock

    # ============== Helpers ==============

    async def _require_appointment(self, appointment_id: str) -> Appointment:
        appointment = await self.store.get_appointment(appointment_id)
        if not appointment:
            raise AppointmentNotFound(f"Appointment not found: {appointment_id}")
        return appointment

    @asynccontextmanager
    async def _hold_appointment(self, appointment_id: str, *staff_ids: str):
        """Lock the appointment's staff member (plus staff_ids) and yield a fresh copy."""
        while True:
            appointment = await self._require_appointment(appointment_id)
            async with self.locks.hold_many(appointment.staff_id, *staff_ids):
                current = await self._require_appointment(appointment_id)
                if current.staff_id == appointment.staff_id:
                    yield current
                    return
            logger.debug("Appointment %s changed staff while waiting, retrying", appointment_id)

    async def _require_customer(self, business: Business, customer_id: str) -> Customer:
        customer = await self.store.get_customer(customer_id)
        if not customer or customer.tenant_id != business.tenant_id:
            raise CustomerNotFound(f"Customer not found: {customer_id}")
        return customer

    async def _resolve_customer(
        self,
        business: Business,
        name: str,
        phone: str,
        email: str | None,
    ) -> Customer:
        """Reuse the tenant's customer with this phone, or create one."""
        async with self.locks.hold(f"customer:{business.tenant_id}:{phone}"):
            existing = await self.store.get_customer_by_phone(business.tenant_id, phone)
            if existing:
                return existing
            customer = await self.store.create_customer(
                tenant_id=business.tenant_id,
                name=name,
                phone=phone,
                email=email,
            )
        logger.info("Created customer %s for tenant %s", customer.id, business.tenant_id)
        return customer

    def _ensure_future(self, start_time: datetime) -> None:
        if start_time <= self.clock():
            raise PastStartTime(f"Start time {start_time.isoformat()} is not in the future")

    async def _book_with_staff(
        self,
        business: Business,
        staff: StaffMember,
        service: Service,
        start_time: datetime,
        add_on_ids: list[str],
        customer: Customer | None,
        customer_name: str | None,
        customer_phone: str | None,
        customer_email: str | None,
        notes: str | None,
    ) -> Appointment:
        duration = self.slots.duration_for(service, add_on_ids)
        end_time = start_time + timedelta(minutes=duration)

        async with self.locks.hold(staff.id):
            await self.slots.ensure_interval_bookable(business, staff.id, start_time, end_time)
            if customer is None:
                customer = await self._resolve_customer(business, customer_name, customer_phone, customer_email)
            appointment = await self.store.create_appointment(
                business_id=business.id,
                customer_id=customer.id,
                staff_id=staff.id,
                service_id=service.id,
                add_on_ids=list(add_on_ids),
                start_time=start_time,
                end_time=end_time,
                total_price=self.slots.price_for(service, add_on_ids),
                total_duration_minutes=duration,
                status=AppointmentStatus.SCHEDULED.value,
                notes=notes,
            )

        logger.info(
            "Booked appointment %s with staff %s at %s",
            appointment.id, staff.id, start_time.isoformat(),
        )
        return appointment

    # ============== Booking ==============

    @returns_result
    async def book_appointment(
        self,
        business_id: str,
        customer_name: str | None,
        customer_phone: str | None,
        service_id: str,
        start_time: datetime,
        staff_id: str | None = None,
        customer_email: str | None = None,
        notes: str | None = None,
        add_on_ids: list[str] | None = None,
        customer_id: str | None = None,
    ) -> Appointment:
        """
        Book a new appointment in `scheduled` status.

        The customer is either an existing one (customer_id) or found or
        created by phone within the business's tenant. Without a staff_id,
        capable staff are tried in creation order and the first one free for
        the whole interval gets the appointment.
        """
        if not customer_id:
            if not customer_name or not customer_name.strip():
                raise ValidationError("customer_name is required")
            if not customer_phone or not customer_phone.strip():
                raise ValidationError("customer_phone is required")
        if not service_id:
            raise ValidationError("service_id is required")
        if start_time is None:
            raise ValidationError("start_time is required")

        business = await self.slots.require_business(business_id)
        service = await self.slots.require_service(business, service_id)
        add_on_ids = list(add_on_ids or [])
        self.slots.duration_for(service, add_on_ids)
        customer = await self._require_customer(business, customer_id) if customer_id else None

        start_time = to_utc_naive(start_time)
        self._ensure_future(start_time)

        booking_args = dict(
            business=business,
            service=service,
            start_time=start_time,
            add_on_ids=add_on_ids,
            customer=customer,
            customer_name=customer_name.strip() if customer_name else None,
            customer_phone=customer_phone.strip() if customer_phone else None,
            customer_email=customer_email,
            notes=notes,
        )

        if staff_id:
            staff = await self.slots.require_staff(business, staff_id, service)
            return await self._book_with_staff(staff=staff, **booking_args)

        candidates = await self.slots.capable_staff(business, service)
        if not candidates:
            raise StaffNotFound(f"No staff available for {service.name}")

        failures: list[BookingError] = []
        for staff in candidates:
            try:
                return await self._book_with_staff(staff=staff, **booking_args)
            except (OutsideBusinessHours, SlotUnavailable) as exc:
                failures.append(exc)

        if all(isinstance(failure, OutsideBusinessHours) for failure in failures):
            raise OutsideBusinessHours("No staff member works at the requested time")
        raise SlotUnavailable(
            "No staff available at the requested time",
            retryable=any(failure.retryable for failure in failures),
        )

    # ============== Modification ==============

    @staticmethod
    def _check_modifiable(appointment: Appointment, reschedules: bool) -> None:
        status = AppointmentStatus(appointment.status)
        if status in TERMINAL_STATUSES:
            raise InvalidState(f"Cannot modify a {status.value} appointment")
        if reschedules and status == AppointmentStatus.IN_PROGRESS:
            raise InvalidState("Cannot move an appointment that is in progress")

    @returns_result
    async def modify_appointment(
        self,
        appointment_id: str,
        new_start_time: datetime | None = None,
        new_staff_id: str | None = None,
        new_service_id: str | None = None,
        notes: str | None = None,
        add_on_ids: list[str] | None = None,
    ) -> Appointment:
        """
        Move an appointment and/or change its staff, service, add-ons or notes.

        Only provided fields change. Any change that affects the interval or
        the staff member re-runs the full window and conflict check, with the
        appointment itself excluded from its own conflict set. Both the
        current and the new staff member stay locked until the write is done,
        so a concurrent status change or booking cannot slip in between.
        """
        reschedules = any(
            value is not None for value in (new_start_time, new_staff_id, new_service_id, add_on_ids)
        )
        extra_locks = [new_staff_id] if new_staff_id else []

        async with self._hold_appointment(appointment_id, *extra_locks) as appointment:
            self._check_modifiable(appointment, reschedules)
            if not reschedules:
                if notes is None:
                    return appointment
                return await self.store.update_appointment(appointment.id, notes=notes)

            business = await self.slots.require_business(appointment.business_id)
            service_changed = bool(new_service_id) and new_service_id != appointment.service_id
            service = await self.slots.require_service(business, new_service_id or appointment.service_id)

            if add_on_ids is None:
                # Add-ons belong to a service; a new service starts without them
                add_on_ids = [] if service_changed else list(appointment.add_on_ids or [])
            duration = self.slots.duration_for(service, add_on_ids)

            if new_start_time is not None:
                start_time = to_utc_naive(new_start_time)
                self._ensure_future(start_time)
            else:
                start_time = appointment.start_time
            end_time = start_time + timedelta(minutes=duration)

            staff = await self.slots.require_staff(business, new_staff_id or appointment.staff_id, service)

            changes = {
                "staff_id": staff.id,
                "service_id": service.id,
                "add_on_ids": list(add_on_ids),
                "start_time": start_time,
                "end_time": end_time,
                "total_price": self.slots.price_for(service, add_on_ids),
                "total_duration_minutes": duration,
            }
            if notes is not None:
                changes["notes"] = notes

            await self.slots.ensure_interval_bookable(
                business, staff.id, start_time, end_time, exclude_appointment_id=appointment.id
            )
            updated = await self.store.update_appointment(appointment.id, **changes)

        logger.info(
            "Modified appointment %s: staff %s at %s",
            updated.id, staff.id, start_time.isoformat(),
        )
        return updated

    # ============== Status ==============

    async def _transition(self, appointment_id: str, target: AppointmentStatus, **changes) -> Appointment:
        async with self._hold_appointment(appointment_id) as appointment:
            if not can_transition(appointment.status, target):
                raise InvalidState(
                    f"Cannot move appointment from {appointment.status} to {target.value}"
                )
            updated = await self.store.update_appointment(appointment.id, status=target.value, **changes)

        logger.info("Appointment %s is now %s", updated.id, target.value)
        return updated

    @returns_result
    async def cancel_appointment(self, appointment_id: str, reason: str | None = None) -> Appointment:
        """Cancel an appointment. History is kept; the row is never deleted."""
        return await self._transition(
            appointment_id, AppointmentStatus.CANCELLED, cancellation_reason=reason
        )

    @returns_result
    async def update_status(self, appointment_id: str, new_status: str) -> Appointment:
        """Apply one permitted lifecycle transition."""
        try:
            target = AppointmentStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown appointment status: {new_status}")
        return await self._transition(appointment_id, target)

    # ============== Queries ==============

    @returns_result
    async def get_appointment(self, appointment_id: str) -> Appointment:
        return await self._require_appointment(appointment_id)

    @returns_result
    async def list_appointments(
        self,
        business_id: str,
        status: str | None = None,
        on_date: date | None = None,
        staff_id: str | None = None,
        customer_id: str | None = None,
    ) -> list[Appointment]:
        """Appointments of a business, optionally filtered by status, local date, staff or customer."""
        business = await self.store.get_business(business_id)
        if not business:
            raise BusinessNotFound(f"Business not found: {business_id}")

        if status is not None:
            try:
                status = AppointmentStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown appointment status: {status}")

        start_from = start_before = None
        if on_date is not None:
            start_from = local_to_utc(on_date, datetime.min.time(), self.slots.timezone_of(business))
            start_before = local_to_utc(on_date + timedelta(days=1), datetime.min.time(), self.slots.timezone_of(business))

        return await self.store.list_appointments(
            business_id=business.id,
            customer_id=customer_id,
            staff_id=staff_id,
            status=status,
            start_from=start_from,
            start_before=start_before,
        )

    @returns_result
    async def get_upcoming_appointments(self, customer_id: str) -> list[Appointment]:
        """Future, non-cancelled appointments of a customer, soonest first."""
        customer = await self.store.get_customer(customer_id)
        if not customer:
            raise CustomerNotFound(f"Customer not found: {customer_id}")

        appointments = await self.store.list_appointments(customer_id=customer.id, start_from=self.clock())
        return [
            appointment for appointment in appointments
            if appointment.start_time > self.clock()
            and appointment.status != AppointmentStatus.CANCELLED.value
        ]

    @returns_result
    async def find_appointment_by_phone(self, business_id: str, phone: str) -> Appointment | None:
        """Next upcoming appointment at this business for the caller with this phone."""
        business = await self.store.get_business(business_id)
        if not business:
            raise BusinessNotFound(f"Business not found: {business_id}")

        customer = await self.store.get_customer_by_phone(business.tenant_id, phone)
        if not customer:
            return None

        appointments = await self.store.list_appointments(
            business_id=business.id,
            customer_id=customer.id,
            start_from=self.clock(),
        )
        for appointment in appointments:
            if appointment.start_time > self.clock() and appointment.status != AppointmentStatus.CANCELLED.value:
                return appointment
        return None
