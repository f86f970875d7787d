import logging
from datetime import datetime, time
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from booking_engine.core.timeutils import utcnow
from booking_engine.models import (
    FAQ,
    Appointment,
    AppointmentStatus,
    Business,
    BusinessHours,
    Customer,
    Service,
    ServiceAddOn,
    StaffMember,
    StaffSchedule,
    StaffService,
    Tenant,
)

logger = logging.getLogger(__name__)


class EntityStore:
    """
    Authoritative holder of all scheduling entities.

    Handles:
    - Lookup by id (None when absent, never an exception)
    - Collections by foreign key, backed by indexed queries
    - Upsert-by-weekday for business hours and staff schedules

    Each call runs in its own short transaction. Returned entities are
    detached and keep their loaded attributes. No business rules live here;
    database failures propagate to the caller unchanged.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    # ============== Generic Helpers ==============

    async def _get(self, model, entity_id: str | None):
        if not entity_id:
            return None
        async with self._session_factory() as session:
            return await session.get(model, entity_id)

    async def _add(self, entity):
        async with self._session_factory.begin() as session:
            session.add(entity)
        return entity

    async def _update(self, model, entity_id: str, changes: dict[str, Any]):
        async with self._session_factory.begin() as session:
            entity = await session.get(model, entity_id)
            if entity is None:
                return None
            for field, value in changes.items():
                setattr(entity, field, value)
            entity.updated_at = utcnow()
        return entity

    async def _all(self, query) -> list:
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _first(self, query):
        async with self._session_factory() as session:
            result = await session.execute(query.limit(1))
            return result.scalars().first()

    async def _upsert_day_rows(self, model, owner_attr, owner_id: str, days: dict[int, dict[str, Any]]) -> list:
        """Insert or update the rows for (owner, weekday) of every given day in one transaction."""
        for attempt in range(2):
            try:
                async with self._session_factory.begin() as session:
                    result = await session.execute(
                        select(model).where(owner_attr == owner_id, model.day_of_week.in_(list(days)))
                    )
                    existing = {row.day_of_week: row for row in result.scalars().all()}
                    rows = []
                    for day, values in sorted(days.items()):
                        row = existing.get(day)
                        if row is None:
                            row = model(day_of_week=day, **{owner_attr.key: owner_id}, **values)
                            session.add(row)
                        else:
                            for field, value in values.items():
                                setattr(row, field, value)
                            row.updated_at = utcnow()
                        rows.append(row)
                return rows
            except IntegrityError:
                # A concurrent call inserted one of the days first; update it instead
                if attempt:
                    raise
                logger.debug("Retrying %s upsert for %s", model.__tablename__, owner_id)

    # ============== Tenants ==============

    async def create_tenant(self, **fields) -> Tenant:
        return await self._add(Tenant(**fields))

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        return await self._get(Tenant, tenant_id)

    async def get_tenant_for_business(self, business_id: str) -> Tenant | None:
        return await self._first(
            select(Tenant).join(Business, Business.tenant_id == Tenant.id).where(Business.id == business_id)
        )

    async def update_tenant(self, tenant_id: str, **changes) -> Tenant | None:
        return await self._update(Tenant, tenant_id, changes)

    # ============== Businesses ==============

    async def create_business(self, **fields) -> Business:
        return await self._add(Business(**fields))

    async def get_business(self, business_id: str) -> Business | None:
        return await self._get(Business, business_id)

    async def list_businesses_by_tenant(self, tenant_id: str) -> list[Business]:
        return await self._all(
            select(Business).where(Business.tenant_id == tenant_id).order_by(Business.created_at)
        )

    async def update_business(self, business_id: str, **changes) -> Business | None:
        return await self._update(Business, business_id, changes)

    # ============== Business Hours ==============

    async def get_business_hours(self, business_id: str) -> list[BusinessHours]:
        return await self._all(
            select(BusinessHours)
            .where(BusinessHours.business_id == business_id)
            .order_by(BusinessHours.day_of_week)
        )

    async def get_weekly_hours(self, business_id: str) -> dict[int, BusinessHours]:
        return {row.day_of_week: row for row in await self.get_business_hours(business_id)}

    async def get_business_hours_for_day(self, business_id: str, day_of_week: int) -> BusinessHours | None:
        return await self._first(
            select(BusinessHours).where(
                BusinessHours.business_id == business_id,
                BusinessHours.day_of_week == day_of_week,
            )
        )

    async def set_business_hours(
        self,
        business_id: str,
        day_of_week: int,
        open_time: time | None,
        close_time: time | None,
        is_closed: bool = False,
    ) -> BusinessHours:
        rows = await self.set_weekly_hours(
            business_id,
            {day_of_week: {"open_time": open_time, "close_time": close_time, "is_closed": is_closed}},
        )
        return rows[0]

    async def set_weekly_hours(self, business_id: str, days: dict[int, dict[str, Any]]) -> list[BusinessHours]:
        """Write several days at once; either every day is stored or none is."""
        return await self._upsert_day_rows(BusinessHours, BusinessHours.business_id, business_id, days)

    # ============== Staff ==============

    async def create_staff_member(self, **fields) -> StaffMember:
        return await self._add(StaffMember(**fields))

    async def get_staff_member(self, staff_id: str) -> StaffMember | None:
        return await self._get(StaffMember, staff_id)

    async def list_staff_by_business(self, business_id: str, include_inactive: bool = False) -> list[StaffMember]:
        query = select(StaffMember).where(StaffMember.business_id == business_id)
        if not include_inactive:
            query = query.where(StaffMember.is_active == True)  # noqa: E712
        return await self._all(query.order_by(StaffMember.created_at, StaffMember.id))

    async def update_staff_member(self, staff_id: str, **changes) -> StaffMember | None:
        return await self._update(StaffMember, staff_id, changes)

    # ============== Staff Schedules ==============

    async def get_staff_schedule(self, staff_id: str) -> list[StaffSchedule]:
        return await self._all(
            select(StaffSchedule)
            .where(StaffSchedule.staff_id == staff_id)
            .order_by(StaffSchedule.day_of_week)
        )

    async def get_weekly_schedule(self, staff_id: str) -> dict[int, StaffSchedule]:
        return {row.day_of_week: row for row in await self.get_staff_schedule(staff_id)}

    async def get_staff_schedule_for_day(self, staff_id: str, day_of_week: int) -> StaffSchedule | None:
        return await self._first(
            select(StaffSchedule).where(
                StaffSchedule.staff_id == staff_id,
                StaffSchedule.day_of_week == day_of_week,
            )
        )

    async def set_staff_schedule(
        self,
        staff_id: str,
        day_of_week: int,
        start_time: time | None,
        end_time: time | None,
        is_available: bool = True,
    ) -> StaffSchedule:
        rows = await self.set_weekly_schedule(
            staff_id,
            {day_of_week: {"start_time": start_time, "end_time": end_time, "is_available": is_available}},
        )
        return rows[0]

    async def set_weekly_schedule(self, staff_id: str, days: dict[int, dict[str, Any]]) -> list[StaffSchedule]:
        return await self._upsert_day_rows(StaffSchedule, StaffSchedule.staff_id, staff_id, days)

    # ============== Services ==============

    async def create_service(self, add_ons: list[dict] | None = None, **fields) -> Service:
        service = Service(**fields)
        service.add_ons = [ServiceAddOn(**add_on) for add_on in add_ons or []]
        return await self._add(service)

    async def get_service(self, service_id: str) -> Service | None:
        return await self._get(Service, service_id)

    async def list_services_by_business(self, business_id: str, include_inactive: bool = False) -> list[Service]:
        query = select(Service).where(Service.business_id == business_id)
        if not include_inactive:
            query = query.where(Service.is_active == True)  # noqa: E712
        return await self._all(query.order_by(Service.created_at))

    async def update_service(self, service_id: str, **changes) -> Service | None:
        return await self._update(Service, service_id, changes)

    # ============== Staff <-> Service ==============

    async def assign_service(self, staff_id: str, service_id: str) -> None:
        async with self._session_factory.begin() as session:
            if await session.get(StaffService, (staff_id, service_id)) is None:
                session.add(StaffService(staff_id=staff_id, service_id=service_id))

    async def unassign_service(self, staff_id: str, service_id: str) -> None:
        async with self._session_factory.begin() as session:
            link = await session.get(StaffService, (staff_id, service_id))
            if link is not None:
                await session.delete(link)

    async def list_staff_ids_for_service(self, service_id: str) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StaffService.staff_id)
                .where(StaffService.service_id == service_id)
                .order_by(StaffService.created_at)
            )
            return list(result.scalars().all())

    async def list_service_ids_for_staff(self, staff_id: str) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StaffService.service_id).where(StaffService.staff_id == staff_id)
            )
            return list(result.scalars().all())

    # ============== Customers ==============

    async def create_customer(self, **fields) -> Customer:
        return await self._add(Customer(**fields))

    async def get_customer(self, customer_id: str) -> Customer | None:
        return await self._get(Customer, customer_id)

    async def get_customer_by_phone(self, tenant_id: str, phone: str) -> Customer | None:
        return await self._first(
            select(Customer)
            .where(Customer.tenant_id == tenant_id, Customer.phone == phone)
            .order_by(Customer.created_at)
        )

    async def list_customers_by_tenant(self, tenant_id: str) -> list[Customer]:
        return await self._all(
            select(Customer).where(Customer.tenant_id == tenant_id).order_by(Customer.created_at)
        )

    async def update_customer(self, customer_id: str, **changes) -> Customer | None:
        return await self._update(Customer, customer_id, changes)

    # ============== Appointments ==============

    async def create_appointment(self, **fields) -> Appointment:
        return await self._add(Appointment(**fields))

    async def get_appointment(self, appointment_id: str) -> Appointment | None:
        return await self._get(Appointment, appointment_id)

    async def update_appointment(self, appointment_id: str, **changes) -> Appointment | None:
        return await self._update(Appointment, appointment_id, changes)

    async def list_appointments(
        self,
        business_id: str | None = None,
        customer_id: str | None = None,
        staff_id: str | None = None,
        status: str | None = None,
        start_from: datetime | None = None,
        start_before: datetime | None = None,
    ) -> list[Appointment]:
        query = select(Appointment)
        if business_id:
            query = query.where(Appointment.business_id == business_id)
        if customer_id:
            query = query.where(Appointment.customer_id == customer_id)
        if staff_id:
            query = query.where(Appointment.staff_id == staff_id)
        if status:
            query = query.where(Appointment.status == status)
        if start_from:
            query = query.where(Appointment.start_time >= start_from)
        if start_before:
            query = query.where(Appointment.start_time < start_before)
        return await self._all(query.order_by(Appointment.start_time, Appointment.created_at))

    async def list_active_appointments_for_staff(
        self,
        staff_id: str,
        range_start: datetime,
        range_end: datetime,
        exclude_appointment_id: str | None = None,
    ) -> list[Appointment]:
        """Non-cancelled appointments of a staff member overlapping [range_start, range_end)."""
        query = select(Appointment).where(
            Appointment.staff_id == staff_id,
            Appointment.status != AppointmentStatus.CANCELLED.value,
            Appointment.start_time < range_end,
            Appointment.end_time > range_start,
        )
        if exclude_appointment_id:
            query = query.where(Appointment.id != exclude_appointment_id)
        return await self._all(query.order_by(Appointment.start_time))

    # ============== FAQs ==============

    async def create_faq(self, **fields) -> FAQ:
        return await self._add(FAQ(**fields))

    async def get_faq(self, faq_id: str) -> FAQ | None:
        return await self._get(FAQ, faq_id)

    async def list_faqs_by_business(self, business_id: str, include_inactive: bool = False) -> list[FAQ]:
        query = select(FAQ).where(FAQ.business_id == business_id)
        if not include_inactive:
            query = query.where(FAQ.is_active == True)  # noqa: E712
        return await self._all(query.order_by(FAQ.created_at))

    async def update_faq(self, faq_id: str, **changes) -> FAQ | None:
        return await self._update(FAQ, faq_id, changes)
