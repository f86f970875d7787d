import sqlite3
import uuid
from datetime import time

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_engine.models import AppointmentStatus, StaffSchedule
from tests.base import EngineTestCase, at


class TestEntityStore(EngineTestCase):
    """Lookups, weekday upserts and the per-staff overlap query."""

    async def test_lookup_of_missing_entities_returns_none(self):
        self.assertIsNone(await self.store.get_business("missing"))
        self.assertIsNone(await self.store.get_staff_member("missing"))
        self.assertIsNone(await self.store.get_service("missing"))
        self.assertIsNone(await self.store.get_appointment("missing"))
        self.assertIsNone(await self.store.get_customer_by_phone(self.tenant.id, "+10000000"))
        self.assertIsNone(await self.store.get_staff_schedule_for_day(self.alice.id, 0))

    async def test_business_hours_upsert_keeps_one_row_per_day(self):
        await self.store.set_business_hours(self.business.id, 1, time(8), time(12))
        await self.store.set_business_hours(self.business.id, 1, time(10), time(18))

        rows = await self.store.get_business_hours(self.business.id)
        self.assertEqual(len(rows), 7)

        monday = await self.store.get_business_hours_for_day(self.business.id, 1)
        self.assertEqual((monday.open_time, monday.close_time), (time(10), time(18)))

    async def test_weekly_maps_are_keyed_by_weekday(self):
        hours = await self.store.get_weekly_hours(self.business.id)
        self.assertEqual(sorted(hours), list(range(7)))
        self.assertTrue(hours[0].is_closed)

        schedule = await self.store.get_weekly_schedule(self.alice.id)
        self.assertEqual(sorted(schedule), [1, 2, 3, 4, 5])

    async def test_staff_schedule_upsert_updates_availability(self):
        await self.store.set_staff_schedule(self.alice.id, 2, None, None, is_available=False)
        row = await self.store.get_staff_schedule_for_day(self.alice.id, 2)
        self.assertFalse(row.is_available)
        self.assertEqual(len(await self.store.get_staff_schedule(self.alice.id)), 5)

    async def test_service_assignment_is_idempotent(self):
        await self.store.assign_service(self.alice.id, self.service.id)
        await self.store.assign_service(self.alice.id, self.service.id)
        self.assertEqual(await self.store.list_staff_ids_for_service(self.service.id), [self.alice.id])
        self.assertEqual(await self.store.list_service_ids_for_staff(self.alice.id), [self.service.id])

        await self.store.unassign_service(self.alice.id, self.service.id)
        await self.store.unassign_service(self.alice.id, self.service.id)
        self.assertEqual(await self.store.list_staff_ids_for_service(self.service.id), [])

    async def test_inactive_staff_are_left_out_of_business_listing(self):
        bob = await self.add_staff("Bob")
        await self.store.update_staff_member(bob.id, is_active=False)

        active = await self.store.list_staff_by_business(self.business.id)
        everyone = await self.store.list_staff_by_business(self.business.id, include_inactive=True)
        self.assertEqual([s.id for s in active], [self.alice.id])
        self.assertEqual([s.id for s in everyone], [self.alice.id, bob.id])

    async def test_active_appointments_overlapping_a_range(self):
        customer = await self.store.create_customer(tenant_id=self.tenant.id, name="Sam", phone="+15550101")
        common = dict(
            business_id=self.business.id,
            customer_id=customer.id,
            staff_id=self.alice.id,
            service_id=self.service.id,
        )
        kept = await self.store.create_appointment(start_time=at(10), end_time=at(11), **common)
        await self.store.create_appointment(
            start_time=at(11), end_time=at(12), status=AppointmentStatus.CANCELLED.value, **common
        )
        await self.store.create_appointment(start_time=at(13), end_time=at(14), **common)

        found = await self.store.list_active_appointments_for_staff(self.alice.id, at(10, 30), at(13))
        self.assertEqual([a.id for a in found], [kept.id])

        excluded = await self.store.list_active_appointments_for_staff(
            self.alice.id, at(10, 30), at(13), exclude_appointment_id=kept.id
        )
        self.assertEqual(excluded, [])

    async def test_update_of_missing_entity_returns_none(self):
        self.assertIsNone(await self.store.update_appointment("missing", notes="x"))

    async def test_faqs_by_business(self):
        faq = await self.store.create_faq(business_id=self.business.id, question="Parking?", answer="Behind the shop")
        await self.store.create_faq(business_id=self.business.id, question="Old", answer="Gone", is_active=False)

        self.assertEqual([f.id for f in await self.store.list_faqs_by_business(self.business.id)], [faq.id])
        self.assertEqual((await self.store.get_faq(faq.id)).answer, "Behind the shop")

    async def test_faq_update(self):
        faq = await self.store.create_faq(business_id=self.business.id, question="Parking?", answer="No")
        await self.store.update_faq(faq.id, answer="Behind the shop", is_active=False)

        self.assertEqual((await self.store.get_faq(faq.id)).answer, "Behind the shop")
        self.assertEqual(await self.store.list_faqs_by_business(self.business.id), [])

    async def test_tenant_and_its_businesses(self):
        self.assertEqual((await self.store.get_tenant(self.tenant.id)).name, "Acme Group")
        self.assertIsNone(await self.store.get_tenant("missing"))

        uptown = await self.store.create_business(tenant_id=self.tenant.id, name="Uptown Salon")
        other = await self.store.create_tenant(name="Other Group")
        await self.store.create_business(tenant_id=other.id, name="Elsewhere")

        businesses = await self.store.list_businesses_by_tenant(self.tenant.id)
        self.assertEqual({b.id for b in businesses}, {self.business.id, uptown.id})

    async def test_inactive_services_are_left_out_of_business_listing(self):
        retired = await self.store.create_service(
            business_id=self.business.id, name="Perm", duration_minutes=120, is_active=False
        )

        active = await self.store.list_services_by_business(self.business.id)
        everyone = await self.store.list_services_by_business(self.business.id, include_inactive=True)
        self.assertEqual([s.id for s in active], [self.service.id])
        self.assertEqual({s.id for s in everyone}, {self.service.id, retired.id})

    async def test_customer_update(self):
        customer = await self.store.create_customer(tenant_id=self.tenant.id, name="Sam", phone="+15550101")
        updated = await self.store.update_customer(customer.id, email="sam@example.com")

        self.assertEqual(updated.email, "sam@example.com")
        self.assertEqual((await self.store.get_customer(customer.id)).email, "sam@example.com")
        self.assertIsNone(await self.store.update_customer("missing", name="Nobody"))

    async def test_weekly_hours_write_is_all_or_nothing(self):
        with self.assertRaises(IntegrityError):
            await self.store.set_weekly_hours(self.business.id, {
                1: {"open_time": time(10), "close_time": time(12), "is_closed": False},
                9: {"open_time": time(10), "close_time": time(12), "is_closed": False},
            })

        monday = await self.store.get_business_hours_for_day(self.business.id, 1)
        self.assertEqual((monday.open_time, monday.close_time), (time(9), time(17)))

    async def test_upsert_recovers_when_another_writer_inserts_the_day_first(self):
        bob = await self.add_staff("Bob", days=[])
        inserted = []

        def insert_competing_row(session, flush_context, instances):
            # Commit the same (staff, day) row from another connection just before our insert
            if inserted or not any(isinstance(obj, StaffSchedule) for obj in session.new):
                return
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO staff_schedules (id, staff_id, day_of_week, is_available) VALUES (?, ?, 0, 0)",
                    (str(uuid.uuid4()), bob.id),
                )
            conn.close()
            inserted.append(True)

        event.listen(Session, "before_flush", insert_competing_row)
        try:
            row = await self.store.set_staff_schedule(bob.id, 0, time(10), time(14))
        finally:
            event.remove(Session, "before_flush", insert_competing_row)

        self.assertEqual(inserted, [True])
        self.assertEqual((row.start_time, row.end_time, row.is_available), (time(10), time(14), True))
        rows = await self.store.get_staff_schedule(bob.id)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].start_time, time(10))
