import httpx
from sqlalchemy import text

from booking_engine.main import configure_services, create_app
from tests.base import EngineTestCase


class TestBookingApi(EngineTestCase):
    """HTTP status mapping and request/response shapes."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.app = create_app()
        configure_services(self.app, self.session_factory, self.settings, clock=lambda: self.now)
        self.client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app),
            base_url="http://testserver",
        )

    async def asyncTearDown(self):
        await self.client.aclose()
        await super().asyncTearDown()

    def appointment_body(self, start="2026-10-19T10:00:00Z", **overrides):
        body = {
            "customer_name": "Jamie Doe",
            "customer_phone": "+15550100",
            "service_id": self.service.id,
            "start_time": start,
        }
        body.update(overrides)
        return body

    async def create_appointment(self, **kwargs):
        return await self.client.post(
            f"/api/v1/businesses/{self.business.id}/appointments",
            json=self.appointment_body(**kwargs),
        )

    async def test_health(self):
        response = await self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})

    async def test_availability(self):
        response = await self.client.get(
            f"/api/v1/businesses/{self.business.id}/availability",
            params={"date": "2026-10-19", "service_id": self.service.id},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["available_count"], 8)
        self.assertEqual(data["slots"][0]["start_time"], "2026-10-19T09:00:00")

    async def test_availability_bad_date(self):
        response = await self.client.get(
            f"/api/v1/businesses/{self.business.id}/availability",
            params={"date": "19/10/2026"},
        )
        self.assertEqual(response.status_code, 400)

    async def test_next_available(self):
        response = await self.client.get(
            f"/api/v1/businesses/{self.business.id}/availability/next",
            params={"service_id": self.service.id},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["slot"]["start_time"], "2026-10-19T09:00:00")

    async def test_unknown_business_is_404(self):
        response = await self.client.get(
            "/api/v1/businesses/missing/availability", params={"date": "2026-10-19"}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"]["error"], "not_found")

    async def test_create_and_fetch_appointment(self):
        response = await self.create_appointment()
        self.assertEqual(response.status_code, 201)
        created = response.json()
        self.assertEqual(created["status"], "scheduled")
        self.assertEqual(created["end_time"], "2026-10-19T11:00:00")

        response = await self.client.get(f"/api/v1/appointments/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], created["id"])

    async def test_conflict_is_400_with_error_body(self):
        await self.create_appointment()
        response = await self.create_appointment(customer_phone="+15550199")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], {
            "error": "slot_unavailable",
            "message": "No staff available at the requested time",
            "retryable": False,
        })

    async def test_past_start_is_400(self):
        response = await self.create_appointment(start="2026-10-16T10:00:00Z")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "past_start_time")

    async def test_missing_appointment_is_404(self):
        response = await self.client.get("/api/v1/appointments/missing")
        self.assertEqual(response.status_code, 404)

    async def test_modify_cancel_and_status(self):
        appointment_id = (await self.create_appointment()).json()["id"]

        response = await self.client.patch(
            f"/api/v1/appointments/{appointment_id}",
            json={"new_start_time": "2026-10-19T13:00:00Z"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["start_time"], "2026-10-19T13:00:00")

        response = await self.client.post(
            f"/api/v1/appointments/{appointment_id}/status", json={"status": "confirmed"}
        )
        self.assertEqual(response.json()["status"], "confirmed")

        response = await self.client.post(
            f"/api/v1/appointments/{appointment_id}/cancel", json={"reason": "Travel"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["cancellation_reason"], "Travel")

        response = await self.client.post(
            f"/api/v1/appointments/{appointment_id}/cancel", json={}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "invalid_state")

    async def test_list_appointments(self):
        await self.create_appointment()
        response = await self.client.get(
            f"/api/v1/businesses/{self.business.id}/appointments", params={"date": "2026-10-19"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 1)

    async def test_operating_hours_admin(self):
        path = f"/api/v1/admin/businesses/{self.business.id}/operating-hours"

        response = await self.client.get(path)
        self.assertEqual(len(response.json()), 7)

        response = await self.client.put(path, json={"hours": [
            {"day_of_week": 6, "open_time": "10:00", "close_time": "14:00"},
        ]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[6]["open_time"], "10:00")

        response = await self.client.patch(f"{path}/1", json={
            "day_of_week": 1, "open_time": "18:00", "close_time": "09:00",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "validation_error")

        response = await self.client.patch(f"{path}/2", json={"day_of_week": 3, "is_closed": True})
        self.assertEqual(response.status_code, 400)

    async def test_staff_schedule_admin(self):
        path = f"/api/v1/admin/staff/{self.alice.id}/schedule"

        response = await self.client.put(path, json={"days": [
            {"day_of_week": 1, "start_time": "12:00", "end_time": "16:00"},
        ]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[1]["start_time"], "12:00")

        response = await self.client.get("/api/v1/admin/staff/missing/schedule")
        self.assertEqual(response.status_code, 404)

    async def test_store_failure_is_503(self):
        async with self.engine.begin() as conn:
            await conn.execute(text("DROP TABLE appointments"))

        response = await self.client.get("/api/v1/appointments/anything")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"]["error"], "store_unavailable")

    async def test_rejected_bulk_hours_update_changes_nothing(self):
        path = f"/api/v1/admin/businesses/{self.business.id}/operating-hours"

        response = await self.client.put(path, json={"hours": [
            {"day_of_week": 1, "open_time": "10:00", "close_time": "12:00"},
            {"day_of_week": 2, "open_time": "bad", "close_time": "12:00"},
        ]})
        self.assertEqual(response.status_code, 400)

        monday = (await self.client.get(path)).json()[1]
        self.assertEqual((monday["open_time"], monday["close_time"]), ("09:00", "17:00"))

    async def test_rejected_bulk_schedule_update_changes_nothing(self):
        path = f"/api/v1/admin/staff/{self.alice.id}/schedule"

        response = await self.client.put(path, json={"days": [
            {"day_of_week": 1, "start_time": "12:00", "end_time": "16:00"},
            {"day_of_week": 2, "start_time": "16:00", "end_time": "12:00"},
        ]})
        self.assertEqual(response.status_code, 400)

        monday = (await self.client.get(path)).json()[1]
        self.assertEqual(monday["start_time"], "09:00")

    async def test_patch_of_one_field_keeps_the_rest(self):
        path = f"/api/v1/admin/businesses/{self.business.id}/operating-hours/1"

        response = await self.client.patch(path, json={"day_of_week": 1, "close_time": "15:00"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "day_of_week": 1,
            "day_name": "Monday",
            "open_time": "09:00",
            "close_time": "15:00",
            "is_closed": False,
        })

    async def test_create_for_existing_customer_reports_totals(self):
        customer = await self.store.create_customer(tenant_id=self.tenant.id, name="Sam", phone="+15550111")
        body = {
            "customer_id": customer.id,
            "service_id": self.service.id,
            "start_time": "2026-10-19T10:00:00Z",
            "add_on_ids": [self.add_on.id],
        }
        response = await self.client.post(f"/api/v1/businesses/{self.business.id}/appointments", json=body)

        self.assertEqual(response.status_code, 201)
        created = response.json()
        self.assertEqual(created["customer_id"], customer.id)
        self.assertEqual(created["total_duration_minutes"], 75)
        self.assertEqual(float(created["total_price"]), 0.0)

        body["customer_id"] = "missing"
        body["start_time"] = "2026-10-19T13:00:00Z"
        response = await self.client.post(f"/api/v1/businesses/{self.business.id}/appointments", json=body)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"]["error"], "not_found")

    async def test_create_without_customer_details_is_400(self):
        response = await self.create_appointment(customer_name=None, customer_phone=None)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "validation_error")
