from booking_engine.core.exceptions import BusinessNotFound, StaffNotFound, ValidationError
from tests.base import EngineTestCase


class TestHoursService(EngineTestCase):

    async def test_set_and_read_business_hours(self):
        result = await self.hours.set_business_hours(self.business.id, 6, "10:00", "14:00")
        self.assertTrue(result.ok, result.error)

        week = (await self.hours.get_weekly_hours(self.business.id)).value
        self.assertEqual(len(week), 7)
        self.assertEqual(week[6], {
            "day_of_week": 6,
            "day_name": "Saturday",
            "open_time": "10:00",
            "close_time": "14:00",
            "is_closed": False,
        })
        self.assertTrue(week[0]["is_closed"])

    async def test_closed_day_needs_no_times(self):
        result = await self.hours.set_business_hours(self.business.id, 1, None, None, is_closed=True)
        self.assertTrue(result.ok, result.error)

    async def test_invalid_values(self):
        cases = [
            (7, "09:00", "17:00", False),
            (-1, "09:00", "17:00", False),
            (1, "9am", "17:00", False),
            (1, "24:00", "17:00", False),
            (1, "17:00", "09:00", False),
            (1, "09:00", "09:00", False),
            (1, None, "17:00", False),
        ]
        for day, open_time, close_time, closed in cases:
            with self.subTest(day=day, open_time=open_time, close_time=close_time):
                result = await self.hours.set_business_hours(self.business.id, day, open_time, close_time, closed)
                self.assertIsInstance(result.error, ValidationError)

    async def test_unknown_business(self):
        result = await self.hours.set_business_hours("missing", 1, "09:00", "17:00")
        self.assertIsInstance(result.error, BusinessNotFound)

        result = await self.hours.get_weekly_hours("missing")
        self.assertIsInstance(result.error, BusinessNotFound)

    async def test_staff_weekly_schedule(self):
        await self.hours.set_staff_schedule(self.alice.id, 3, None, None, is_available=False)

        week = (await self.hours.get_weekly_schedule(self.alice.id)).value
        self.assertEqual([d["is_available"] for d in week], [False, True, True, False, True, True, False])
        self.assertEqual(week[1]["start_time"], "09:00")
        self.assertEqual(week[1]["day_name"], "Monday")

    async def test_staff_schedule_validation(self):
        result = await self.hours.set_staff_schedule(self.alice.id, 1, "12:00", "08:00")
        self.assertIsInstance(result.error, ValidationError)

        result = await self.hours.set_staff_schedule("missing", 1, "09:00", "17:00")
        self.assertIsInstance(result.error, StaffNotFound)

    async def test_weekly_business_hours_are_written_together(self):
        result = await self.hours.set_weekly_business_hours(self.business.id, [
            {"day_of_week": 1, "open_time": "10:00", "close_time": "12:00", "is_closed": False},
            {"day_of_week": 6, "open_time": "10:00", "close_time": "14:00", "is_closed": False},
        ])
        self.assertTrue(result.ok, result.error)

        week = (await self.hours.get_weekly_hours(self.business.id)).value
        self.assertEqual((week[1]["open_time"], week[1]["close_time"]), ("10:00", "12:00"))
        self.assertEqual((week[6]["open_time"], week[6]["is_closed"]), ("10:00", False))

    async def test_invalid_day_in_weekly_hours_leaves_every_day_unchanged(self):
        bad_weeks = [
            [{"day_of_week": 1, "open_time": "10:00", "close_time": "12:00"},
             {"day_of_week": 2, "open_time": "bad", "close_time": "12:00"}],
            [{"day_of_week": 1, "open_time": "10:00", "close_time": "12:00"},
             {"day_of_week": 1, "open_time": "13:00", "close_time": "15:00"}],
            [{"day_of_week": 1, "open_time": "10:00", "close_time": "12:00"},
             {"day_of_week": 8, "open_time": "10:00", "close_time": "12:00"}],
        ]
        for items in bad_weeks:
            with self.subTest(items=items):
                result = await self.hours.set_weekly_business_hours(self.business.id, items)
                self.assertIsInstance(result.error, ValidationError)

                week = (await self.hours.get_weekly_hours(self.business.id)).value
                self.assertEqual((week[1]["open_time"], week[1]["close_time"]), ("09:00", "17:00"))

    async def test_invalid_day_in_weekly_schedule_leaves_every_day_unchanged(self):
        result = await self.hours.set_weekly_staff_schedule(self.alice.id, [
            {"day_of_week": 1, "start_time": "12:00", "end_time": "16:00", "is_available": True},
            {"day_of_week": 2, "start_time": "16:00", "end_time": "12:00", "is_available": True},
        ])
        self.assertIsInstance(result.error, ValidationError)

        week = (await self.hours.get_weekly_schedule(self.alice.id)).value
        self.assertEqual((week[1]["start_time"], week[1]["end_time"]), ("09:00", "17:00"))

        result = await self.hours.set_weekly_staff_schedule(self.alice.id, [
            {"day_of_week": 1, "start_time": "12:00", "end_time": "16:00", "is_available": True},
            {"day_of_week": 2, "start_time": None, "end_time": None, "is_available": False},
        ])
        self.assertTrue(result.ok, result.error)
        week = (await self.hours.get_weekly_schedule(self.alice.id)).value
        self.assertEqual(week[1]["start_time"], "12:00")
        self.assertFalse(week[2]["is_available"])

    async def test_weekly_schedule_for_unknown_staff(self):
        result = await self.hours.set_weekly_staff_schedule("missing", [
            {"day_of_week": 1, "start_time": "09:00", "end_time": "17:00"},
        ])
        self.assertIsInstance(result.error, StaffNotFound)

    async def test_update_one_day_keeps_omitted_fields(self):
        result = await self.hours.update_business_day(self.business.id, 1, close_time="15:00")
        self.assertTrue(result.ok, result.error)

        week = (await self.hours.get_weekly_hours(self.business.id)).value
        self.assertEqual((week[1]["open_time"], week[1]["close_time"], week[1]["is_closed"]),
                         ("09:00", "15:00", False))

        await self.hours.update_business_day(self.business.id, 1, is_closed=True)
        week = (await self.hours.get_weekly_hours(self.business.id)).value
        self.assertTrue(week[1]["is_closed"])
        self.assertEqual(week[1]["open_time"], "09:00")

    async def test_update_one_day_validates_the_merged_window(self):
        result = await self.hours.update_business_day(self.business.id, 1, open_time="18:00")
        self.assertIsInstance(result.error, ValidationError)

        # Sunday is stored closed without times, so opening it needs both
        result = await self.hours.update_business_day(self.business.id, 0, is_closed=False)
        self.assertIsInstance(result.error, ValidationError)

        result = await self.hours.update_business_day("missing", 1, close_time="15:00")
        self.assertIsInstance(result.error, BusinessNotFound)
