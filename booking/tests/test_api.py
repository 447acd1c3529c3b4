# booking/tests/test_api.py

from datetime import timedelta
from unittest import mock

from django.db.models.query import QuerySet
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from booking.models import Booking, Business, Customer
from staff.models import AvailabilityBlock, WeeklyScheduleRule

from .helpers import SchedulingFixtures, t


class ApiTestBase(SchedulingFixtures, TestCase):
    def setUp(self):
        self.make_fixtures()
        # The API runs on the real clock, so work a week ahead.
        self.day = timezone.localdate() + timedelta(days=7)
        self.add_block(self.staff_a, t("09:00"), t("12:00"), day=self.day)
        self.client = APIClient()

    def booking_payload(self, **overrides):
        payload = {
            "business": self.business.id,
            "staff": self.staff_a.id,
            "customer": self.customer.id,
            "service": self.service.id,
            "date": self.day.isoformat(),
            "time": "10:00",
        }
        payload.update(overrides)
        return payload


class AvailabilityApiTests(ApiTestBase):
    url = "/api/bookings/availability/"

    def test_public_sees_free_slots_of_online_business(self):
        resp = self.client.get(self.url, {
            "business": self.business.id,
            "date": self.day.isoformat(),
            "service": self.service.id,
            "staff": self.staff_a.id,
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["date"], self.day.isoformat())
        self.assertEqual(resp.data["slots"][0], "09:00")
        self.assertEqual(resp.data["slots"][-1], "11:30")
        self.assertNotIn("by_staff", resp.data)

    def test_any_staff_includes_breakdown(self):
        resp = self.client.get(self.url, {
            "business": self.business.id,
            "date": self.day.isoformat(),
            "duration": 60,
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["slots"][-1], "11:00")
        self.assertEqual(resp.data["by_staff"][0], {"time": "09:00", "staff_ids": [self.staff_a.id]})

    def test_internal_only_business_is_hidden_from_public(self):
        self.business.booking_mode = Business.MODE_INTERNAL_ONLY
        self.business.save()
        params = {"business": self.business.id, "date": self.day.isoformat(), "service": self.service.id}

        resp = self.client.get(self.url, params)
        self.assertEqual(resp.data["slots"], [])

        # the owner still sees their own calendar
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(self.url, params)
        self.assertEqual(resp.data["slots"][0], "09:00")

    def test_unknown_business_gives_empty_list(self):
        resp = self.client.get(self.url, {"business": 999999, "date": self.day.isoformat(), "duration": 30})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["slots"], [])

    def test_missing_service_and_duration_is_rejected(self):
        resp = self.client.get(self.url, {"business": self.business.id, "date": self.day.isoformat()})
        self.assertEqual(resp.status_code, 400)

    def test_bad_date_is_rejected(self):
        resp = self.client.get(self.url, {"business": self.business.id, "date": "tomorrow", "duration": 30})
        self.assertEqual(resp.status_code, 400)

    def test_date_with_time_part_is_accepted(self):
        resp = self.client.get(self.url, {
            "business": self.business.id,
            "date": f"{self.day.isoformat()}T10:00",
            "duration": 30,
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["date"], self.day.isoformat())


class BookingApiTests(ApiTestBase):
    url = "/api/bookings/"

    def test_public_booking_then_conflict(self):
        resp = self.client.post(self.url, self.booking_payload(), format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["source"], Booking.SOURCE_ONLINE)
        self.assertEqual(resp.data["status"], Booking.STATUS_SCHEDULED)

        # same slot again: the loser is told to pick another time
        resp = self.client.post(self.url, self.booking_payload(), format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertIn("choose another time", resp.data["detail"])

    def test_owner_booking_returns_created_record(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(self.url, self.booking_payload(notes="first visit"), format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["source"], Booking.SOURCE_INTERNAL)
        self.assertEqual(resp.data["notes"], "first visit")
        booking = Booking.objects.get()
        self.assertEqual(resp.data["id"], booking.id)

    def test_public_booking_rejected_for_internal_only(self):
        self.business.booking_mode = Business.MODE_INTERNAL_ONLY
        self.business.save()
        resp = self.client.post(self.url, self.booking_payload(), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(Booking.objects.count(), 0)

    def test_booking_in_the_past_is_rejected(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        resp = self.client.post(self.url, self.booking_payload(date=yesterday.isoformat()), format="json")
        self.assertEqual(resp.status_code, 400)

    def test_listing_is_owner_only(self):
        self.client.post(self.url, self.booking_payload(), format="json")

        resp = self.client.get(self.url)
        self.assertIn(resp.status_code, (401, 403))

        self.client.force_authenticate(user=self.other_user)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data), 0)

        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(self.url)
        self.assertEqual(len(resp.data), 1)

    def test_owner_marks_booking_completed(self):
        booking = self.add_booking(self.staff_a, t("10:00"), day=self.day)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(f"{self.url}{booking.id}/status/", {"status": "completed"}, format="json")
        self.assertEqual(resp.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_COMPLETED)

    def test_other_user_cannot_see_or_change_booking(self):
        booking = self.add_booking(self.staff_a, t("10:00"), day=self.day)
        self.client.force_authenticate(user=self.other_user)
        resp = self.client.post(f"{self.url}{booking.id}/status/", {"status": "completed"}, format="json")
        self.assertEqual(resp.status_code, 404)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_SCHEDULED)

    def test_customer_cancels_by_phone(self):
        booking = self.add_booking(self.staff_a, t("10:00"), day=self.day)
        resp = self.client.post(f"{self.url}{booking.id}/cancel/", {"phone": "0000000000"}, format="json")
        self.assertEqual(resp.status_code, 403)

        resp = self.client.post(f"{self.url}{booking.id}/cancel/", {"phone": self.customer.phone}, format="json")
        self.assertEqual(resp.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)


class CustomerApiTests(ApiTestBase):
    url = "/api/customers/"

    def test_find_or_create_by_phone(self):
        payload = {"business": self.business.id, "name": "Robin", "phone": "5552223333"}
        resp = self.client.post(self.url, payload, format="json")
        self.assertEqual(resp.status_code, 201)

        resp = self.client.post(self.url, payload, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Customer.objects.filter(phone="5552223333").count(), 1)

    def test_double_submit_losing_insert_race_gets_existing_record(self):
        existing = Customer.objects.create(business=self.business, name="Robin", phone="5552223333")
        real_get = QuerySet.get
        missed = []

        def get_missing_once(qs, *args, **kwargs):
            # the first lookup misses, as if the other request had not committed yet
            if qs.model is Customer and not missed:
                missed.append(True)
                raise Customer.DoesNotExist
            return real_get(qs, *args, **kwargs)

        payload = {"business": self.business.id, "name": "Robin", "phone": "5552223333"}
        with mock.patch.object(QuerySet, "get", get_missing_once):
            resp = self.client.post(self.url, payload, format="json")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["id"], existing.id)
        self.assertEqual(Customer.objects.filter(phone="5552223333").count(), 1)


class MaterializeApiTests(ApiTestBase):
    url = "/api/staff/materialize/"

    def setUp(self):
        super().setUp()
        WeeklyScheduleRule.objects.create(
            business=self.business,
            staff=self.staff_b,
            weekday=self.day.isoweekday() % 7,
            work_start=t("13:00"),
            work_end=t("18:00"),
        )

    def payload(self):
        return {"business": self.business.id, "start": self.day.isoformat(), "end": self.day.isoformat()}

    def test_owner_materializes_range(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(self.url, self.payload(), format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["created"], 1)
        self.assertEqual(resp.data["start"], self.day.isoformat())
        self.assertTrue(AvailabilityBlock.objects.filter(staff=self.staff_b, date=self.day).exists())

    def test_other_user_is_forbidden(self):
        self.client.force_authenticate(user=self.other_user)
        resp = self.client.post(self.url, self.payload(), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(AvailabilityBlock.objects.filter(staff=self.staff_b).exists())

    def test_reversed_range_is_bad_request(self):
        self.client.force_authenticate(user=self.owner)
        payload = self.payload()
        payload["start"] = (self.day + timedelta(days=1)).isoformat()
        resp = self.client.post(self.url, payload, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_rule_with_break_outside_hours_is_rejected(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post("/api/staff/rules/", {
            "business": self.business.id,
            "staff": self.staff_a.id,
            "weekday": 1,
            "work_start": "09:00",
            "work_end": "17:00",
            "break_start": "16:30",
            "break_end": "18:00",
        }, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("break_start", resp.data)
