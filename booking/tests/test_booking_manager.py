import threading
from datetime import datetime
from decimal import Decimal

from django.contrib.auth.models import AnonymousUser
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from booking.exceptions import ConflictError, InvalidStatus, InvalidWindow, NotFound, Unauthorized
from booking.models import Booking, Business, Customer, Service, StaffMember
from booking.services import locks
from booking.services.booking_manager import BookingManager
from booking.signals import booking_completed, booking_status_changed

from .helpers import DAY, SchedulingFixtures, fixed_clock, t


class CreateBookingTests(SchedulingFixtures, TestCase):
    def setUp(self):
        self.make_fixtures()
        self.add_block(self.staff_a, t("09:00"), t("17:00"))
        self.manager = BookingManager(clock=fixed_clock)

    def book(self, user=None, staff="a", start="10:00", duration=None, **kwargs):
        if staff == "a":
            staff = self.staff_a
        params = {
            "customer": self.customer,
            "service": self.service,
        }
        params.update(kwargs)
        return self.manager.create_booking(
            user or self.owner, self.business, staff, DAY, t(start), duration, **params
        )

    def test_owner_books_internally(self):
        booking = self.book()
        self.assertEqual(booking.status, Booking.STATUS_SCHEDULED)
        self.assertEqual(booking.source, Booking.SOURCE_INTERNAL)
        self.assertEqual(booking.duration_minutes, 30)
        self.assertEqual(booking.amount, Decimal("25.00"))
        self.assertEqual(booking.staff, self.staff_a)

    def test_public_booking_on_online_business(self):
        booking = self.book(user=AnonymousUser())
        self.assertEqual(booking.source, Booking.SOURCE_ONLINE)

    def test_public_booking_on_internal_only_business_is_rejected(self):
        self.business.booking_mode = Business.MODE_INTERNAL_ONLY
        self.business.save()
        with self.assertRaises(Unauthorized):
            self.book(user=self.other_user)
        self.assertFalse(Booking.objects.exists())

    def test_owner_can_book_internal_only_business(self):
        self.business.booking_mode = Business.MODE_INTERNAL_ONLY
        self.business.save()
        self.assertEqual(self.book().source, Booking.SOURCE_INTERNAL)

    def test_second_booking_for_taken_slot_conflicts(self):
        self.book()
        with self.assertRaises(ConflictError):
            self.book(user=AnonymousUser())
        self.assertEqual(Booking.objects.count(), 1)

    def test_overlapping_start_conflicts(self):
        self.book(start="10:00")
        with self.assertRaises(ConflictError):
            self.book(start="10:15")

    def test_adjacent_bookings_are_fine(self):
        self.book(start="10:00")
        self.book(start="10:30")
        self.book(start="09:30")
        self.assertEqual(Booking.objects.count(), 3)

    def test_capacity_two_allows_two_then_conflicts(self):
        self.staff_a.availability_blocks.update(capacity=2)
        self.book()
        self.book()
        with self.assertRaises(ConflictError):
            self.book()

    def test_outside_blocks_conflicts(self):
        with self.assertRaisesMessage(ConflictError, "outside the available hours"):
            self.book(start="16:45")

    def test_explicit_duration_overrides_service(self):
        booking = self.book(duration=60)
        self.assertEqual(booking.duration_minutes, 60)
        with self.assertRaises(ConflictError):
            self.book(start="10:45")

    def test_any_staff_picks_first_free_member(self):
        self.add_block(self.staff_b, t("09:00"), t("17:00"))
        first = self.book(staff=None)
        second = self.book(staff=None)
        self.assertEqual(first.staff, self.staff_a)
        self.assertEqual(second.staff, self.staff_b)
        with self.assertRaisesMessage(ConflictError, "No staff available"):
            self.book(staff=None)

    def test_start_in_the_past_is_rejected(self):
        past_clock = lambda: timezone.make_aware(datetime(2025, 12, 2, 10, 0))
        manager = BookingManager(clock=past_clock)
        with self.assertRaises(InvalidWindow):
            manager.create_booking(
                self.owner, self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
            )

    def test_booking_past_midnight_is_rejected(self):
        with self.assertRaises(InvalidWindow):
            self.book(start="23:45")

    def test_foreign_records_are_not_found(self):
        other_owner = self.other_user
        other_business = Business.objects.create(owner=other_owner, name="Elsewhere")
        foreign_customer = Customer.objects.create(business=other_business, name="Dana", phone="5559990000")
        foreign_service = Service.objects.create(business=other_business, name="Shave")
        foreign_staff = StaffMember.objects.create(business=other_business, name="Eli")

        with self.assertRaises(NotFound):
            self.book(customer=foreign_customer)
        with self.assertRaises(NotFound):
            self.book(service=foreign_service)
        with self.assertRaises(NotFound):
            self.book(staff=foreign_staff)

    def test_inactive_service_is_not_found(self):
        self.service.active = False
        self.service.save()
        with self.assertRaises(NotFound):
            self.book()


class StatusChangeTests(SchedulingFixtures, TestCase):
    def setUp(self):
        self.make_fixtures()
        self.add_block(self.staff_a, t("09:00"), t("17:00"))
        self.manager = BookingManager(clock=fixed_clock)
        self.booking = self.manager.create_booking(
            self.owner, self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
        )

    def test_completion_emits_event_after_commit(self):
        received = []

        def on_completed(sender, business, customer, appointment, **kwargs):
            received.append((business.pk, customer.pk, appointment.pk))

        booking_completed.connect(on_completed)
        self.addCleanup(booking_completed.disconnect, on_completed)

        with self.captureOnCommitCallbacks(execute=True):
            self.manager.change_status(self.owner, self.booking, Booking.STATUS_COMPLETED)

        self.assertEqual(received, [(self.business.pk, self.customer.pk, self.booking.pk)])

    def test_status_changed_reports_previous_and_current(self):
        received = []

        def on_changed(sender, booking, previous, current, **kwargs):
            received.append((previous, current))

        booking_status_changed.connect(on_changed)
        self.addCleanup(booking_status_changed.disconnect, on_changed)

        with self.captureOnCommitCallbacks(execute=True):
            self.manager.change_status(self.owner, self.booking, Booking.STATUS_NO_SHOW)

        self.assertEqual(received, [(Booking.STATUS_SCHEDULED, Booking.STATUS_NO_SHOW)])

    def test_same_status_emits_nothing(self):
        with self.captureOnCommitCallbacks() as callbacks:
            self.manager.change_status(self.owner, self.booking, Booking.STATUS_SCHEDULED)
        self.assertEqual(callbacks, [])

    def test_non_owner_cannot_change_status(self):
        with self.assertRaises(Unauthorized):
            self.manager.change_status(self.other_user, self.booking, Booking.STATUS_COMPLETED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_SCHEDULED)

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(InvalidStatus):
            self.manager.change_status(self.owner, self.booking, "archived")

    def test_cancelled_booking_frees_the_slot(self):
        self.manager.change_status(self.owner, self.booking, Booking.STATUS_CANCELLED)
        replacement = self.manager.create_booking(
            self.owner, self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
        )
        self.assertEqual(replacement.status, Booking.STATUS_SCHEDULED)

    def test_rescheduling_into_taken_slot_conflicts(self):
        self.manager.change_status(self.owner, self.booking, Booking.STATUS_CANCELLED)
        self.manager.create_booking(
            self.owner, self.business, self.staff_a, DAY, t("10:15"), None, self.customer, self.service
        )
        with self.assertRaises(ConflictError):
            self.manager.change_status(self.owner, self.booking, Booking.STATUS_SCHEDULED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_CANCELLED)


class CancelBookingTests(SchedulingFixtures, TestCase):
    def setUp(self):
        self.make_fixtures()
        self.add_block(self.staff_a, t("09:00"), t("17:00"))
        self.booking = BookingManager(clock=fixed_clock).create_booking(
            self.owner, self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
        )

    def manager_at(self, hour, minute=0):
        now = timezone.make_aware(datetime(2025, 12, 2, hour, minute))
        return BookingManager(clock=lambda: now)

    def test_customer_cancels_with_matching_phone(self):
        booking = self.manager_at(7).cancel_booking(self.booking, phone="5550001111")
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)

    def test_wrong_phone_is_rejected(self):
        with self.assertRaises(Unauthorized):
            self.manager_at(7).cancel_booking(self.booking, phone="5550000000")

    def test_inside_cutoff_is_rejected(self):
        with self.assertRaises(InvalidWindow):
            self.manager_at(8, 30).cancel_booking(self.booking, phone="5550001111")

    def test_owner_ignores_cutoff(self):
        booking = self.manager_at(9, 55).cancel_booking(self.booking, user=self.owner)
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)

    def test_only_scheduled_bookings_can_be_cancelled(self):
        self.manager_at(7).cancel_booking(self.booking, user=self.owner)
        with self.assertRaises(InvalidStatus):
            self.manager_at(7).cancel_booking(self.booking, user=self.owner)


class ConcurrentCommitTests(SchedulingFixtures, TransactionTestCase):
    """Two callers racing for the last unit of one slot."""

    def setUp(self):
        self.make_fixtures()
        self.add_block(self.staff_a, t("09:00"), t("17:00"), capacity=1)

    def test_only_one_of_two_racing_bookings_commits(self):
        barrier = threading.Barrier(2)
        outcomes = []
        outcomes_lock = threading.Lock()

        def attempt():
            manager = BookingManager(clock=fixed_clock)
            barrier.wait()
            try:
                manager.create_booking(
                    AnonymousUser(), self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
                )
                result = "ok"
            except ConflictError:
                result = "conflict"
            finally:
                connection.close()
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ["conflict", "ok"])
        self.assertEqual(Booking.objects.filter(status=Booking.STATUS_SCHEDULED).count(), 1)
        self.assertEqual(locks._key_locks, {})
