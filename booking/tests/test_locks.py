from datetime import date, timedelta
from unittest import skipUnless

from django.db import OperationalError, connection
from django.test import TestCase

from booking.exceptions import ConflictError
from booking.services import locks
from booking.services.booking_manager import BookingManager

from .helpers import DAY, SchedulingFixtures, fixed_clock, t


class LockRegistryTests(SchedulingFixtures, TestCase):
    def setUp(self):
        self.make_fixtures()
        self.add_block(self.staff_a, t("09:00"), t("17:00"))
        self.manager = BookingManager(clock=fixed_clock)

    def test_registry_is_empty_after_commits_and_rejections(self):
        self.manager.create_booking(
            self.owner, self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
        )
        with self.assertRaises(ConflictError):
            self.manager.create_booking(
                self.owner, self.business, self.staff_a, DAY, t("10:00"), None, self.customer, self.service
            )
        # dates without blocks are rejected inside the lock too
        for offset in range(1, 50):
            with self.assertRaises(ConflictError):
                self.manager.create_booking(
                    self.owner,
                    self.business,
                    self.staff_a,
                    DAY + timedelta(days=offset),
                    t("10:00"),
                    None,
                    self.customer,
                    self.service,
                )

        self.assertEqual(locks._key_locks, {})

    def test_entry_lives_while_held(self):
        with locks.booking_slot_lock(self.business.pk, DAY):
            self.assertIn((self.business.pk, DAY), locks._key_locks)
        self.assertNotIn((self.business.pk, DAY), locks._key_locks)


@skipUnless(connection.vendor == "sqlite", "SQLite busy handling")
class SqliteBusyTests(TestCase):
    def test_database_locked_becomes_conflict(self):
        with self.assertRaises(ConflictError):
            with locks.booking_slot_lock(1, date(2025, 12, 2)):
                raise OperationalError("database is locked")
        self.assertEqual(locks._key_locks, {})

    def test_other_operational_errors_propagate(self):
        with self.assertRaisesMessage(OperationalError, "no such table"):
            with locks.booking_slot_lock(1, date(2025, 12, 2)):
                raise OperationalError("no such table: booking_booking")
