from datetime import date, time

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from booking.models import Business, StaffMember

from .models import AvailabilityBlock, WeeklyScheduleRule


class ScheduleModelTests(TestCase):
    def setUp(self):
        owner = User.objects.create_user(username="owner", password="pass12345")
        self.business = Business.objects.create(owner=owner, name="Nail Bar")
        self.staff = StaffMember.objects.create(business=self.business, name="Jo")

    def rule(self, **kwargs):
        values = {
            "business": self.business,
            "staff": self.staff,
            "weekday": WeeklyScheduleRule.MONDAY,
            "work_start": time(9, 0),
            "work_end": time(17, 0),
        }
        values.update(kwargs)
        return WeeklyScheduleRule(**values)

    def test_windows_split_on_break(self):
        rule = self.rule(break_start=time(12, 0), break_end=time(12, 30))
        self.assertEqual(
            rule.windows(),
            [(time(9, 0), time(12, 0)), (time(12, 30), time(17, 0))],
        )
        self.assertEqual(self.rule().windows(), [(time(9, 0), time(17, 0))])

    def test_clean_rejects_inverted_hours(self):
        with self.assertRaises(ValidationError) as ctx:
            self.rule(work_end=time(8, 0)).clean()
        self.assertIn("work_end", ctx.exception.message_dict)

    def test_clean_rejects_half_break(self):
        with self.assertRaises(ValidationError) as ctx:
            self.rule(break_start=time(12, 0)).clean()
        self.assertIn("break_end", ctx.exception.message_dict)

    def test_clean_rejects_break_outside_hours(self):
        with self.assertRaises(ValidationError) as ctx:
            self.rule(break_start=time(8, 0), break_end=time(9, 30)).clean()
        self.assertIn("break_start", ctx.exception.message_dict)

    def test_database_rejects_inverted_block(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            AvailabilityBlock.objects.create(
                business=self.business,
                staff=self.staff,
                date=date(2025, 12, 2),
                start_time=time(12, 0),
                end_time=time(11, 0),
            )

    def test_database_rejects_duplicate_block(self):
        values = {
            "business": self.business,
            "staff": self.staff,
            "date": date(2025, 12, 2),
            "start_time": time(9, 0),
            "end_time": time(12, 0),
        }
        AvailabilityBlock.objects.create(**values)
        with self.assertRaises(IntegrityError), transaction.atomic():
            AvailabilityBlock.objects.create(**values)

    def test_database_rejects_duplicate_shared_block(self):
        values = {
            "business": self.business,
            "staff": None,
            "date": date(2025, 12, 2),
            "start_time": time(9, 0),
            "end_time": time(12, 0),
        }
        AvailabilityBlock.objects.create(**values)
        with self.assertRaises(IntegrityError), transaction.atomic():
            AvailabilityBlock.objects.create(**values)
        # a staff-specific block over the same window is a different key
        AvailabilityBlock.objects.create(**dict(values, staff=self.staff))
        self.assertEqual(AvailabilityBlock.objects.count(), 2)
