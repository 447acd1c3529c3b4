# staff/models.py
#
# Purpose:
# - Staff scheduling data: recurring weekly templates and the dated
#   availability blocks materialized from them.
#
# Design:
# - Both models point to booking.StaffMember / booking.Business so there is
#   only one staff table.
# - Invariants are enforced twice: clean() gives readable errors to admin and
#   serializers, and check constraints keep the database honest for rows
#   written through other paths.
# - Weekday follows 0=Sunday ... 6=Saturday.
#
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q


class WeeklyScheduleRule(models.Model):
    """
    Recurring work hours for one staff member on one weekday, with an optional
    break. Purely a template: it has no effect until materialized.
    """
    SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)
    WEEKDAY_CHOICES = [
        (SUNDAY, "Sunday"),
        (MONDAY, "Monday"),
        (TUESDAY, "Tuesday"),
        (WEDNESDAY, "Wednesday"),
        (THURSDAY, "Thursday"),
        (FRIDAY, "Friday"),
        (SATURDAY, "Saturday"),
    ]

    business = models.ForeignKey(
        "booking.Business",
        on_delete=models.CASCADE,
        related_name="schedule_rules",
    )
    staff = models.ForeignKey(
        "booking.StaffMember",
        on_delete=models.CASCADE,
        related_name="schedule_rules",
    )
    weekday = models.PositiveSmallIntegerField(
        choices=WEEKDAY_CHOICES,
        validators=[MinValueValidator(0), MaxValueValidator(6)],
    )
    work_start = models.TimeField()
    work_end = models.TimeField()
    break_start = models.TimeField(null=True, blank=True)
    break_end = models.TimeField(null=True, blank=True)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["staff_id", "weekday", "work_start"]
        constraints = [
            models.CheckConstraint(
                condition=Q(weekday__gte=0) & Q(weekday__lte=6),
                name="schedule_rule_valid_weekday",
            ),
            models.CheckConstraint(
                condition=Q(work_end__gt=F("work_start")),
                name="schedule_rule_valid_work_hours",
            ),
            models.CheckConstraint(
                condition=(
                    Q(break_start__isnull=True, break_end__isnull=True)
                    | Q(
                        break_start__isnull=False,
                        break_end__isnull=False,
                        break_end__gt=F("break_start"),
                        break_start__gte=F("work_start"),
                        break_end__lte=F("work_end"),
                    )
                ),
                name="schedule_rule_valid_break",
            ),
        ]

    def __str__(self):
        return f"{self.staff.name}: {self.get_weekday_display()} {self.work_start:%H:%M}-{self.work_end:%H:%M}"

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    def clean(self):
        errors = {}
        if self.work_start is not None and self.work_end is not None and self.work_end <= self.work_start:
            errors["work_end"] = "Work end must be after work start."

        if (self.break_start is None) != (self.break_end is None):
            errors["break_end"] = "Set both break start and break end, or neither."
        elif self.has_break:
            if self.break_end <= self.break_start:
                errors["break_end"] = "Break end must be after break start."
            elif self.work_start is not None and self.work_end is not None and (
                self.break_start < self.work_start or self.break_end > self.work_end
            ):
                errors["break_start"] = "Break must fall inside the working hours."

        if self.staff_id and self.business_id and self.staff.business_id != self.business_id:
            errors["staff"] = "Staff member belongs to a different business."

        if errors:
            raise ValidationError(errors)

    def windows(self):
        """
        The working windows this rule produces on a matching date, as
        (start, end) pairs: two when a break splits the day, else one.
        """
        if self.has_break:
            return [(self.work_start, self.break_start), (self.break_end, self.work_end)]
        return [(self.work_start, self.work_end)]


class AvailabilityBlock(models.Model):
    """
    A dated window in which bookings may be placed.
    staff=None means the block applies to every staff member.
    """
    business = models.ForeignKey(
        "booking.Business",
        on_delete=models.CASCADE,
        related_name="availability_blocks",
    )
    staff = models.ForeignKey(
        "booking.StaffMember",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="availability_blocks",
    )
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text="Maximum number of concurrent scheduled bookings.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "start_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "staff", "date", "start_time", "end_time"],
                name="uniq_availability_block_window",
            ),
            # NULLs are distinct in the constraint above, so "any staff"
            # blocks need their own key.
            models.UniqueConstraint(
                fields=["business", "date", "start_time", "end_time"],
                condition=Q(staff__isnull=True),
                name="uniq_shared_availability_block_window",
            ),
            models.CheckConstraint(
                condition=Q(end_time__gt=F("start_time")),
                name="availability_block_valid_window",
            ),
            models.CheckConstraint(
                condition=Q(capacity__gte=1),
                name="availability_block_positive_capacity",
            ),
        ]
        indexes = [
            models.Index(fields=["business", "date"], name="block_business_date_idx"),
        ]

    def __str__(self):
        who = self.staff.name if self.staff_id else "any staff"
        return f"{who}: {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M} (x{self.capacity})"

    def clean(self):
        errors = {}
        if self.start_time is not None and self.end_time is not None and self.end_time <= self.start_time:
            errors["end_time"] = "End time must be after start time."
        if self.capacity is not None and self.capacity < 1:
            errors["capacity"] = "Capacity must be at least 1."
        if self.staff_id and self.business_id and self.staff.business_id != self.business_id:
            errors["staff"] = "Staff member belongs to a different business."
        if errors:
            raise ValidationError(errors)
