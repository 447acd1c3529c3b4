import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("booking", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="WeeklyScheduleRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "weekday",
                    models.PositiveSmallIntegerField(
                        choices=[
                            (0, "Sunday"),
                            (1, "Monday"),
                            (2, "Tuesday"),
                            (3, "Wednesday"),
                            (4, "Thursday"),
                            (5, "Friday"),
                            (6, "Saturday"),
                        ],
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(6),
                        ],
                    ),
                ),
                ("work_start", models.TimeField()),
                ("work_end", models.TimeField()),
                ("break_start", models.TimeField(blank=True, null=True)),
                ("break_end", models.TimeField(blank=True, null=True)),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="schedule_rules",
                        to="booking.business",
                    ),
                ),
                (
                    "staff",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="schedule_rules",
                        to="booking.staffmember",
                    ),
                ),
            ],
            options={
                "ordering": ["staff_id", "weekday", "work_start"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("weekday__gte", 0), ("weekday__lte", 6)),
                        name="schedule_rule_valid_weekday",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("work_end__gt", models.F("work_start"))),
                        name="schedule_rule_valid_work_hours",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("break_end__isnull", True), ("break_start__isnull", True)),
                            models.Q(
                                ("break_end__gt", models.F("break_start")),
                                ("break_end__isnull", False),
                                ("break_end__lte", models.F("work_end")),
                                ("break_start__gte", models.F("work_start")),
                                ("break_start__isnull", False),
                            ),
                            _connector="OR",
                        ),
                        name="schedule_rule_valid_break",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AvailabilityBlock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                (
                    "capacity",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Maximum number of concurrent scheduled bookings.",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availability_blocks",
                        to="booking.business",
                    ),
                ),
                (
                    "staff",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availability_blocks",
                        to="booking.staffmember",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "start_time"],
                "indexes": [
                    models.Index(fields=["business", "date"], name="block_business_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("business", "staff", "date", "start_time", "end_time"),
                        name="uniq_availability_block_window",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("end_time__gt", models.F("start_time"))),
                        name="availability_block_valid_window",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("capacity__gte", 1)),
                        name="availability_block_positive_capacity",
                    ),
                ],
            },
        ),
    ]
