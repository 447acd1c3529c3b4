"""
materializer.py
---------------
Expands weekly schedule rules into dated availability blocks.

Behavior:
- Authorization runs first; a caller who does not own the business gets
  Unauthorized before any rule or block is read.
- For every active rule (of an active staff member) and every date in the
  range whose weekday matches, the rule's windows become candidate blocks:
  [work_start, break_start) + [break_end, work_end) when a break is set,
  otherwise [work_start, work_end).
- Each candidate is inserted only if no block with the same
  (business, staff, date, start, end) exists. Existing blocks are never
  updated or deleted, so re-running over the same range only fills gaps.
- A candidate that fails validation is logged and counted as invalid; the
  other candidates of the same call are still inserted.
"""

import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.utils import timezone

from configmgr.config import get_scheduling_config
from staff.models import AvailabilityBlock, WeeklyScheduleRule

from ..exceptions import InvalidRange
from .access import ensure_owner
from .slot_utils import dates_in_range, sunday_based_weekday

logger = logging.getLogger(__name__)


class Materializer:
    def __init__(self, config=None, clock=None):
        self.config = config or get_scheduling_config()
        self.clock = clock or timezone.now

    def _validate_range(self, start, end):
        if start is None or end is None:
            raise InvalidRange("Both start and end dates are required.")
        if end < start:
            raise InvalidRange()
        days = (end - start).days + 1
        if days > self.config.max_materialize_days:
            raise InvalidRange(
                f"Range covers {days} days; the maximum is {self.config.max_materialize_days}."
            )

    def _active_rules(self, business):
        return (
            WeeklyScheduleRule.objects.filter(business=business, active=True, staff__active=True)
            .select_related("staff")
            .order_by("staff_id", "weekday", "work_start")
        )

    def _check_candidate(self, rule, start_time, end_time):
        if start_time is None or end_time is None or end_time <= start_time:
            raise ValidationError(
                f"Rule #{rule.pk} yields an empty window {start_time}-{end_time}."
            )

    def materialize(self, user, business, start, end) -> dict:
        """
        Materialize blocks for `business` over [start, end] (inclusive dates).

        Returns:
            {"created": int, "skipped": int, "invalid": int, "start": date, "end": date}

        Raises:
            Unauthorized: if `user` does not own `business` (nothing touched).
            InvalidRange: if end < start or the range is too long.
        """
        ensure_owner(user, business)
        self._validate_range(start, end)

        created = 0
        skipped = 0
        invalid = 0
        rules = list(self._active_rules(business))

        for rule in rules:
            for day in dates_in_range(start, end):
                if sunday_based_weekday(day) != rule.weekday:
                    continue
                for window_start, window_end in rule.windows():
                    try:
                        self._check_candidate(rule, window_start, window_end)
                    except ValidationError as exc:
                        invalid += 1
                        logger.warning("Skipping invalid candidate block on %s: %s", day, exc.messages[0])
                        continue

                    _block, was_created = AvailabilityBlock.objects.get_or_create(
                        business=business,
                        staff=rule.staff,
                        date=day,
                        start_time=window_start,
                        end_time=window_end,
                        defaults={"capacity": self.config.default_block_capacity},
                    )
                    if was_created:
                        created += 1
                    else:
                        skipped += 1

        logger.info(
            "Materialized business=%s range=%s..%s rules=%d created=%d skipped=%d invalid=%d",
            business.pk, start, end, len(rules), created, skipped, invalid,
        )
        return {
            "created": created,
            "skipped": skipped,
            "invalid": invalid,
            "start": start,
            "end": end,
        }

    def materialize_horizon(self, user, business, days=None, start=None) -> dict:
        """
        Rolling horizon: `days` dates starting at `start` (default: today per
        the injected clock). Mirrors the schedule screen's "next 30 days".
        """
        if days is None:
            days = self.config.materialize_horizon_days
        if days < 1:
            raise InvalidRange("Horizon must cover at least one day.")
        start = start or timezone.localdate(self.clock())
        return self.materialize(user, business, start, start + timedelta(days=days - 1))
