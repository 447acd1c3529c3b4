"""
availability_engine.py
----------------------
Computes free booking slots for a business, staff member and date by
checking candidate start times against:
1) the availability blocks of that date (staff-specific or staff=None), and
2) existing scheduled bookings, against each block's capacity.

Rules:
- Candidates start at the block start and advance by the configured
  granularity (15 minutes) while start + duration <= block end.
- A candidate is free when fewer scheduled bookings overlap it than the
  block's capacity (capacity below 1 counts as 1). Overlap is half-open:
  existing_start < new_end AND existing_end > new_start.
- Cancelled, completed and no-show bookings never consume capacity.
- When several blocks produce the same start time it is listed once.
- Unknown business or staff yields no slots rather than an error; the
  public caller just sees "no times available".
"""

import logging

from django.db.models import Q
from django.utils import timezone

from configmgr.config import get_scheduling_config
from staff.models import AvailabilityBlock

from ..models import Booking, StaffMember
from .slot_utils import candidate_starts, format_minutes, from_minutes, local_datetime, overlaps, to_minutes

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    def __init__(self, config=None, clock=None):
        self.config = config or get_scheduling_config()
        self.clock = clock or timezone.now

    # -------------------- lookups --------------------
    def _staff_ids(self, business, staff):
        """
        Active staff ids the query applies to: the one requested (if it is an
        active member of this business) or every active member for "any".
        """
        if business is None:
            return []
        qs = StaffMember.objects.filter(business=business, active=True)
        if staff is not None:
            qs = qs.filter(pk=getattr(staff, "pk", staff))
        return list(qs.order_by("id").values_list("id", flat=True))

    def _blocks(self, business, staff_id, day):
        """(start, end, capacity) in minutes for blocks usable by staff_id on day."""
        rows = (
            AvailabilityBlock.objects.filter(business=business, date=day)
            .filter(Q(staff_id=staff_id) | Q(staff__isnull=True))
            .order_by("start_time", "end_time")
            .values_list("start_time", "end_time", "capacity")
        )
        return [(to_minutes(s), to_minutes(e), max(1, cap or 1)) for s, e, cap in rows]

    def _scheduled_intervals(self, business, staff_id, day):
        rows = Booking.objects.filter(
            business=business,
            staff_id=staff_id,
            date=day,
            status=Booking.STATUS_SCHEDULED,
        ).values_list("time", "duration_minutes")
        intervals = []
        for t, duration in rows:
            start = to_minutes(t)
            intervals.append((start, start + duration))
        return intervals

    # -------------------- core --------------------
    def _overlap_count(self, intervals, start, end) -> int:
        return sum(1 for b_start, b_end in intervals if overlaps(start, end, b_start, b_end))

    def _free_minutes(self, business, staff_id, day, duration):
        """Set of free slot starts (minutes since midnight) for one staff member."""
        step = self.config.slot_granularity_minutes
        intervals = self._scheduled_intervals(business, staff_id, day)
        free = set()
        for block_start, block_end, capacity in self._blocks(business, staff_id, day):
            for start in candidate_starts(block_start, block_end, duration, step):
                if start in free:
                    continue
                if self._overlap_count(intervals, start, start + duration) < capacity:
                    free.add(start)
        return free

    def _drop_past(self, day, minutes):
        now = self.clock()
        tz_today = timezone.localdate(now)
        if day > tz_today:
            return minutes
        if day < tz_today:
            return set()
        return {m for m in minutes if local_datetime(day, from_minutes(m)) > now}

    # -------------------- public API --------------------
    def free_slots(self, business, staff, day, duration_minutes, hide_past=False):
        """
        Free start times for `staff` (a StaffMember, an id, or None for any
        staff) on `day`, as sorted "HH:MM" strings.
        """
        if not duration_minutes or duration_minutes < 1:
            return []

        merged = set()
        for staff_id in self._staff_ids(business, staff):
            merged |= self._free_minutes(business, staff_id, day, duration_minutes)

        if hide_past:
            merged = self._drop_past(day, merged)
        logger.debug("free_slots staff=%s day=%s -> %d slot(s)", staff, day, len(merged))
        return [format_minutes(m, self.config.time_format) for m in sorted(merged)]

    def slots_by_staff(self, business, day, duration_minutes, hide_past=False):
        """
        Free start times with the staff members free at each, for the
        "any staff" booking flow:
            [{"time": "09:00", "staff_ids": [1, 3]}, ...]
        """
        if not duration_minutes or duration_minutes < 1:
            return []

        by_minute = {}
        for staff_id in self._staff_ids(business, None):
            for minute in self._free_minutes(business, staff_id, day, duration_minutes):
                by_minute.setdefault(minute, []).append(staff_id)

        minutes = set(by_minute)
        if hide_past:
            minutes = self._drop_past(day, minutes)
        return [
            {"time": format_minutes(m, self.config.time_format), "staff_ids": by_minute[m]}
            for m in sorted(minutes)
        ]

    def available_capacity(self, business, staff, day, start_time, duration_minutes) -> dict:
        """
        Capacity check for one exact interval, used at commit time.

        The governing capacity is the largest capacity among blocks that fully
        contain [start, start + duration). No containing block means no
        capacity at all.

        Returns:
            {"capacity": int, "used": int, "available": int}
        """
        staff_id = getattr(staff, "pk", staff)
        start = to_minutes(start_time)
        end = start + duration_minutes

        containing = [
            capacity
            for block_start, block_end, capacity in self._blocks(business, staff_id, day)
            if block_start <= start and end <= block_end
        ]
        capacity = max(containing) if containing else 0
        used = self._overlap_count(self._scheduled_intervals(business, staff_id, day), start, end)
        return {
            "capacity": capacity,
            "used": used,
            "available": max(0, capacity - used),
        }

    def is_slot_available_for_staff(self, business, staff, day, start_time, duration_minutes) -> bool:
        return self.available_capacity(business, staff, day, start_time, duration_minutes)["available"] > 0
