"""
booking_manager.py
------------------
Coordinates booking creation, status changes and cancellation.

Double-booking prevention:
- The capacity check and the insert run under one (business, date) lock
  inside a single transaction (see locks.booking_slot_lock), so two callers
  racing for the last unit of a slot cannot both pass the check. The loser
  gets ConflictError and is expected to re-fetch free slots.

Notes:
- "Now" comes from the injected clock, so tests can pin it.
- Status-change events are emitted by booking/signals.py on save.
"""

import logging
from datetime import timedelta

from django.utils import timezone

from configmgr.config import get_scheduling_config

from ..exceptions import ConflictError, InvalidStatus, InvalidWindow, NotFound, Unauthorized
from ..models import Booking, StaffMember
from .access import booking_source_for, ensure_owner
from .availability_engine import AvailabilityEngine
from .locks import booking_slot_lock
from .slot_utils import local_datetime, to_minutes

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class BookingManager:
    def __init__(self, availability=None, config=None, clock=None):
        self.config = config or get_scheduling_config()
        self.clock = clock or timezone.now
        self.availability = availability or AvailabilityEngine(config=self.config, clock=self.clock)

    # -------------------- validation --------------------
    def _validate_request(self, business, staff, day, start_time, duration_minutes, customer, service):
        if customer is None or customer.business_id != business.pk:
            raise NotFound("Customer not found for this business.")
        if service is None or service.business_id != business.pk:
            raise NotFound("Service not found for this business.")
        if not service.active:
            raise NotFound("This service is not currently available.")
        if staff is not None and (staff.business_id != business.pk or not staff.active):
            raise NotFound("Staff member not found for this business.")

        if duration_minutes is None or duration_minutes < 1:
            raise InvalidWindow("Duration must be at least one minute.")
        if to_minutes(start_time) + duration_minutes > MINUTES_PER_DAY:
            raise InvalidWindow("Booking must end on the same day it starts.")
        if local_datetime(day, start_time) <= self.clock():
            raise InvalidWindow("Start time must be in the future.")

    def _check_capacity(self, business, staff_id, day, start_time, duration_minutes):
        result = self.availability.available_capacity(business, staff_id, day, start_time, duration_minutes)
        if result["capacity"] == 0:
            raise ConflictError("Requested time is outside the available hours.")
        if result["used"] + 1 > result["capacity"]:
            raise ConflictError()
        return result

    def _resolve_staff(self, business, day, start_time, duration_minutes):
        """First active staff member (by id) with a free unit at the requested time."""
        candidates = StaffMember.objects.filter(business=business, active=True).order_by("id")
        for member in candidates:
            if self.availability.is_slot_available_for_staff(business, member.pk, day, start_time, duration_minutes):
                return member
        raise ConflictError("No staff available for that time.")

    # -------------------- commands --------------------
    def create_booking(
        self,
        user,
        business,
        staff,
        day,
        start_time,
        duration_minutes,
        customer,
        service,
        notes="",
    ):
        """
        Create a scheduled booking after re-validating capacity.

        Args:
            user: calling principal (AnonymousUser / None for the public funnel)
            business: Business instance
            staff: StaffMember or None (resolved to the first free staff)
            day, start_time: business-local date and time of day
            duration_minutes: length of the booking; defaults to the service's
            customer, service: records of the same business

        Raises:
            Unauthorized, NotFound, InvalidWindow: before anything is written
            ConflictError: if the slot has no remaining capacity
        """
        source = booking_source_for(user, business)
        if duration_minutes is None and service is not None:
            duration_minutes = service.duration_minutes
        self._validate_request(business, staff, day, start_time, duration_minutes, customer, service)

        with booking_slot_lock(business.pk, day):
            if staff is None:
                staff = self._resolve_staff(business, day, start_time, duration_minutes)
            else:
                self._check_capacity(business, staff.pk, day, start_time, duration_minutes)

            booking = Booking.objects.create(
                business=business,
                staff=staff,
                customer=customer,
                service=service,
                date=day,
                time=start_time,
                duration_minutes=duration_minutes,
                amount=service.price,
                status=Booking.STATUS_SCHEDULED,
                source=source,
                notes=notes or "",
            )

        logger.info(
            "Booked #%s business=%s staff=%s %s %s (%d min, %s)",
            booking.pk, business.pk, staff.pk, day, start_time.strftime("%H:%M"), duration_minutes, source,
        )
        return booking

    def change_status(self, user, booking, new_status):
        """
        Owner-driven status transition. Moving a booking back to "scheduled"
        occupies capacity again, so it goes through the same guarded check.
        """
        ensure_owner(user, booking.business)
        valid = {value for value, _label in Booking.STATUS_CHOICES}
        if new_status not in valid:
            raise InvalidStatus(f"Unknown status '{new_status}'.")
        if new_status == booking.status:
            return booking

        if new_status == Booking.STATUS_SCHEDULED:
            with booking_slot_lock(booking.business_id, booking.date):
                if booking.staff_id is None:
                    raise InvalidStatus("Cannot reschedule a booking without a staff member.")
                self._check_capacity(
                    booking.business, booking.staff_id, booking.date, booking.time, booking.duration_minutes
                )
                booking.status = new_status
                booking.save(update_fields=["status", "updated_at"])
        else:
            booking.status = new_status
            booking.save(update_fields=["status", "updated_at"])

        logger.info("Booking #%s status -> %s", booking.pk, new_status)
        return booking

    def cancel_booking(self, booking, user=None, phone=None, cutoff_minutes=None):
        """
        Cancel a scheduled booking.

        - The owner may cancel at any time.
        - Anyone else must present the customer's phone number and respect the
          cancellation cutoff (default from config, 120 minutes).
        """
        if booking.status != Booking.STATUS_SCHEDULED:
            raise InvalidStatus("Only scheduled bookings can be cancelled.")

        if not booking.business.is_owned_by(user):
            if not phone or phone.strip() != booking.customer.phone:
                raise Unauthorized("Booking details do not match.")
            if cutoff_minutes is None:
                cutoff_minutes = self.config.cancellation_cutoff_minutes
            starts_at = local_datetime(booking.date, booking.time)
            if starts_at - self.clock() <= timedelta(minutes=cutoff_minutes):
                raise InvalidWindow(f"Cannot cancel within {cutoff_minutes} minutes of appointment start.")

        booking.status = Booking.STATUS_CANCELLED
        booking.save(update_fields=["status", "updated_at"])
        logger.info("Booking #%s cancelled", booking.pk)
        return booking
