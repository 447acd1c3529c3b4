from datetime import date, datetime, time
from decimal import Decimal

from django.contrib.auth.models import User
from django.utils import timezone

from booking.models import Booking, Business, Customer, Service, StaffMember
from staff.models import AvailabilityBlock

# Monday 2025-12-01 08:00 in the project timezone; DAY is the Tuesday after.
FIXED_NOW = timezone.make_aware(datetime(2025, 12, 1, 8, 0))
DAY = date(2025, 12, 2)


def fixed_clock():
    return FIXED_NOW


class SchedulingFixtures:
    """
    One online business with two staff members, a 30 minute service and a
    customer. Mixed into TestCase classes; call self.make_fixtures() in setUp.
    """

    def make_fixtures(self, booking_mode=Business.MODE_ONLINE):
        self.owner = User.objects.create_user(username="owner", password="pass12345")
        self.other_user = User.objects.create_user(username="intruder", password="pass12345")
        self.business = Business.objects.create(owner=self.owner, name="Fade Studio", booking_mode=booking_mode)
        self.staff_a = StaffMember.objects.create(business=self.business, name="Alex")
        self.staff_b = StaffMember.objects.create(business=self.business, name="Blake")
        self.service = Service.objects.create(
            business=self.business,
            name="Haircut",
            duration_minutes=30,
            price=Decimal("25.00"),
        )
        self.customer = Customer.objects.create(business=self.business, name="Casey", phone="5550001111")

    def add_block(self, staff, start, end, capacity=1, day=DAY):
        return AvailabilityBlock.objects.create(
            business=self.business,
            staff=staff,
            date=day,
            start_time=start,
            end_time=end,
            capacity=capacity,
        )

    def add_booking(self, staff, start, duration=30, status=Booking.STATUS_SCHEDULED, day=DAY):
        return Booking.objects.create(
            business=self.business,
            staff=staff,
            customer=self.customer,
            service=self.service,
            date=day,
            time=start,
            duration_minutes=duration,
            status=status,
        )


def t(value: str) -> time:
    h, m = value.split(":")
    return time(int(h), int(m))
