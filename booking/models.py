# booking/models.py
#
# Purpose:
# - Core domain models for the booking system.
#
# Design highlights:
# - Business: the tenant. Everything else hangs off a business and is
#   filtered by it, so no query ever crosses tenants.
# - StaffMember: identity + active flag. Bookings PROTECT staff rows, so a
#   referenced staff member is deactivated rather than deleted.
# - Service: duration and price; "active" controls bookability.
# - Customer: unique per (business, phone); the booking flows find-or-create.
# - Booking:
#   • date + time + duration_minutes form a half-open interval [start, end)
#   • status is lowercase "scheduled" / "completed" / "cancelled" / "no_show"
#   • source records which surface created it ("internal" or "online")
#
# Notes for developers:
# - Weekly schedule rules and availability blocks live in the staff app.
# - Status-change events are emitted from booking/signals.py, so any save
#   path (admin, API, BookingManager) triggers them.
#
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


# -------------------------
# Tenant
# -------------------------
class Business(models.Model):
    """
    A service business (tenant). The owner is the only principal allowed to
    mutate its staff, schedules, availability and bookings.
    """
    MODE_ONLINE = "online"
    MODE_INTERNAL_ONLY = "internal_only"
    BOOKING_MODE_CHOICES = [
        (MODE_ONLINE, "Online"),
        (MODE_INTERNAL_ONLY, "Internal only"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="businesses",
    )
    name = models.CharField(max_length=200)
    booking_mode = models.CharField(
        max_length=20,
        choices=BOOKING_MODE_CHOICES,
        default=MODE_INTERNAL_ONLY,
        help_text="Online businesses accept bookings from the public funnel.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "businesses"

    def __str__(self):
        return self.name

    def is_owned_by(self, user) -> bool:
        return bool(user and user.is_authenticated and user.pk == self.owner_id)


# -------------------------
# Staff member
# -------------------------
class StaffMember(models.Model):
    """
    A person who can be assigned to bookings.
    """
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="staff_members")
    name = models.CharField(max_length=200)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["business_id", "id"]

    def __str__(self):
        return self.name


# -------------------------
# Service catalog item
# -------------------------
class Service(models.Model):
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="services")
    name = models.CharField(max_length=200)
    duration_minutes = models.PositiveIntegerField(
        default=30,
        validators=[MinValueValidator(1)],
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
    )
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"


# -------------------------
# Customer
# -------------------------
class Customer(models.Model):
    """
    A customer of one business. Phone is the natural key inside a business.
    """
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="customers")
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["business", "phone"], name="uniq_customer_business_phone"),
        ]

    def __str__(self):
        return self.name


# -------------------------
# Booking record
# -------------------------
class Booking(models.Model):
    """
    Appointment booking.

    Only status="scheduled" bookings consume availability capacity.
    """
    STATUS_SCHEDULED = "scheduled"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_NO_SHOW = "no_show"
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, "Scheduled"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_NO_SHOW, "No show"),
    ]

    SOURCE_INTERNAL = "internal"
    SOURCE_ONLINE = "online"
    SOURCE_CHOICES = [
        (SOURCE_INTERNAL, "Internal"),
        (SOURCE_ONLINE, "Online"),
    ]

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="bookings")
    staff = models.ForeignKey(
        StaffMember,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
    )
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="bookings")
    service = models.ForeignKey(Service, on_delete=models.PROTECT, related_name="bookings")
    date = models.DateField()
    time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_SCHEDULED,
        help_text="Booking lifecycle status",
    )
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default=SOURCE_INTERNAL)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "time"]
        indexes = [
            models.Index(fields=["business", "date"], name="booking_business_date_idx"),
            models.Index(fields=["business", "status"], name="booking_business_status_idx"),
        ]

    def __str__(self):
        return f"{self.customer.name} → {self.service.name} on {self.date} {self.time:%H:%M}"
