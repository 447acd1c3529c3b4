from rest_framework import serializers
from rest_framework.exceptions import PermissionDenied

from .models import Booking, Business, Customer, Service, StaffMember
from .services.slot_utils import parse_date


class OwnedBusinessMixin:
    """Reject writes that target a business the caller does not own."""

    def validate_business(self, value):
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if not value.is_owned_by(user):
            raise PermissionDenied("You do not own this business.")
        return value


class StaffMemberSerializer(OwnedBusinessMixin, serializers.ModelSerializer):
    class Meta:
        model = StaffMember
        fields = ["id", "business", "name", "active"]


class ServiceSerializer(OwnedBusinessMixin, serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = ["id", "business", "name", "duration_minutes", "price", "active"]


class CustomerSerializer(serializers.ModelSerializer):
    # Find-or-create happens in the view, so skip DRF's unique validator here.
    class Meta:
        model = Customer
        fields = ["id", "business", "name", "phone", "email"]
        validators = []


class BookingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = [
            "id",
            "business",
            "staff",
            "customer",
            "service",
            "date",
            "time",
            "duration_minutes",
            "amount",
            "status",
            "source",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class BookingRequestSerializer(serializers.Serializer):
    """
    Payload for POST /api/bookings/.
    Ownership and capacity rules are checked by BookingManager, not here.
    """
    business = serializers.PrimaryKeyRelatedField(queryset=Business.objects.all())
    staff = serializers.PrimaryKeyRelatedField(
        queryset=StaffMember.objects.all(), allow_null=True, required=False
    )
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all())
    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.all())
    date = serializers.DateField()
    time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AvailabilityQuerySerializer(serializers.Serializer):
    """Query string for GET /api/bookings/availability/."""
    business = serializers.IntegerField(min_value=1)
    date = serializers.CharField()
    staff = serializers.IntegerField(min_value=1, required=False)
    service = serializers.IntegerField(min_value=1, required=False)
    duration = serializers.IntegerField(min_value=1, required=False)

    def validate_date(self, value):
        try:
            return parse_date(value)
        except ValueError:
            raise serializers.ValidationError("Invalid date format. Use YYYY-MM-DD.")

    def validate(self, attrs):
        if not attrs.get("service") and not attrs.get("duration"):
            raise serializers.ValidationError("Provide either 'service' or 'duration'.")
        return attrs


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.STATUS_CHOICES)


class CancelSerializer(serializers.Serializer):
    phone = serializers.CharField(required=False, allow_blank=True, default="")
