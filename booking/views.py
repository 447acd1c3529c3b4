# booking/views.py
#
# Purpose:
# - JSON API for services, customers and bookings.
# - Public availability endpoint (free slots) and public booking creation
#   for businesses in "online" mode.
# - Permissions:
#   * Writes to services are owner-only.
#   * Customer find-or-create and booking creation are open to the public
#     funnel; BookingManager decides whether the business accepts them.
#   * Listing, status changes and owner cancellations are owner-only.
#
# Notes for developers:
# - Every queryset is filtered by the caller's businesses; there is no
#   cross-tenant listing anywhere.
# - Scheduling errors (booking.exceptions) map to HTTP codes in _error().
#
import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import SAFE_METHODS, AllowAny, BasePermission, IsAuthenticated
from rest_framework.response import Response

from .exceptions import SchedulingError, status_for
from .models import Booking, Business, Customer, Service
from .serializers import (
    AvailabilityQuerySerializer,
    BookingRequestSerializer,
    BookingSerializer,
    CancelSerializer,
    CustomerSerializer,
    ServiceSerializer,
    StatusChangeSerializer,
)
from .services.availability_engine import AvailabilityEngine
from .services.booking_manager import BookingManager

logger = logging.getLogger(__name__)


def _error(exc: SchedulingError) -> Response:
    return Response({"detail": str(exc)}, status=status_for(exc))


# -------------------- Permissions --------------------
class IsAuthenticatedOrReadOnly(BasePermission):
    """
    Read: anyone
    Write: authenticated owners (ownership is checked per object/serializer)
    """
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)


# -------------------- ViewSets --------------------
class ServiceViewSet(viewsets.ModelViewSet):
    """
    Service catalog:
    - Owners see and manage all services of their businesses.
    - The public sees active services of online businesses (?business=ID).
    """
    serializer_class = ServiceSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]

    def get_queryset(self):
        user = self.request.user
        owned = Q(business__owner_id=user.pk) if user.is_authenticated else Q(pk__in=[])
        if self.request.method in SAFE_METHODS:
            visible = owned | Q(active=True, business__booking_mode=Business.MODE_ONLINE)
        else:
            visible = owned
        qs = Service.objects.filter(visible).order_by("id")
        business_id = self.request.query_params.get("business")
        if business_id:
            qs = qs.filter(business_id=business_id)
        return qs


class CustomerViewSet(viewsets.ModelViewSet):
    serializer_class = CustomerSerializer

    def get_permissions(self):
        if self.action == "create":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return Customer.objects.filter(business__owner_id=self.request.user.pk).order_by("id")

    def create(self, request, *args, **kwargs):
        """
        Create-or-reuse a customer keyed by (business, phone).
        - Owners may create for their own businesses.
        - The public may create only for online businesses.
        - Returns the existing record (200) or the new one (201).
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        business = data["business"]

        if not business.is_owned_by(request.user) and business.booking_mode != Business.MODE_ONLINE:
            raise PermissionDenied("This business does not accept online bookings.")

        # get_or_create re-reads on IntegrityError, so a double submit that
        # loses the insert race still gets the existing row.
        customer, created = Customer.objects.get_or_create(
            business=business,
            phone=data["phone"].strip(),
            defaults={
                "name": data["name"].strip(),
                "email": (data.get("email") or "").strip(),
            },
        )
        if not created:
            return Response(self.get_serializer(customer).data, status=status.HTTP_200_OK)

        out = self.get_serializer(customer)
        return Response(out.data, status=status.HTTP_201_CREATED, headers=self.get_success_headers(out.data))


class BookingViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    Endpoints:
    - GET    /api/bookings/                   owner's bookings (?date=YYYY-MM-DD)
    - POST   /api/bookings/                   create through the commit guard
    - POST   /api/bookings/{id}/status/       owner status transition
    - POST   /api/bookings/{id}/cancel/       cancel (owner, or customer by phone)
    - GET    /api/bookings/availability/      free slots (public)
    """
    serializer_class = BookingSerializer

    def get_permissions(self):
        if self.action in ("create", "availability", "cancel"):
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        qs = Booking.objects.filter(business__owner_id=self.request.user.pk).order_by("date", "time")
        day = self.request.query_params.get("date")
        if day:
            qs = qs.filter(date=day)
        return qs

    def get_manager(self):
        return BookingManager()

    def create(self, request, *args, **kwargs):
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = self.get_manager().create_booking(
                user=request.user,
                business=data["business"],
                staff=data.get("staff"),
                day=data["date"],
                start_time=data["time"],
                duration_minutes=data.get("duration_minutes"),
                customer=data["customer"],
                service=data["service"],
                notes=data.get("notes", ""),
            )
        except SchedulingError as e:
            logger.info("Booking rejected: %s", e)
            return _error(e)

        out = BookingSerializer(booking)
        return Response(out.data, status=status.HTTP_201_CREATED, headers=self.get_success_headers(out.data))

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        booking = self.get_object()
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            self.get_manager().change_status(request.user, booking, serializer.validated_data["status"])
        except SchedulingError as e:
            return _error(e)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        booking = get_object_or_404(Booking.objects.select_related("business", "customer"), pk=pk)
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            self.get_manager().cancel_booking(
                booking,
                user=request.user,
                phone=serializer.validated_data["phone"],
            )
        except SchedulingError as e:
            return _error(e)
        return Response({"detail": "Booking cancelled."}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="availability")
    def availability(self, request):
        """
        GET /api/bookings/availability/?business=ID&date=YYYY-MM-DD&service=ID[&staff=ID]
        (or &duration=MINUTES instead of service)

        Unknown businesses, services or staff give an empty list, not an error.
        Slots already in the past (today) are hidden.
        """
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        day = params["date"]

        business = Business.objects.filter(pk=params["business"]).first()
        if business is not None and not (
            business.is_owned_by(request.user) or business.booking_mode == Business.MODE_ONLINE
        ):
            business = None

        duration = params.get("duration")
        if params.get("service"):
            service = Service.objects.filter(pk=params["service"], business=business, active=True).first()
            duration = service.duration_minutes if service else None

        engine = AvailabilityEngine()
        staff_id = params.get("staff")
        body = {
            "date": day.isoformat(),
            "slots": engine.free_slots(business, staff_id, day, duration, hide_past=True),
        }
        if staff_id is None:
            body["by_staff"] = engine.slots_by_staff(business, day, duration, hide_past=True)
        return Response(body)
