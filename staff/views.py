# staff/views.py
#
# Purpose:
# - Owner-only management of staff members, weekly schedule rules and
#   availability blocks.
# - POST /api/staff/materialize/ turns the weekly rules into dated blocks.
#
# Notes:
# - Querysets only ever contain rows of businesses owned by the caller.
#
from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from booking.exceptions import SchedulingError, status_for
from booking.models import Business, StaffMember
from booking.serializers import StaffMemberSerializer
from booking.services.materializer import Materializer

from .models import AvailabilityBlock, WeeklyScheduleRule
from .serializers import AvailabilityBlockSerializer, MaterializeSerializer, WeeklyScheduleRuleSerializer


class OwnedQuerysetMixin:
    """Restrict a viewset to rows of businesses owned by request.user."""
    model = None

    def get_queryset(self):
        qs = self.model.objects.filter(business__owner_id=self.request.user.pk)
        business_id = self.request.query_params.get("business")
        if business_id:
            qs = qs.filter(business_id=business_id)
        return qs


class StaffMemberViewSet(OwnedQuerysetMixin, viewsets.ModelViewSet):
    model = StaffMember
    serializer_class = StaffMemberSerializer
    permission_classes = [IsAuthenticated]


class WeeklyScheduleRuleViewSet(OwnedQuerysetMixin, viewsets.ModelViewSet):
    model = WeeklyScheduleRule
    serializer_class = WeeklyScheduleRuleSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = super().get_queryset().select_related("staff")
        staff_id = self.request.query_params.get("staff")
        if staff_id:
            qs = qs.filter(staff_id=staff_id)
        return qs.order_by("staff_id", "weekday", "work_start")


class AvailabilityBlockViewSet(OwnedQuerysetMixin, viewsets.ModelViewSet):
    model = AvailabilityBlock
    serializer_class = AvailabilityBlockSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = super().get_queryset()
        day = self.request.query_params.get("date")
        if day:
            qs = qs.filter(date=day)
        return qs.order_by("date", "start_time", "id")


class MaterializeView(APIView):
    """
    POST /api/staff/materialize/
      {"business": 1, "start": "2025-12-01", "end": "2025-12-31"}
      {"business": 1, "days": 30}                 (rolling horizon from today)

    Returns {"created": N, "skipped": M, "invalid": K, "start": ..., "end": ...}.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = MaterializeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        # A missing business and a foreign business look the same to the caller.
        business = Business.objects.filter(pk=data["business"]).first()
        materializer = Materializer()
        try:
            if data.get("end") is not None:
                result = materializer.materialize(request.user, business, data["start"], data["end"])
            else:
                result = materializer.materialize_horizon(
                    request.user, business, days=data.get("days"), start=data.get("start")
                )
        except SchedulingError as e:
            return Response({"detail": str(e)}, status=status_for(e))

        result["start"] = result["start"].isoformat()
        result["end"] = result["end"].isoformat()
        return Response(result)
