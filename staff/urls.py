from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import AvailabilityBlockViewSet, MaterializeView, StaffMemberViewSet, WeeklyScheduleRuleViewSet

router = DefaultRouter()
router.register(r"members", StaffMemberViewSet, basename="staff-member")
router.register(r"rules", WeeklyScheduleRuleViewSet, basename="schedule-rule")
router.register(r"blocks", AvailabilityBlockViewSet, basename="availability-block")

urlpatterns = [
    path("materialize/", MaterializeView.as_view(), name="materialize"),
    path("", include(router.urls)),
]
