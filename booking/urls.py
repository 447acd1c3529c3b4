# booking/urls.py
#
# Purpose:
# - Expose the booking REST API via a DRF router:
#     /api/services/      service catalog
#     /api/customers/     find-or-create customers
#     /api/bookings/      bookings, plus /availability/, /{id}/status/, /{id}/cancel/
#
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BookingViewSet, CustomerViewSet, ServiceViewSet

router = DefaultRouter()
router.register(r"services", ServiceViewSet, basename="service")
router.register(r"customers", CustomerViewSet, basename="customer")
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("", include(router.urls)),
]
