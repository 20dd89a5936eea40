# booking/urls.py
#
# Purpose:
# - Expose REST API endpoints for the booking app via DRF router.
#
# Notes for developers:
# - Availability lives on the appointments resource:
#     GET /api/appointments/availability/?service=&date=[&staff=][&exclude=]
# - Planning and HR figures live on the staff resource:
#     GET /api/staff/planning/?date=, GET /api/staff/{id}/stats/, ...

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AppointmentViewSet,
    ClientProfileViewSet,
    ServiceViewSet,
    StaffViewSet,
)

# --------------------------
# DRF Router registrations
# --------------------------
router = DefaultRouter()
router.register(r"clients", ClientProfileViewSet, basename="client")
router.register(r"services", ServiceViewSet, basename="service")
router.register(r"staff", StaffViewSet, basename="staff")
router.register(r"appointments", AppointmentViewSet, basename="appointment")

urlpatterns = [
    path("", include(router.urls)),
]
