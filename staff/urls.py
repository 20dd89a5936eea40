from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AbsenceViewSet, LeaveRequestViewSet

router = DefaultRouter()
router.register(r"absences", AbsenceViewSet, basename="absence")
router.register(r"requests", LeaveRequestViewSet, basename="leave-request")

urlpatterns = [path("", include(router.urls))]
