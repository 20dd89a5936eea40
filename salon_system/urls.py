# salon_system/urls.py
#
# Purpose:
# - Project URL router.
# - Booking resources under /api/, HR workflow under /api/hr/,
#   revenue reports under /api/reports/.
#
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),

    # =====
    # API's
    # =====
    path("api/", include("booking.urls")),
    path("api/hr/", include("staff.urls")),
    path("api/reports/", include("reports.urls")),
]
