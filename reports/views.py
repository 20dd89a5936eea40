# reports/views.py

from datetime import datetime, time, timedelta

from django.db.models import Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework.views import APIView
from rest_framework.response import Response

from booking.models import Appointment, Staff
from booking.services.time_grid import local_now, parse_date_key
from booking.views import IsStaffOnly


def _bounds(first_day, next_first_day):
    tz = timezone.get_current_timezone()
    return (
        timezone.make_aware(datetime.combine(first_day, time.min), tz),
        timezone.make_aware(datetime.combine(next_first_day, time.min), tz),
    )


def period_bounds(day):
    """{'daily'|'monthly'|'yearly': (start, end)} aware half-open ranges around day."""
    next_day = day + timedelta(days=1)
    month_start = day.replace(day=1)
    next_month = (
        month_start.replace(year=day.year + 1, month=1)
        if day.month == 12
        else month_start.replace(month=day.month + 1)
    )
    year_start = day.replace(month=1, day=1)
    next_year = year_start.replace(year=day.year + 1)
    return {
        "daily": _bounds(day, next_day),
        "monthly": _bounds(month_start, next_month),
        "yearly": _bounds(year_start, next_year),
    }


class ReportsView(APIView):
    """
    GET /api/reports/summary?date=YYYY-MM-DD   (date defaults to today)

    Returns JSON with:
    - date: the reference day
    - revenue: [{ "staff_id", "name", "daily", "monthly", "yearly" }, ...]
      sums of service prices for the day / month / year of the reference date
    - totals: { "daily", "monthly", "yearly" }
    - appointments_per_day: [{ "day": "YYYY-MM-DD", "count": N }, ...]
      for the month of the reference date

    Cancelled appointments never count. Only accessible by staff users.
    """
    permission_classes = [IsStaffOnly]

    def get(self, request):
        raw = request.query_params.get("date")
        if raw:
            try:
                day = parse_date_key(raw)
            except ValueError:
                return Response({"detail": "Invalid date format. Use YYYY-MM-DD."}, status=400)
        else:
            day = local_now().date()

        active = Appointment.objects.exclude(status=Appointment.STATUS_CANCELLED)
        bounds = period_bounds(day)

        revenue = {
            member.id: {"staff_id": member.id, "name": member.name, "daily": 0.0, "monthly": 0.0, "yearly": 0.0}
            for member in Staff.objects.all().order_by("name")
        }
        totals = {}
        for period, (start, end) in bounds.items():
            rows = (
                active.filter(start_time__gte=start, start_time__lt=end)
                .values("staff")
                .annotate(total=Sum("service__price"))
            )
            period_total = 0.0
            for row in rows:
                amount = float(row["total"] or 0)
                period_total += amount
                if row["staff"] in revenue:
                    revenue[row["staff"]][period] = amount
            totals[period] = period_total

        month_start, month_end = bounds["monthly"]
        per_day = (
            active.filter(start_time__gte=month_start, start_time__lt=month_end)
            .annotate(day=TruncDate("start_time", tzinfo=timezone.get_current_timezone()))
            .values("day")
            .annotate(count=Count("id"))
            .order_by("day")
        )

        data = {
            "date": day.isoformat(),
            "revenue": list(revenue.values()),
            "totals": totals,
            "appointments_per_day": [
                {"day": row["day"].isoformat(), "count": row["count"]} for row in per_day
            ],
        }
        return Response(data)
