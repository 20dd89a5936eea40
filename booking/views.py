# booking/views.py
#
# Purpose:
# - CRUD APIs for Clients, Services, Staff and Appointments.
# - Slot availability endpoint backed by AvailabilityEngine.
# - Planning grid, occupancy and HR stats endpoints for the staff area.
# - Permissions:
#   * Service and staff writes are staff-only.
#   * Appointment creation requires NO login. Public flow: create client -> create appointment.
#
# Notes:
# - Unknown service/staff ids on the availability endpoint are not errors:
#   the answer is simply an empty slot list, so the booking UI keeps working
#   with partial data.
# - A write that loses a booking race answers 409 so the UI can ask the
#   guest to pick another slot.
#
import re

from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission
from rest_framework.response import Response

from staff.services.absence_ledger import AbsenceLedger

from .exceptions import SlotConflictError
from .models import Appointment, ClientProfile, Service, Staff
from .serializers import (
    AppointmentSerializer,
    ClientProfileSerializer,
    ServiceSerializer,
    StaffSerializer,
)
from .services.availability_engine import AvailabilityEngine
from .services.booking_manager import BookingManager
from .services.occupancy import OccupancyResolver
from .services.time_grid import date_key, local_now, parse_date_key

PHONE_RE = re.compile(r"^\d{7,15}$")


# -------------------- Permissions --------------------
class IsStaffOrReadOnly(BasePermission):
    """
    Read: anyone
    Write: staff only
    """
    def has_permission(self, request, view):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return True
        return bool(request.user and request.user.is_staff)


class IsStaffOnly(BasePermission):
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_staff)


# -------------------- Helpers --------------------
def _parse_day(raw):
    """'YYYY-MM-DD' (time part tolerated) -> date, or None."""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return parse_date_key(raw)
    except ValueError:
        return None


def resolve_staff(ref):
    """Staff by primary key, or by name for legacy callers. None when unresolved."""
    ref = (ref or "").strip()
    if not ref:
        return None
    if ref.isdigit():
        return Staff.objects.filter(pk=int(ref)).first()
    return Staff.objects.by_name(ref)


def resolve_service(ref):
    ref = (ref or "").strip()
    if not ref.isdigit():
        return None
    return Service.objects.filter(pk=int(ref)).first()


# -------------------- ViewSets --------------------
class ClientProfileViewSet(viewsets.ModelViewSet):
    queryset = ClientProfile.objects.all().order_by("id")
    serializer_class = ClientProfileSerializer

    def create(self, request, *args, **kwargs):
        """
        Create-or-reuse ClientProfile with normalized (trimmed) fields.
        - Existing match by (name, email case-insensitive; phone exact) -> 200 OK.
        - Otherwise a new profile -> 201 Created.
        """
        name = (request.data.get("name") or "").strip()
        email = (request.data.get("email") or "").strip()
        phone = (request.data.get("phone") or "").strip()

        if not name or not email or not phone:
            return Response({"detail": "name, email, and phone are required."}, status=400)

        if not PHONE_RE.match(phone):
            return Response({"detail": "Phone must be digits only, 7 to 15 digits."}, status=400)

        existing = ClientProfile.objects.filter(
            name__iexact=name,
            email__iexact=email,
            phone=phone,
        ).first()

        if existing:
            data = self.get_serializer(existing).data
            return Response(data, status=200)

        serializer = self.get_serializer(data={"name": name, "email": email, "phone": phone})
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        headers = self.get_success_headers(serializer.data)
        return Response(serializer.data, status=201, headers=headers)


class ServiceViewSet(viewsets.ModelViewSet):
    """
    Service catalog:
    - Anyone can list active services.
    - Only staff can create/update/delete services (IsStaffOrReadOnly).
    """
    serializer_class = ServiceSerializer
    permission_classes = [IsStaffOrReadOnly]

    def get_queryset(self):
        """
        Staff can see all services; public sees only active services.
        """
        user = getattr(self.request, "user", None)
        qs = Service.objects.all().order_by("category", "name")
        if user and user.is_authenticated and user.is_staff:
            return qs
        return qs.filter(active=True)


class StaffViewSet(viewsets.ModelViewSet):
    """
    Endpoints (besides CRUD):
    - GET  /api/staff/{id}/stats/                     HR balances
    - GET  /api/staff/{id}/occupancy/?date=&hour=     one planning cell
    - POST /api/staff/{id}/toggle-day/ {"date": ...}  legacy per-day off marker
    - GET  /api/staff/planning/?date=                 week grid for the team
    - GET  /api/staff/hr-summary/                     team-wide HR figures
    """
    queryset = Staff.objects.all().order_by("name")
    serializer_class = StaffSerializer
    permission_classes = [IsStaffOrReadOnly]
    ledger = AbsenceLedger()

    @action(detail=True, methods=["get"], permission_classes=[IsStaffOnly])
    def stats(self, request, pk=None):
        member = self.get_object()
        return Response({"staff_id": member.id, "name": member.name, **self.ledger.stats_for(member)})

    @action(detail=True, methods=["get"], permission_classes=[IsStaffOnly])
    def occupancy(self, request, pk=None):
        member = self.get_object()
        day = _parse_day(request.query_params.get("date"))
        try:
            hour = int(request.query_params.get("hour", ""))
            minute = int(request.query_params.get("minute", 0))
        except ValueError:
            hour = None
        if day is None or hour is None or not (0 <= hour <= 23) or minute not in (0, 30):
            return Response(
                {"detail": "Use ?date=YYYY-MM-DD&hour=0-23 (optional minute=0|30)."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        cell = OccupancyResolver().classify(member, day, hour, minute)
        return Response({"date": date_key(day), "hour": hour, "minute": minute, **cell.to_dict()})

    @action(detail=True, methods=["post"], url_path="toggle-day", permission_classes=[IsStaffOnly])
    def toggle_day(self, request, pk=None):
        member = self.get_object()
        day = _parse_day(request.data.get("date"))
        if day is None:
            return Response({"detail": "Invalid date format. Use YYYY-MM-DD."}, status=400)
        off = self.ledger.toggle_manual_date(member, day)
        return Response({"date": date_key(day), "off": off})

    @action(detail=False, methods=["get"], permission_classes=[IsStaffOnly])
    def planning(self, request):
        raw = request.query_params.get("date")
        day = _parse_day(raw) if raw else local_now().date()
        if day is None:
            return Response({"detail": "Invalid date format. Use YYYY-MM-DD."}, status=400)

        members = self.get_queryset()
        names = request.query_params.get("staff")
        if names:
            wanted = [n.strip().lower() for n in names.split(",") if n.strip()]
            members = [m for m in members if m.name.lower() in wanted or str(m.id) in wanted]
        return Response(OccupancyResolver().week_grid(members, day))

    @action(detail=False, methods=["get"], url_path="hr-summary", permission_classes=[IsStaffOnly])
    def hr_summary(self, request):
        return Response(self.ledger.team_summary(self.get_queryset()))


class AppointmentViewSet(viewsets.ModelViewSet):
    """
    Endpoints:
    - POST   /api/appointments/                     create (auto-assigns staff if omitted)
    - PATCH  /api/appointments/{id}/                reschedule (start_time/staff/service)
    - POST   /api/appointments/{id}/cancel/         cancel
    - GET    /api/appointments/availability/        free slots

    Public booking flow (no login):
    - Create a ClientProfile (name/email/phone), then create an appointment.
    """
    queryset = Appointment.objects.select_related("client", "service", "staff").order_by("-start_time")
    serializer_class = AppointmentSerializer
    manager = BookingManager()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = data["service"]
        start_time = data["start_time"]
        # A named staff member is never swapped for another: a busy slot is a 409
        staff = data.get("staff")
        if staff is None:
            staff = self.manager.pick_free_staff(service, start_time)
            if staff is None:
                return Response({"detail": "No staff available for that time."}, status=status.HTTP_409_CONFLICT)

        try:
            appointment = self.manager.create_appointment(
                client=data["client"],
                service=service,
                staff=staff,
                start_time=start_time,
                notes=data.get("notes", ""),
            )
        except SlotConflictError as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)

        out = AppointmentSerializer(appointment)
        headers = self.get_success_headers(out.data)
        return Response(out.data, status=status.HTTP_201_CREATED, headers=headers)

    def update(self, request, *args, **kwargs):
        appointment = self.get_object()
        partial = kwargs.pop("partial", False)
        serializer = self.get_serializer(appointment, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            appointment = self.manager.reschedule(
                appointment,
                start_time=data.get("start_time"),
                staff=data.get("staff"),
                service=data.get("service"),
            )
        except SlotConflictError as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)

        if "notes" in data:
            appointment.notes = data["notes"]
            appointment.save(update_fields=["notes", "updated_at"])
        return Response(AppointmentSerializer(appointment).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        appointment = get_object_or_404(Appointment, pk=pk)
        try:
            self.manager.cancel_appointment(appointment)
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"detail": "Appointment cancelled."}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="availability")
    def availability(self, request):
        """
        GET /api/appointments/availability/?service=ID&date=YYYY-MM-DD[&staff=ID|name][&exclude=ID]
        With staff: {"slots": ["09:00", ...]}.
        Without staff: {"slots": [{"time": "09:00", "staff_ids": [...]}, ...]}.
        """
        service_ref = request.query_params.get("service")
        date_raw = request.query_params.get("date")
        if not (service_ref or "").strip() or not (date_raw or "").strip():
            return Response(
                {"detail": "Missing 'service' or 'date'."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        day = _parse_day(date_raw)
        if day is None:
            return Response(
                {"detail": "Invalid date format. Use YYYY-MM-DD."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        engine = AvailabilityEngine()
        service = resolve_service(service_ref)
        staff_ref = request.query_params.get("staff")

        if staff_ref:
            slots = engine.compute_slots(
                resolve_staff(staff_ref),
                day,
                service,
                exclude_appointment_id=request.query_params.get("exclude") or None,
            )
            return Response({"date": date_key(day), "slots": slots})

        if service is None:
            return Response({"date": date_key(day), "slots": []})
        data = engine.find_available_slots(service, day, Staff.objects.all().order_by("name"))
        return Response({"date": date_key(day), **data})
