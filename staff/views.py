# staff/views.py
#
# Purpose:
# - HR endpoints under /api/hr/:
#   * absences/  list, record and delete absence entries (staff only)
#   * requests/  leave requests: anyone on the team files them, admins decide
#
# Notes:
# - Absences are never written directly: create/destroy go through
#   AbsenceLedger so the overtime balance moves with them.
# - Workflow errors (InvariantViolation / InvalidTransition) answer 400 with
#   the messages under "detail".
#
from django.core.exceptions import ValidationError
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from booking.views import IsStaffOnly

from .models import AbsenceEntry, LeaveRequest
from .serializers import AbsenceEntrySerializer, LeaveRequestSerializer
from .services.absence_ledger import AbsenceLedger
from .services.request_workflow import RequestWorkflow


def error_response(exc: ValidationError):
    return Response({"detail": exc.messages}, status=status.HTTP_400_BAD_REQUEST)


class AbsenceViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.CreateModelMixin,
                     mixins.DestroyModelMixin,
                     viewsets.GenericViewSet):
    """
    GET    /api/hr/absences/?staff=ID      entries (optionally for one member)
    POST   /api/hr/absences/               record an entry
    DELETE /api/hr/absences/{id}/          remove it (overtime reversed)
    POST   /api/hr/absences/{id}/revoke/   file a revocation request
    """
    serializer_class = AbsenceEntrySerializer
    permission_classes = [IsStaffOnly]
    ledger = AbsenceLedger()

    def get_queryset(self):
        qs = AbsenceEntry.objects.select_related("staff").order_by("staff__name", "start_date", "id")
        staff_id = self.request.query_params.get("staff")
        if staff_id and staff_id.isdigit():
            qs = qs.filter(staff_id=int(staff_id))
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            entry = self.ledger.add_absence(
                data["staff"],
                entry_type=data["type"],
                start_date=data["start_date"],
                end_date=data["end_date"],
                is_full_day=data.get("is_full_day", True),
                hours_count=data.get("hours_count"),
                start_time=data.get("start_time", ""),
                end_time=data.get("end_time", ""),
                notes=data.get("notes", ""),
            )
        except ValidationError as e:
            return error_response(e)
        return Response(self.get_serializer(entry).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        entry = self.get_object()
        try:
            staff = self.ledger.remove_absence(entry.staff, entry.pk)
        except ValidationError as e:
            return error_response(e)
        return Response(
            {"detail": "Absence removed.", "overtime_balance_hours": float(staff.overtime_balance_hours)},
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"])
    def revoke(self, request, pk=None):
        entry = self.get_object()
        try:
            req = RequestWorkflow(self.ledger).revoke(entry, notes=request.data.get("notes", ""))
        except ValidationError as e:
            return error_response(e)
        return Response(LeaveRequestSerializer(req).data, status=status.HTTP_201_CREATED)


class LeaveRequestViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.CreateModelMixin,
                          viewsets.GenericViewSet):
    """
    GET  /api/hr/requests/?status=pending&staff=ID
    POST /api/hr/requests/                  submit (status starts as pending)
    POST /api/hr/requests/{id}/approve/     admin
    POST /api/hr/requests/{id}/reject/      admin
    POST /api/hr/requests/{id}/cancel/      withdraw a pending request
    """
    serializer_class = LeaveRequestSerializer
    permission_classes = [IsStaffOnly]
    workflow = RequestWorkflow()

    def get_queryset(self):
        qs = LeaveRequest.objects.select_related("staff")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        staff_id = self.request.query_params.get("staff")
        if staff_id and staff_id.isdigit():
            qs = qs.filter(staff_id=int(staff_id))
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            req = self.workflow.submit(
                data["staff"],
                data["type"],
                data["start_date"],
                data["end_date"],
                is_full_day=data.get("is_full_day", True),
                start_time=data.get("start_time", ""),
                end_time=data.get("end_time", ""),
                notes=data.get("notes", ""),
            )
        except ValidationError as e:
            return error_response(e)
        return Response(self.get_serializer(req).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        req = self.get_object()
        try:
            entry = self.workflow.approve(req)
        except ValidationError as e:
            return error_response(e)
        req.refresh_from_db()
        data = self.get_serializer(req).data
        data["absence"] = AbsenceEntrySerializer(entry).data if entry is not None else None
        return Response(data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        req = self.get_object()
        try:
            self.workflow.reject(req)
        except ValidationError as e:
            return error_response(e)
        return Response(self.get_serializer(req).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        req = self.get_object()
        try:
            self.workflow.cancel(req)
        except ValidationError as e:
            return error_response(e)
        return Response({"detail": "Request cancelled."})
