"""
request_workflow.py
-------------------
Leave / availability-change requests submitted by staff and decided by admins.

States:
    pending -> approved   (admin, terminal)
    pending -> rejected   (admin, terminal)
    pending -> (deleted)  (staff cancels their own pending request)

Approving an absence request creates the matching AbsenceEntry through the
ledger and returns it. A staff member who wants an approved absence undone
files a revocation: a new pending request of type "availability_change"
pointing at that absence. The absence itself is only removed when the
revocation is approved.

Any other transition raises InvalidTransition and leaves the request as it was.
"""

import logging

from django.db import transaction
from django.utils import timezone

from booking.exceptions import InvalidTransition, InvariantViolation
from booking.services.time_grid import parse_date_key
from staff.models import (
    ABSENCE_TYPES,
    REQUEST_AVAILABILITY_CHANGE,
    AbsenceEntry,
    LeaveRequest,
)

from .absence_ledger import AbsenceLedger, validate_window

logger = logging.getLogger(__name__)


class RequestWorkflow:
    def __init__(self, ledger=None):
        self.ledger = ledger or AbsenceLedger()

    def submit(self, staff, request_type, start_date, end_date, is_full_day=True,
               start_time="", end_time="", notes="") -> LeaveRequest:
        """
        File a new pending request for staff.

        Raises:
            InvariantViolation: unknown type, end before start, or a partial-day
                request without a valid time window.
        """
        if request_type not in ABSENCE_TYPES and request_type != REQUEST_AVAILABILITY_CHANGE:
            raise InvariantViolation(f"Unknown request type: {request_type!r}.")
        try:
            first = parse_date_key(start_date)
            last = parse_date_key(end_date)
        except (TypeError, ValueError):
            raise InvariantViolation("Request dates must be YYYY-MM-DD.")
        if last < first:
            raise InvariantViolation("A request cannot end before it starts.")
        validate_window(is_full_day, start_time, end_time)

        req = LeaveRequest.objects.create(
            staff=staff,
            type=request_type,
            start_date=first,
            end_date=last,
            is_full_day=is_full_day,
            start_time="" if is_full_day else (start_time or ""),
            end_time="" if is_full_day else (end_time or ""),
            notes=notes or "",
        )
        logger.info("Request #%s submitted by %s: %s %s..%s", req.pk, staff.name, request_type, first, last)
        return req

    def revoke(self, absence: AbsenceEntry, notes="") -> LeaveRequest:
        """
        Ask for an approved absence to be undone. Returns the new pending
        revocation request; the absence stays in place until it is approved.
        """
        existing = LeaveRequest.objects.filter(
            target_absence=absence, status=LeaveRequest.STATUS_PENDING
        ).first()
        if existing:
            raise InvalidTransition("A revocation for this absence is already pending.")

        req = LeaveRequest.objects.create(
            staff=absence.staff,
            type=REQUEST_AVAILABILITY_CHANGE,
            start_date=absence.start_date,
            end_date=absence.end_date,
            is_full_day=absence.is_full_day,
            start_time=absence.start_time,
            end_time=absence.end_time,
            notes=notes or "",
            target_absence=absence,
        )
        logger.info("Revocation #%s filed for absence #%s", req.pk, absence.pk)
        return req

    def _lock_pending(self, request: LeaveRequest, action: str) -> LeaveRequest:
        locked = LeaveRequest.objects.select_for_update().get(pk=request.pk)
        if locked.status != LeaveRequest.STATUS_PENDING:
            raise InvalidTransition(
                f"Cannot {action} request #{locked.pk}: it is already {locked.status}."
            )
        return locked

    @transaction.atomic
    def approve(self, request: LeaveRequest):
        """
        pending -> approved.

        Returns:
            AbsenceEntry created for an absence request, or None for an
            approved revocation (its target absence is removed instead).
        """
        locked = self._lock_pending(request, "approve")
        staff = locked.staff

        entry = None
        if locked.is_revocation:
            if locked.target_absence_id is not None:
                self.ledger.remove_absence(staff, locked.target_absence_id)
        else:
            entry = self.ledger.add_absence(
                staff,
                entry_type=locked.type,
                start_date=locked.start_date,
                end_date=locked.end_date,
                is_full_day=locked.is_full_day,
                start_time=locked.start_time,
                end_time=locked.end_time,
                notes=locked.notes,
            )

        locked.status = LeaveRequest.STATUS_APPROVED
        locked.decided_at = timezone.now()
        locked.save(update_fields=["status", "decided_at"])
        request.status, request.decided_at = locked.status, locked.decided_at
        logger.info("Request #%s approved", locked.pk)
        return entry

    @transaction.atomic
    def reject(self, request: LeaveRequest) -> LeaveRequest:
        locked = self._lock_pending(request, "reject")
        locked.status = LeaveRequest.STATUS_REJECTED
        locked.decided_at = timezone.now()
        locked.save(update_fields=["status", "decided_at"])
        request.status, request.decided_at = locked.status, locked.decided_at
        logger.info("Request #%s rejected", locked.pk)
        return locked

    @transaction.atomic
    def cancel(self, request: LeaveRequest) -> None:
        """Staff withdraws a pending request; the row is deleted."""
        locked = self._lock_pending(request, "cancel")
        pk = locked.pk
        locked.delete()
        logger.info("Request #%s cancelled by %s", pk, request.staff.name)

    def pending(self, staff=None):
        qs = LeaveRequest.objects.filter(status=LeaveRequest.STATUS_PENDING).select_related("staff")
        if staff is not None:
            qs = qs.filter(staff=staff)
        return qs
