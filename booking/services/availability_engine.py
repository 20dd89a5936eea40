"""
availability_engine.py
----------------------
Computes bookable start times for a (staff member, day, service) triple by
checking half-hour candidate slots against:
1) weekly closures and full-day absences (whole day off),
2) the staff member's working window and daily break,
3) partial-day absences (time windows),
4) the same-day minimum lead time,
5) existing non-cancelled appointments of that staff member
   (double-booking prevention),
6) the calendar itself: a day before today has no slots at all.

Everything is evaluated on the salon's local calendar. The engine is
read-only: callers pass a snapshot of appointments (or let the engine load
the day's rows) and must recompute after every booking, because two
returned slots can overlap each other for long services.

Overlap rule (symmetric):
    new_start < existing_end AND new_end > existing_start
where existing_end = existing_start + the existing service's duration
(30 minutes when the service can no longer be resolved).
"""

import logging
from datetime import timedelta
from dataclasses import dataclass, field

from ..models import Appointment, Service, Staff
from .time_grid import (
    date_key,
    date_to_range,
    format_minutes,
    generate_candidate_starts,
    get_default_work_hours,
    get_lead_minutes,
    hhmm_to_minutes,
    local_now,
    minutes_of_day,
    parse_date_key,
    to_local,
    weekday_of,
)

logger = logging.getLogger(__name__)

UNRESOLVED_SERVICE_MINUTES = 30


@dataclass
class DayContext:
    """Constraints for one staff member on one local day, in minutes since midnight."""
    work_start: int
    work_end: int
    break_window: tuple = None
    busy: list = field(default_factory=list)
    blocked: list = field(default_factory=list)
    earliest_start: int = None


def appointment_block(appointment):
    """(start, end) minutes of an appointment on its local day."""
    local = to_local(appointment.start_time)
    start = minutes_of_day(local.hour, local.minute)
    service = appointment.service
    duration = service.duration_minutes if service else UNRESOLVED_SERVICE_MINUTES
    return start, start + duration


def overlaps(start, end, other_start, other_end) -> bool:
    return start < other_end and end > other_start


class AvailabilityEngine:
    def __init__(self, ledger=None):
        if ledger is None:
            from staff.services.absence_ledger import AbsenceLedger
            ledger = AbsenceLedger()
        self.ledger = ledger

    def _is_valid_staff(self, staff) -> bool:
        return isinstance(staff, Staff) and staff.pk is not None

    # -------------------- schedule windows --------------------
    def working_window(self, staff):
        """(start, end) minutes; falls back to the salon default when unset or malformed."""
        default_start, default_end = get_default_work_hours()
        try:
            start = hhmm_to_minutes(staff.work_start or default_start)
            end = hhmm_to_minutes(staff.work_end or default_end)
        except ValueError:
            logger.warning("Malformed working hours for %s; using salon defaults", staff.name)
            start, end = hhmm_to_minutes(default_start), hhmm_to_minutes(default_end)
        return start, end

    def break_window(self, staff):
        if not (staff.break_start and staff.break_end):
            return None
        try:
            return hhmm_to_minutes(staff.break_start), hhmm_to_minutes(staff.break_end)
        except ValueError:
            logger.warning("Malformed break window for %s; ignoring it", staff.name)
            return None

    def is_closed(self, staff, day) -> bool:
        return weekday_of(day) in (staff.weekly_closures or [])

    # -------------------- appointments --------------------
    def appointments_for_day(self, staff, day):
        """Non-cancelled appointments of staff on the local day (DB query)."""
        day_start, day_end = date_to_range(day)
        return list(
            Appointment.objects.filter(staff=staff, start_time__gte=day_start, start_time__lt=day_end)
            .exclude(status=Appointment.STATUS_CANCELLED)
            .select_related("service")
        )

    def busy_blocks(self, staff, day, appointments=None, exclude_appointment_id=None):
        """Sorted (start, end) minute blocks taken by appointments on day."""
        key = date_key(day)
        if appointments is None:
            appointments = self.appointments_for_day(staff, key)

        blocks = []
        for appt in appointments:
            if appt.staff_id != staff.pk or appt.status == Appointment.STATUS_CANCELLED:
                continue
            if exclude_appointment_id is not None and str(appt.pk) == str(exclude_appointment_id):
                continue
            if date_key(appt.start_time) != key:
                continue
            blocks.append(appointment_block(appt))
        return sorted(blocks)

    # -------------------- day context --------------------
    def day_context(self, staff, day, appointments=None, exclude_appointment_id=None,
                    now=None, absences=None):
        """
        Constraints for staff on day, or None when nothing can be booked that day
        (closure, day off, day in the past).
        """
        key = date_key(day)
        if self.is_closed(staff, key):
            return None
        if self.ledger.is_day_off(staff, key, absences=absences):
            return None

        now = to_local(now) if now is not None else local_now()
        today = date_key(now)
        if key < today:
            return None

        work_start, work_end = self.working_window(staff)
        ctx = DayContext(
            work_start=work_start,
            work_end=work_end,
            break_window=self.break_window(staff),
            busy=self.busy_blocks(staff, key, appointments, exclude_appointment_id),
            blocked=self.ledger.blocked_windows(staff, key, absences=absences),
        )
        if key == today:
            now_minutes = now.hour * 60 + now.minute + now.second / 60
            # A slot must start strictly after this point
            ctx.earliest_start = now_minutes + get_lead_minutes()
        return ctx

    def fits(self, ctx, slot_start: int, duration: int) -> bool:
        slot_end = slot_start + duration

        if slot_start < ctx.work_start or slot_end > ctx.work_end:
            return False
        if ctx.earliest_start is not None and slot_start <= ctx.earliest_start:
            return False
        if ctx.break_window and overlaps(slot_start, slot_end, *ctx.break_window):
            return False
        for start, end in ctx.blocked:
            if overlaps(slot_start, slot_end, start, end):
                return False
        for start, end in ctx.busy:
            if overlaps(slot_start, slot_end, start, end):
                return False
        return True

    # -------------------- public API --------------------
    def compute_slots(self, staff, day, service, appointments=None,
                      exclude_appointment_id=None, now=None, absences=None):
        """
        Ordered "HH:MM" start times at which service can be booked with staff on day.

        Args:
            staff: Staff instance (anything else -> [])
            day: date or 'YYYY-MM-DD' (unparsable -> [])
            service: Service instance (anything else -> [])
            appointments: optional snapshot; defaults to the day's rows in the DB
            exclude_appointment_id: appointment being edited, ignored as an obstacle
            now: override of the current moment (aware or local naive datetime)
            absences: optional snapshot of staff's AbsenceEntry rows
        """
        if not self._is_valid_staff(staff) or not isinstance(service, Service):
            return []
        try:
            key = date_key(day)
        except (TypeError, ValueError):
            return []

        ctx = self.day_context(staff, key, appointments, exclude_appointment_id, now, absences)
        if ctx is None:
            return []

        work_start, work_end = format_minutes(ctx.work_start), format_minutes(ctx.work_end)
        return [
            format_minutes(start)
            for start in generate_candidate_starts(work_start, work_end)
            if self.fits(ctx, start, service.duration_minutes)
        ]

    def is_slot_available_for_staff(self, staff, service, start_time, appointments=None,
                                    exclude_appointment_id=None, now=None) -> bool:
        """
        Check one concrete start datetime (need not sit on the half-hour grid).
        Used by BookingManager right before writing.
        """
        if not self._is_valid_staff(staff) or not isinstance(service, Service):
            return False

        local = to_local(start_time)
        ctx = self.day_context(staff, local.date(), appointments, exclude_appointment_id, now)
        if ctx is None:
            return False
        return self.fits(ctx, minutes_of_day(local.hour, local.minute), service.duration_minutes)

    def find_available_slots(self, service, day, staff_queryset, now=None):
        """
        Any-staff search: for each candidate start, the ids of staff members free then.
        Returns {"slots": [{"time": "HH:MM", "staff_ids": [...]}, ...]} in time order.
        """
        by_time = {}
        for staff in staff_queryset:
            if not self._is_valid_staff(staff):
                continue
            for slot in self.compute_slots(staff, day, service, now=now):
                by_time.setdefault(slot, []).append(staff.id)

        return {
            "slots": [
                {"time": slot, "staff_ids": by_time[slot]}
                for slot in sorted(by_time)
            ]
        }

    def next_available_day(self, staff, service, start_day, days_ahead=30, now=None):
        """First day in [start_day, start_day + days_ahead) with at least one slot, else None."""
        first = parse_date_key(start_day)
        for offset in range(days_ahead):
            day = first + timedelta(days=offset)
            if self.compute_slots(staff, day, service, now=now):
                return day
        return None
