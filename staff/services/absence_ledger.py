"""
absence_ledger.py
-----------------
Owns every create/remove of AbsenceEntry rows and the values derived from them:

1) overtime balance on Staff: a signed running total that must always equal
   sum(hours of "overtime" entries) - sum(hours of "overtime_recovery" entries)
   currently in the ledger. add/remove apply the exact same delta in opposite
   directions, inside a transaction holding the staff row lock.
2) unavailable dates: computed on demand from the structured entries plus the
   staff member's manual (legacy) day toggles. Nothing derived is stored, so
   removing one entry can never erase a day another entry still covers.
3) HR stats: day counts per absence type for the HR widgets.

Every entry blocks the floor for its dates, whatever its type: a full-day
entry takes the whole day off, a partial-day entry its time window.
"""

import logging
import math
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction

from booking.exceptions import InvariantViolation
from booking.models import HHMM_RE, Staff
from booking.services.time_grid import date_key, expand_dates, hhmm_to_minutes, parse_date_key
from staff.models import (
    ABSENCE_INJURY,
    ABSENCE_OVERTIME,
    ABSENCE_OVERTIME_RECOVERY,
    ABSENCE_SICK,
    ABSENCE_TRAINING,
    ABSENCE_TYPES,
    ABSENCE_VACATION,
    AbsenceEntry,
)

logger = logging.getLogger(__name__)


def overtime_delta(entry_type, hours) -> Decimal:
    """Effect of one entry on the overtime balance."""
    if entry_type == ABSENCE_OVERTIME:
        return Decimal(hours)
    if entry_type == ABSENCE_OVERTIME_RECOVERY:
        return -Decimal(hours)
    return Decimal("0")


def validate_window(is_full_day, start_time, end_time, require_window=True):
    """
    Check the time window of a partial-day entry or request.
    require_window=False lets a partial entry carry hours_count without a window.
    """
    if is_full_day:
        return
    if not (start_time or end_time):
        if require_window:
            raise InvariantViolation("Partial-day absences need either a time window or hours_count.")
        return
    if not (HHMM_RE.match(start_time or "") and HHMM_RE.match(end_time or "")):
        raise InvariantViolation("Partial-day absences need start and end times as HH:MM.")
    if hhmm_to_minutes(end_time) <= hhmm_to_minutes(start_time):
        raise InvariantViolation("Partial-day absence must end after it starts.")


def _hours_per_day(staff) -> Decimal:
    value = Decimal(str(staff.hours_per_day_contract or 0))
    if value <= 0:
        value = Decimal(str(settings.SALON_DEFAULT_HOURS_PER_DAY))
    return value


class AbsenceLedger:
    # -------------------- mutations --------------------
    def _validate(self, staff, entry_type, start, end, is_full_day, start_time, end_time, hours_count):
        if entry_type not in ABSENCE_TYPES:
            raise InvariantViolation(f"Unknown absence type: {entry_type!r}.")

        try:
            first = parse_date_key(start)
            last = parse_date_key(end)
        except (TypeError, ValueError):
            raise InvariantViolation("Absence dates must be YYYY-MM-DD.")
        if last < first:
            raise InvariantViolation(
                f"Absence ends before it starts ({date_key(last)} < {date_key(first)})."
            )

        validate_window(is_full_day, start_time, end_time, require_window=hours_count is None)

        if hours_count is None:
            if is_full_day:
                hours = Decimal(len(expand_dates(first, last))) * _hours_per_day(staff)
            else:
                window = hhmm_to_minutes(end_time) - hhmm_to_minutes(start_time)
                hours = Decimal(window) / Decimal(60) * len(expand_dates(first, last))
        else:
            try:
                hours = Decimal(str(hours_count))
            except (InvalidOperation, ValueError):
                raise InvariantViolation(f"hours_count must be a number, got {hours_count!r}.")
            if not hours.is_finite():
                raise InvariantViolation(f"hours_count must be a finite number, got {hours_count!r}.")
            if hours < 0:
                raise InvariantViolation("hours_count cannot be negative.")

        return first, last, hours.quantize(Decimal("0.01"))

    @transaction.atomic
    def add_absence(self, staff, entry_type, start_date, end_date, is_full_day=True,
                    hours_count=None, start_time="", end_time="", notes="") -> AbsenceEntry:
        """
        Record an absence (or overtime credit) for staff and apply its
        overtime effect. The passed staff instance is updated in place.

        Raises:
            InvariantViolation: unknown type, end before start, bad hours.
        """
        first, last, hours = self._validate(
            staff, entry_type, start_date, end_date, is_full_day, start_time, end_time, hours_count
        )

        locked = Staff.objects.select_for_update().get(pk=staff.pk)
        entry = AbsenceEntry.objects.create(
            staff=locked,
            start_date=first,
            end_date=last,
            type=entry_type,
            is_full_day=is_full_day,
            start_time="" if is_full_day else (start_time or ""),
            end_time="" if is_full_day else (end_time or ""),
            hours_count=hours,
            notes=notes or "",
        )

        delta = overtime_delta(entry_type, hours)
        if delta:
            locked.overtime_balance_hours = Decimal(locked.overtime_balance_hours) + delta
            locked.save(update_fields=["overtime_balance_hours"])
        staff.overtime_balance_hours = locked.overtime_balance_hours

        logger.info(
            "Absence #%s added for %s: %s %s..%s (%sh, overtime delta %s)",
            entry.pk, staff.name, entry_type, first, last, hours, delta,
        )
        return entry

    @transaction.atomic
    def remove_absence(self, staff, entry_id) -> Staff:
        """
        Delete one of staff's entries and reverse its overtime effect exactly.

        Raises:
            InvariantViolation: the entry does not exist for this staff member.
        """
        locked = Staff.objects.select_for_update().get(pk=staff.pk)
        entry = AbsenceEntry.objects.filter(pk=entry_id, staff=locked).first()
        if entry is None:
            raise InvariantViolation(
                f"Absence entry {entry_id} does not exist for {staff.name}."
            )

        delta = overtime_delta(entry.type, entry.hours_count)
        entry.delete()
        if delta:
            locked.overtime_balance_hours = Decimal(locked.overtime_balance_hours) - delta
            locked.save(update_fields=["overtime_balance_hours"])
        staff.overtime_balance_hours = locked.overtime_balance_hours

        logger.info("Absence #%s removed for %s (overtime delta %s)", entry_id, staff.name, -delta)
        return staff

    @transaction.atomic
    def toggle_manual_date(self, staff, day) -> bool:
        """
        Flip a legacy per-day "off" marker. Returns True when the day is now off.
        Days covered by absence entries are not affected.
        """
        key = date_key(day)
        locked = Staff.objects.select_for_update().get(pk=staff.pk)
        days = set(locked.manual_unavailable_dates or [])
        if key in days:
            days.discard(key)
            now_off = False
        else:
            days.add(key)
            now_off = True
        locked.manual_unavailable_dates = sorted(days)
        locked.save(update_fields=["manual_unavailable_dates"])
        staff.manual_unavailable_dates = locked.manual_unavailable_dates
        return now_off

    # -------------------- projections --------------------
    def _entries(self, staff, absences=None):
        if absences is not None:
            return list(absences)
        return list(staff.absences.all())

    def unavailable_dates(self, staff, absences=None) -> list:
        """Sorted day keys on which staff cannot be booked at all."""
        days = set(staff.manual_unavailable_dates or [])
        for entry in self._entries(staff, absences):
            if entry.is_full_day:
                days.update(expand_dates(entry.start_date, entry.end_date))
        return sorted(days)

    def is_day_off(self, staff, day, absences=None) -> bool:
        key = date_key(day)
        if key in (staff.manual_unavailable_dates or []):
            return True
        d = parse_date_key(key)
        return any(
            entry.is_full_day and entry.covers(d)
            for entry in self._entries(staff, absences)
        )

    def blocked_windows(self, staff, day, absences=None) -> list:
        """(start, end) minute windows of partial-day absences on day."""
        d = parse_date_key(day)
        windows = []
        for entry in self._entries(staff, absences):
            if entry.is_full_day:
                continue
            if not (entry.start_time and entry.end_time) or not entry.covers(d):
                continue
            windows.append((hhmm_to_minutes(entry.start_time), hhmm_to_minutes(entry.end_time)))
        return sorted(windows)

    def find_entry(self, staff, day, absences=None):
        """The first entry covering day, if any."""
        d = parse_date_key(day)
        for entry in self._entries(staff, absences):
            if entry.covers(d):
                return entry
        return None

    # -------------------- balances & stats --------------------
    def expected_overtime_balance(self, staff, absences=None) -> Decimal:
        total = Decimal("0")
        for entry in self._entries(staff, absences):
            total += overtime_delta(entry.type, entry.hours_count)
        return total

    @transaction.atomic
    def reconcile_overtime(self, staff) -> Decimal:
        """Reset the stored balance to the value implied by the entries (repairs legacy drift)."""
        locked = Staff.objects.select_for_update().get(pk=staff.pk)
        expected = self.expected_overtime_balance(locked)
        if Decimal(locked.overtime_balance_hours) != expected:
            logger.warning(
                "Overtime balance drift for %s: stored %s, entries imply %s",
                staff.name, locked.overtime_balance_hours, expected,
            )
            locked.overtime_balance_hours = expected
            locked.save(update_fields=["overtime_balance_hours"])
        staff.overtime_balance_hours = expected
        return expected

    def stats_for(self, staff, absences=None) -> dict:
        """
        HR balance figures for one staff member. *_days values are hours of
        that type divided by the contract day, rounded to one decimal.
        """
        entries = self._entries(staff, absences)
        per_day = _hours_per_day(staff)

        def days_of(entry_type):
            hours = sum((Decimal(e.hours_count) for e in entries if e.type == entry_type), Decimal("0"))
            return round(float(hours / per_day), 1)

        vacation_used = days_of(ABSENCE_VACATION)
        balance = Decimal(staff.overtime_balance_hours or 0)
        return {
            "vacation_used": vacation_used,
            "vacation_remaining": round(float(staff.total_vacation_days_per_year) - vacation_used, 1),
            "sick_days": days_of(ABSENCE_SICK),
            "injury_days": days_of(ABSENCE_INJURY),
            "training_days": days_of(ABSENCE_TRAINING),
            "recovery_used": days_of(ABSENCE_OVERTIME_RECOVERY),
            "overtime_balance": float(balance),
            "potential_recovery_days": math.floor(balance / per_day),
        }

    def team_summary(self, staff_list) -> dict:
        members = []
        remaining_total = 0.0
        for member in staff_list:
            stats = self.stats_for(member)
            remaining_total += stats["vacation_remaining"]
            members.append({"staff_id": member.id, "name": member.name, **stats})
        return {
            "team_size": len(members),
            "vacation_remaining_total": round(remaining_total, 1),
            "members": members,
        }
