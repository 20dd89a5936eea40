"""
occupancy.py
------------
Classifies one planning-grid cell (staff member, day, hour) into exactly one
status. First match wins, in this order:

    APPOINTMENT  a non-cancelled appointment covers the cell's minute
    CLOSURE      the weekday is one of the staff member's weekly closures
    VACATION     the day is off (manual toggle or full-day absence), or a
                 partial-day absence window covers the cell's minute
    BREAK        inside the working window and inside the daily break
    NON_WORKING  outside the working window
    FREE         otherwise

A break configured outside the working window never shows as BREAK: those
cells are NON_WORKING.

Read-only; an unresolved staff member classifies as None.
"""

from dataclasses import dataclass

from staff.models import LeaveRequest

from ..models import Appointment, Staff
from .availability_engine import AvailabilityEngine, appointment_block
from .time_grid import date_key, date_to_range, minutes_of_day, week_days

APPOINTMENT = "appointment"
CLOSURE = "closure"
VACATION = "vacation"
BREAK = "break"
NON_WORKING = "non_working"
FREE = "free"

DEFAULT_GRID_HOURS = range(8, 20)


@dataclass
class CellStatus:
    kind: str
    appointment: Appointment = None
    is_start: bool = False

    def to_dict(self):
        data = {"status": self.kind}
        if self.kind == APPOINTMENT:
            appt = self.appointment
            data.update({
                "appointment_id": appt.pk,
                "is_start": self.is_start,
                "client": appt.client.name if self.is_start else None,
                "service": appt.service.name if (self.is_start and appt.service) else None,
            })
        return data


class OccupancyResolver:
    def __init__(self, engine=None):
        self.engine = engine or AvailabilityEngine()
        self.ledger = self.engine.ledger

    def classify(self, staff, day, hour, minute=0, appointments=None, absences=None):
        """
        Status of the cell starting at hour:minute on day for staff.

        appointments / absences: optional snapshots (see AvailabilityEngine).
        """
        if not isinstance(staff, Staff):
            return None

        key = date_key(day)
        cell = minutes_of_day(hour, minute)

        if appointments is None:
            appointments = self.engine.appointments_for_day(staff, key)
        for appt in appointments:
            if appt.staff_id != staff.pk or appt.status == Appointment.STATUS_CANCELLED:
                continue
            if date_key(appt.start_time) != key:
                continue
            start, end = appointment_block(appt)
            if start <= cell < end:
                return CellStatus(APPOINTMENT, appointment=appt, is_start=(start == cell))

        if self.engine.is_closed(staff, key):
            return CellStatus(CLOSURE)

        if absences is None:
            absences = list(staff.absences.all())
        if self.ledger.is_day_off(staff, key, absences=absences):
            return CellStatus(VACATION)
        for start, end in self.ledger.blocked_windows(staff, key, absences=absences):
            if start <= cell < end:
                return CellStatus(VACATION)

        work_start, work_end = self.engine.working_window(staff)
        inside = work_start <= cell < work_end
        break_window = self.engine.break_window(staff)
        if inside and break_window and break_window[0] <= cell < break_window[1]:
            return CellStatus(BREAK)
        if not inside:
            return CellStatus(NON_WORKING)
        return CellStatus(FREE)

    def week_grid(self, staff_list, any_day, hours=DEFAULT_GRID_HOURS):
        """
        Monday..Sunday planning grid for staff_list around any_day.

        Each staff row carries, per day, the classified hour cells and a
        pending_request flag (a pending leave request covers that day).
        """
        days = week_days(any_day)
        week_start, _ = date_to_range(days[0])
        _, week_end = date_to_range(days[-1])
        staff_list = list(staff_list)

        appointments = list(
            Appointment.objects.filter(
                staff__in=staff_list, start_time__gte=week_start, start_time__lt=week_end
            )
            .exclude(status=Appointment.STATUS_CANCELLED)
            .select_related("client", "service")
        )
        pending = list(
            LeaveRequest.objects.filter(
                staff__in=staff_list,
                status=LeaveRequest.STATUS_PENDING,
                start_date__lte=days[-1],
                end_date__gte=days[0],
            )
        )

        rows = []
        for member in staff_list:
            absences = list(member.absences.all())
            member_days = []
            for day in days:
                cells = []
                for hour in hours:
                    status = self.classify(member, day, hour, appointments=appointments, absences=absences)
                    cells.append({"hour": hour, **status.to_dict()})
                member_days.append({
                    "date": day.isoformat(),
                    "pending_request": any(
                        r.staff_id == member.pk and r.start_date <= day <= r.end_date for r in pending
                    ),
                    "cells": cells,
                })
            rows.append({"staff_id": member.pk, "name": member.name, "days": member_days})

        return {"days": [d.isoformat() for d in days], "rows": rows}
