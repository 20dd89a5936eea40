"""
booking_manager.py
------------------
Coordinates appointment creation, rescheduling and cancellation.

Notes:
- Slot computation and the write are separate calls, so two guests can pick
  the same slot from the same snapshot. Every write therefore runs in a
  transaction that locks the staff row (select_for_update) and rechecks the
  slot with AvailabilityEngine.is_slot_available_for_staff before saving.
  Losing the race raises SlotConflictError; the API answers 409 and the
  guest picks another slot.
- Cancellation keeps the row (status="cancelled") so history survives.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from ..exceptions import SlotConflictError
from ..models import Appointment, Staff
from .availability_engine import AvailabilityEngine

logger = logging.getLogger(__name__)


class BookingManager:
    def __init__(self, engine=None):
        self.availability = engine or AvailabilityEngine()

    def _ensure_free(self, staff, service, start_time, exclude_appointment_id=None):
        # Serialises concurrent writers for the same staff member
        Staff.objects.select_for_update().filter(pk=staff.pk).first()
        ok = self.availability.is_slot_available_for_staff(
            staff=staff,
            service=service,
            start_time=start_time,
            exclude_appointment_id=exclude_appointment_id,
        )
        if not ok:
            logger.warning(
                "Slot conflict for %s at %s (service %s)", staff.name, start_time, service.name
            )
            raise SlotConflictError(staff=staff, start_time=start_time)

    def pick_free_staff(self, service, start_time):
        """First staff member (by name) free at start_time, else None. Only for bookings that name nobody."""
        for s in Staff.objects.all().order_by("name"):
            if self.availability.is_slot_available_for_staff(s, service, start_time):
                return s
        return None

    @transaction.atomic
    def create_appointment(self, client, service, staff, start_time, notes="",
                           status=Appointment.STATUS_CONFIRMED):
        """
        Create an appointment after checking the slot under a row lock.

        Args:
            client: ClientProfile instance
            service: Service instance (needs duration_minutes)
            staff: Staff instance
            start_time: aware datetime
            notes: optional string

        Raises:
            SlotConflictError: the slot is not (or no longer) free for staff.
        """
        self._ensure_free(staff, service, start_time)
        appointment = Appointment.objects.create(
            client=client,
            service=service,
            staff=staff,
            start_time=start_time,
            notes=notes,
            status=status,
        )
        logger.info("Appointment #%s booked: %s with %s at %s",
                    appointment.pk, service.name, staff.name, start_time)
        return appointment

    @transaction.atomic
    def reschedule(self, appointment, start_time=None, staff=None, service=None):
        """
        Move an appointment. Its own current block is ignored during the check.

        Raises:
            SlotConflictError: the new slot is taken.
        """
        staff = staff or appointment.staff
        service = service or appointment.service
        start_time = start_time or appointment.start_time

        self._ensure_free(staff, service, start_time, exclude_appointment_id=appointment.pk)
        appointment.staff = staff
        appointment.service = service
        appointment.start_time = start_time
        appointment.save(update_fields=["staff", "service", "start_time", "updated_at"])
        return appointment

    @transaction.atomic
    def cancel_appointment(self, appointment, cutoff_minutes: int = 0) -> bool:
        """
        Cancel an appointment if outside the cutoff window.

        Raises:
            ValueError: already cancelled, or inside the cutoff window.
        """
        if appointment.status == Appointment.STATUS_CANCELLED:
            raise ValueError("This appointment is already cancelled.")

        now = timezone.now()
        if cutoff_minutes and appointment.start_time - now <= timedelta(minutes=cutoff_minutes):
            raise ValueError(
                f"Cannot cancel within {cutoff_minutes} minutes of the appointment start."
            )

        appointment.status = Appointment.STATUS_CANCELLED
        appointment.cancellation_time = now
        appointment.save(update_fields=["status", "cancellation_time", "updated_at"])
        logger.info("Appointment #%s cancelled", appointment.pk)
        return True
