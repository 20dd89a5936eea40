from django.test import TestCase

from booking.exceptions import SlotConflictError
from booking.models import Appointment
from booking.services.booking_manager import BookingManager

from .helpers import at, future_monday, make_client, make_service, make_staff


class BookingManagerTests(TestCase):

    def setUp(self):
        self.manager = BookingManager()
        self.day = future_monday()
        self.melk = make_staff(name="Melk")
        self.romina = make_staff(name="Romina")
        self.service = make_service(duration=60)
        self.client_profile = make_client()

    def test_create_appointment(self):
        appt = self.manager.create_appointment(
            self.client_profile, self.service, self.melk, at(self.day, 10), notes="first visit"
        )
        self.assertEqual(appt.status, Appointment.STATUS_CONFIRMED)
        self.assertEqual(appt.notes, "first visit")

    def test_overlapping_booking_is_rejected(self):
        self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        with self.assertRaises(SlotConflictError):
            self.manager.create_appointment(
                self.client_profile, self.service, self.melk, at(self.day, 10, 30)
            )
        self.assertEqual(Appointment.objects.count(), 1)

    def test_conflict_is_a_value_error(self):
        self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        with self.assertRaises(ValueError):
            self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))

    def test_pick_free_staff_takes_first_free_by_name(self):
        self.assertEqual(self.manager.pick_free_staff(self.service, at(self.day, 10)), self.melk)
        self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        self.assertEqual(self.manager.pick_free_staff(self.service, at(self.day, 10)), self.romina)

    def test_pick_free_staff_none_when_everyone_is_busy(self):
        for member in (self.melk, self.romina):
            self.manager.create_appointment(self.client_profile, self.service, member, at(self.day, 10))
        self.assertIsNone(self.manager.pick_free_staff(self.service, at(self.day, 10)))

    def test_reschedule_ignores_own_block(self):
        appt = self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        moved = self.manager.reschedule(appt, start_time=at(self.day, 10, 30))
        self.assertEqual(moved.start_time, at(self.day, 10, 30))

    def test_reschedule_into_taken_slot(self):
        self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 12))
        appt = self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        with self.assertRaises(SlotConflictError):
            self.manager.reschedule(appt, start_time=at(self.day, 11, 30))
        appt.refresh_from_db()
        self.assertEqual(appt.start_time, at(self.day, 10))

    def test_cancel_frees_the_slot(self):
        appt = self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        self.assertTrue(self.manager.cancel_appointment(appt))
        appt.refresh_from_db()
        self.assertEqual(appt.status, Appointment.STATUS_CANCELLED)
        self.assertIsNotNone(appt.cancellation_time)
        self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))

    def test_cancel_twice(self):
        appt = self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        self.manager.cancel_appointment(appt)
        with self.assertRaises(ValueError):
            self.manager.cancel_appointment(appt)

    def test_cancel_inside_cutoff(self):
        appt = self.manager.create_appointment(self.client_profile, self.service, self.melk, at(self.day, 10))
        # The appointment is under 30 days away
        with self.assertRaises(ValueError):
            self.manager.cancel_appointment(appt, cutoff_minutes=30 * 24 * 60)
