from datetime import date
from decimal import Decimal

from django.test import TestCase

from booking.exceptions import InvariantViolation
from booking.models import Staff
from staff.models import AbsenceEntry
from staff.services.absence_ledger import AbsenceLedger


class AbsenceLedgerTests(TestCase):

    def setUp(self):
        self.ledger = AbsenceLedger()
        self.staff = Staff.objects.create(name="Romina", hours_per_day_contract=Decimal("8.00"))

    def balance(self):
        self.staff.refresh_from_db()
        return self.staff.overtime_balance_hours

    def test_overtime_and_recovery(self):
        """+4h overtime, -1.5h recovery -> 2.5h; removing the recovery restores 4h."""
        self.ledger.add_absence(self.staff, "overtime", "2030-06-03", "2030-06-03", hours_count=4)
        recovery = self.ledger.add_absence(
            self.staff, "overtime_recovery", "2030-06-04", "2030-06-04", is_full_day=False, hours_count="1.5"
        )
        self.assertEqual(self.balance(), Decimal("2.5"))

        self.ledger.remove_absence(self.staff, recovery.pk)
        self.assertEqual(self.balance(), Decimal("4"))
        self.assertEqual(self.staff.overtime_balance_hours, self.ledger.expected_overtime_balance(self.staff))

    def test_other_types_leave_balance_alone(self):
        self.ledger.add_absence(self.staff, "vacation", "2030-06-03", "2030-06-07")
        self.ledger.add_absence(self.staff, "sick", "2030-06-10", "2030-06-10")
        self.assertEqual(self.balance(), Decimal("0"))

    def test_default_hours(self):
        full = self.ledger.add_absence(self.staff, "vacation", "2030-06-03", "2030-06-05")
        self.assertEqual(full.hours_count, Decimal("24.00"))

        partial = self.ledger.add_absence(
            self.staff, "training", "2030-06-10", "2030-06-10", is_full_day=False,
            start_time="14:00", end_time="16:30",
        )
        self.assertEqual(partial.hours_count, Decimal("2.50"))

    def test_invalid_entries_raise(self):
        with self.assertRaises(InvariantViolation):
            self.ledger.add_absence(self.staff, "vacation", "2030-06-05", "2030-06-03")
        with self.assertRaises(InvariantViolation):
            self.ledger.add_absence(self.staff, "holiday", "2030-06-03", "2030-06-03")
        with self.assertRaises(InvariantViolation):
            self.ledger.add_absence(self.staff, "overtime", "2030-06-03", "2030-06-03", hours_count=-2)
        with self.assertRaises(InvariantViolation):
            self.ledger.add_absence(
                self.staff, "sick", "2030-06-03", "2030-06-03", is_full_day=False,
                start_time="16:00", end_time="15:00",
            )
        self.assertFalse(AbsenceEntry.objects.exists())

    def test_non_finite_hours_raise(self):
        for bad in ("NaN", "Infinity", "-Infinity"):
            with self.assertRaises(InvariantViolation):
                self.ledger.add_absence(self.staff, "overtime", "2030-06-03", "2030-06-03", hours_count=bad)
        self.assertEqual(self.balance(), Decimal("0"))

    def test_removing_unknown_entry_raises(self):
        with self.assertRaises(InvariantViolation):
            self.ledger.remove_absence(self.staff, 12345)

    def test_projection_survives_overlapping_removal(self):
        """Two entries share 2030-06-05; removing one keeps the shared day off."""
        first = self.ledger.add_absence(self.staff, "vacation", "2030-06-03", "2030-06-05")
        self.ledger.add_absence(self.staff, "sick", "2030-06-05", "2030-06-06")
        self.ledger.remove_absence(self.staff, first.pk)

        self.assertEqual(self.ledger.unavailable_dates(self.staff), ["2030-06-05", "2030-06-06"])
        self.assertTrue(self.ledger.is_day_off(self.staff, date(2030, 6, 5)))
        self.assertFalse(self.ledger.is_day_off(self.staff, date(2030, 6, 4)))

    def test_projection_covers_every_full_day_type(self):
        """Full-day overtime counts as a day off; partial entries only block their window."""
        self.ledger.add_absence(self.staff, "overtime", "2030-06-03", "2030-06-03", hours_count=3)
        self.ledger.add_absence(
            self.staff, "training", "2030-06-04", "2030-06-04", is_full_day=False,
            start_time="09:00", end_time="11:00",
        )
        self.assertEqual(self.ledger.unavailable_dates(self.staff), ["2030-06-03"])
        self.assertTrue(self.ledger.is_day_off(self.staff, "2030-06-03"))
        self.assertFalse(self.ledger.is_day_off(self.staff, "2030-06-04"))
        self.assertEqual(self.ledger.blocked_windows(self.staff, "2030-06-04"), [(540, 660)])
        self.assertEqual(self.ledger.find_entry(self.staff, "2030-06-03").type, "overtime")

    def test_manual_dates_join_projection(self):
        self.assertTrue(self.ledger.toggle_manual_date(self.staff, "2030-06-20"))
        self.ledger.add_absence(self.staff, "vacation", "2030-06-03", "2030-06-03")
        self.assertEqual(self.ledger.unavailable_dates(self.staff), ["2030-06-03", "2030-06-20"])
        self.assertFalse(self.ledger.toggle_manual_date(self.staff, "2030-06-20"))
        self.assertEqual(self.ledger.unavailable_dates(self.staff), ["2030-06-03"])

    def test_reconcile_repairs_drift(self):
        self.ledger.add_absence(self.staff, "overtime", "2030-06-03", "2030-06-03", hours_count=6)
        Staff.objects.filter(pk=self.staff.pk).update(overtime_balance_hours=Decimal("99"))
        with self.assertLogs("staff.services.absence_ledger", level="WARNING"):
            self.assertEqual(self.ledger.reconcile_overtime(self.staff), Decimal("6"))
        self.assertEqual(self.balance(), Decimal("6"))

    def test_stats(self):
        self.ledger.add_absence(self.staff, "vacation", "2030-06-03", "2030-06-07")
        self.ledger.add_absence(self.staff, "sick", "2030-06-10", "2030-06-10")
        self.ledger.add_absence(self.staff, "overtime", "2030-06-11", "2030-06-11", hours_count=20)
        self.ledger.add_absence(self.staff, "overtime_recovery", "2030-06-12", "2030-06-12", hours_count=4)
        self.staff.refresh_from_db()

        stats = self.ledger.stats_for(self.staff)
        self.assertEqual(stats["vacation_used"], 5.0)
        self.assertEqual(stats["vacation_remaining"], 20.0)
        self.assertEqual(stats["sick_days"], 1.0)
        self.assertEqual(stats["recovery_used"], 0.5)
        self.assertEqual(stats["overtime_balance"], 16.0)
        self.assertEqual(stats["potential_recovery_days"], 2)

    def test_team_summary(self):
        other = Staff.objects.create(name="Maurizio")
        self.ledger.add_absence(other, "vacation", "2030-06-03", "2030-06-03")
        summary = self.ledger.team_summary([self.staff, other])
        self.assertEqual(summary["team_size"], 2)
        self.assertEqual(summary["vacation_remaining_total"], 49.0)
