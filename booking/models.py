# booking/models.py
#
# Purpose:
# - Core domain models for the salon: guests, service catalog, staff members
#   and appointments.
#
# Design highlights:
# - ClientProfile: guest record. clean() prevents duplicates by
#   (name/email case-insensitive + phone exact).
# - Service: validates price and duration; "active" flag controls visibility.
#   duration_minutes drives the length of a booked block.
# - Staff: stable integer pk plus a UNIQUE display name. Appointments, absences
#   and leave requests reference the pk; the name stays a lookup key for
#   legacy imports (see Staff.objects.by_name and check_staff_names).
#   Working window, optional daily break and weekly closures live here.
# - Appointment:
#   • Records client, service, staff, start_time (aware, business timezone)
#   • status is lowercase "confirmed" | "pending" | "cancelled"
#   • duration is never stored; it is read from the service at evaluation time
#
# Notes for developers:
# - Absence entries and leave requests live in the staff app and point back to
#   booking.Staff (one Staff model for the whole project).
# - The flat "unavailable dates" view is NOT stored. manual_unavailable_dates
#   only keeps legacy per-day toggles; the full projection is computed by
#   staff.services.absence_ledger.AbsenceLedger.unavailable_dates().
#

import re

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def default_weekly_closures():
    # Sunday closed
    return [0]


# -------------------------
# Client (person who books)
# -------------------------
class ClientProfile(models.Model):
    """
    A guest who books an appointment.
    - We prevent duplicates by using a case-insensitive match on name and email,
      and exact match on phone in model.clean().
    """
    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=20)
    notes = models.TextField(blank=True)

    def __str__(self):
        return self.name

    def clean(self):
        """
        Soft duplicate prevention (app-level):
        - Disallow another profile with same (name/email case-insensitive) + phone exact.
        - Allows saving when updating the same record (excludes self.pk).
        """
        name = (self.name or "").strip()
        email = (self.email or "").strip()
        phone = (self.phone or "").strip()

        if not name or not email or not phone:
            return

        qs = ClientProfile.objects.filter(
            name__iexact=name,
            email__iexact=email,
            phone=phone,
        )
        if self.pk:
            qs = qs.exclude(pk=self.pk)

        if qs.exists():
            raise ValidationError(
                "A client with the same name, email, and phone already exists."
            )


# -------------------------
# Service catalog item
# -------------------------
class Service(models.Model):
    """
    A service offered by the salon.

    Rules:
    - price must be > 0
    - duration_minutes must be > 0
    - active controls visibility and bookability
    """
    CATEGORY_CHOICES = [
        ("hair", "Hair"),
        ("face", "Face"),
        ("body", "Body"),
        ("nails", "Nails"),
    ]

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="hair")
    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(1)]
    )
    price = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(0.01)],
    )
    active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.price})"


# -------------------------
# Staff member / Artist
# -------------------------
class StaffQuerySet(models.QuerySet):
    def by_name(self, name):
        """Resolve a legacy name reference. Returns None when nothing matches."""
        name = (name or "").strip()
        if not name:
            return None
        return self.filter(name__iexact=name).first()


class Staff(models.Model):
    """
    A stylist or esthetician who can be assigned to appointments.

    Schedule fields:
    - work_start / work_end: "HH:MM"; blank means the salon default window
    - break_start / break_end: optional single daily break, both or neither
    - weekly_closures: weekday integers 0..6 with 0 = Sunday

    HR fields:
    - total_vacation_days_per_year, hours_per_day_contract
    - overtime_balance_hours: signed running total maintained by the absence
      ledger (overtime entries add, overtime_recovery entries subtract)
    """
    name = models.CharField(max_length=200, unique=True)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=100, blank=True)
    bio = models.TextField(blank=True)

    work_start = models.CharField(max_length=5, blank=True)
    work_end = models.CharField(max_length=5, blank=True)
    break_start = models.CharField(max_length=5, blank=True)
    break_end = models.CharField(max_length=5, blank=True)
    weekly_closures = models.JSONField(default=default_weekly_closures, blank=True)
    manual_unavailable_dates = models.JSONField(default=list, blank=True)

    total_vacation_days_per_year = models.DecimalField(
        max_digits=5, decimal_places=1, default=25
    )
    hours_per_day_contract = models.DecimalField(
        max_digits=4, decimal_places=2, default=8.5,
        validators=[MinValueValidator(0.5)],
    )
    overtime_balance_hours = models.DecimalField(
        max_digits=7, decimal_places=2, default=0
    )

    objects = StaffQuerySet.as_manager()

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "staff"

    def __str__(self):
        return self.name

    def clean(self):
        errors = {}
        for field in ("work_start", "work_end", "break_start", "break_end"):
            value = getattr(self, field) or ""
            if value and not HHMM_RE.match(value):
                errors[field] = "Use HH:MM (24h)."

        if self.work_start and self.work_end and not errors:
            if self.work_start >= self.work_end:
                errors["work_end"] = "Working hours must end after they start."

        if bool(self.break_start) != bool(self.break_end):
            errors["break_end"] = "Set both break start and break end, or neither."
        elif self.break_start and self.break_end and self.break_start >= self.break_end:
            errors["break_end"] = "Break must end after it starts."

        closures = self.weekly_closures or []
        if not isinstance(closures, list) or any(
            not isinstance(d, int) or isinstance(d, bool) or d < 0 or d > 6 for d in closures
        ):
            errors["weekly_closures"] = "Weekly closures must be weekday numbers 0-6 (0 = Sunday)."

        dates = self.manual_unavailable_dates or []
        if not isinstance(dates, list) or any(
            not isinstance(d, str) or not DATE_KEY_RE.match(d) for d in dates
        ):
            errors["manual_unavailable_dates"] = "Dates must be YYYY-MM-DD strings."

        if errors:
            raise ValidationError(errors)


# -------------------------
# Appointment record
# -------------------------
class Appointment(models.Model):
    """
    A guest appointment with one staff member.

    - status keeps history (confirmed/pending/cancelled); cancelled rows never
      block a slot
    - service may be unresolved (deleted from the catalog); such appointments
      still block a 30-minute block
    """
    STATUS_CONFIRMED = "confirmed"
    STATUS_PENDING = "pending"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_PENDING, "Pending"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    client = models.ForeignKey(
        ClientProfile, on_delete=models.CASCADE, related_name="appointments"
    )
    service = models.ForeignKey(
        Service, on_delete=models.SET_NULL, null=True, blank=True, related_name="appointments"
    )
    staff = models.ForeignKey(
        Staff, on_delete=models.CASCADE, related_name="appointments"
    )
    start_time = models.DateTimeField()
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_CONFIRMED,
        help_text="Appointment lifecycle status",
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancellation_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the appointment was cancelled (if applicable).",
    )

    class Meta:
        ordering = ["start_time"]
        indexes = [models.Index(fields=["staff", "start_time"])]

    def __str__(self):
        service = self.service.name if self.service else "Service"
        return f"{self.client.name} → {service} with {self.staff.name} on {self.start_time}"

    @property
    def is_active(self):
        return self.status != self.STATUS_CANCELLED
