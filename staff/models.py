# staff/models.py
#
# Purpose:
# - HR records attached to booking.Staff: absence entries and leave requests.
#
# Design:
# - AbsenceEntry is owned by its staff member (CASCADE). Never create or delete
#   rows directly in application code: go through
#   staff.services.absence_ledger.AbsenceLedger so the overtime balance on
#   Staff stays equal to the sum of overtime minus overtime_recovery hours.
# - LeaveRequest is an independent record submitted by a staff member and
#   decided by an admin (staff.services.request_workflow.RequestWorkflow).
#   A request to undo an approved absence is a LeaveRequest of type
#   "availability_change" whose target_absence points at that absence.
#
from django.db import models

ABSENCE_VACATION = "vacation"
ABSENCE_SICK = "sick"
ABSENCE_INJURY = "injury"
ABSENCE_TRAINING = "training"
ABSENCE_UNPAID = "unpaid"
ABSENCE_OVERTIME = "overtime"
ABSENCE_OVERTIME_RECOVERY = "overtime_recovery"
ABSENCE_OTHER = "other"

ABSENCE_TYPE_CHOICES = [
    (ABSENCE_VACATION, "Vacation"),
    (ABSENCE_SICK, "Sick leave"),
    (ABSENCE_INJURY, "Injury"),
    (ABSENCE_TRAINING, "Training"),
    (ABSENCE_UNPAID, "Unpaid day off"),
    (ABSENCE_OVERTIME, "Overtime worked"),
    (ABSENCE_OVERTIME_RECOVERY, "Overtime recovery"),
    (ABSENCE_OTHER, "Other"),
]
ABSENCE_TYPES = {value for value, _label in ABSENCE_TYPE_CHOICES}

REQUEST_AVAILABILITY_CHANGE = "availability_change"
REQUEST_TYPE_CHOICES = ABSENCE_TYPE_CHOICES + [
    (REQUEST_AVAILABILITY_CHANGE, "Availability change / revocation"),
]


class AbsenceEntry(models.Model):
    """
    A dated absence (or overtime credit) for one staff member.
    Dates are inclusive and date-only. hours_count is what the entry consumes
    (vacation, sick, ...) or credits (overtime) in hours.
    """
    staff = models.ForeignKey(
        "booking.Staff",
        on_delete=models.CASCADE,
        related_name="absences",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    type = models.CharField(max_length=20, choices=ABSENCE_TYPE_CHOICES)
    is_full_day = models.BooleanField(default=True)
    start_time = models.CharField(max_length=5, blank=True)
    end_time = models.CharField(max_length=5, blank=True)
    hours_count = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["staff_id", "start_date", "id"]
        verbose_name_plural = "absence entries"

    def __str__(self):
        return f"{self.staff.name}: {self.type} {self.start_date} - {self.end_date}"

    def covers(self, day) -> bool:
        return self.start_date <= day <= self.end_date


class LeaveRequest(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    staff = models.ForeignKey(
        "booking.Staff",
        on_delete=models.CASCADE,
        related_name="leave_requests",
    )
    type = models.CharField(max_length=20, choices=REQUEST_TYPE_CHOICES)
    start_date = models.DateField()
    end_date = models.DateField()
    is_full_day = models.BooleanField(default=True)
    start_time = models.CharField(max_length=5, blank=True)
    end_time = models.CharField(max_length=5, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True)
    target_absence = models.ForeignKey(
        AbsenceEntry,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="revocation_requests",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    decided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.staff.name}: {self.type} {self.start_date} - {self.end_date} ({self.status})"

    @property
    def is_revocation(self):
        return self.type == REQUEST_AVAILABILITY_CHANGE
