# booking/exceptions.py
#
# Domain errors shared by the booking and staff apps.
#
# - InvariantViolation: a data-integrity problem in the caller's input
#   (absence ending before it starts, unknown entry id, invalid request
#   transition). Subclasses Django's ValidationError so admin forms and DRF
#   views report it like any other validation failure.
# - SlotConflictError: the chosen slot is no longer free when the write
#   happens. Subclasses ValueError because BookingManager has always
#   signalled overlaps that way.

from django.core.exceptions import ValidationError


class InvariantViolation(ValidationError):
    pass


class InvalidTransition(InvariantViolation):
    pass


class SlotConflictError(ValueError):
    def __init__(self, message="Selected time overlaps with an existing appointment for this staff member.",
                 staff=None, start_time=None):
        super().__init__(message)
        self.staff = staff
        self.start_time = start_time
