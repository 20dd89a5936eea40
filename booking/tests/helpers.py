from datetime import timedelta
from decimal import Decimal

from booking.models import Appointment, ClientProfile, Service, Staff
from booking.services.time_grid import local_datetime, local_now, minutes_of_day


def future_monday(weeks_ahead=2):
    """A Monday at least a week from today (local calendar)."""
    base = local_now().date() + timedelta(weeks=weeks_ahead)
    return base - timedelta(days=base.weekday())


def at(day, hour, minute=0):
    return local_datetime(day, minutes_of_day(hour, minute))


def make_staff(name="Melk", **kwargs):
    fields = {
        "work_start": "08:30",
        "work_end": "19:00",
        "weekly_closures": [],
    }
    fields.update(kwargs)
    return Staff.objects.create(name=name, **fields)


def make_service(name="Taglio Donna & Piega", duration=60, price="75.00", **kwargs):
    return Service.objects.create(
        name=name, duration_minutes=duration, price=Decimal(price), **kwargs
    )


def make_client(name="Giulia Rossi", email="giulia@example.com", phone="0791234567"):
    return ClientProfile.objects.create(name=name, email=email, phone=phone)


def book(client, service, staff, start_time, status=Appointment.STATUS_CONFIRMED):
    return Appointment.objects.create(
        client=client, service=service, staff=staff, start_time=start_time, status=status
    )
