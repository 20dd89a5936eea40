"""
seed_team.py
------------
Creates the salon team with default schedules. Existing members (matched by
name, case-insensitive) are left untouched unless --reset-hours is given.

Usage:
    python manage.py seed_team [--reset-hours]
"""

from django.core.management.base import BaseCommand
from booking.models import Staff


TEAM = [
    {"name": "Melk", "role": "Creative Director & Hair Stylist",
     "bio": "Specialista in colorazioni d'avanguardia e tagli tecnici."},
    {"name": "Romina", "role": "Master Esthetician",
     "bio": "Esperta in dermocosmesi e trattamenti benessere avanzati."},
    {"name": "Maurizio", "role": "Senior Stylist",
     "bio": "Specialista nel taglio maschile e nelle acconciature da gran gala."},
]

DEFAULT_HOURS = {
    "work_start": "08:30",
    "work_end": "19:00",
    "break_start": "13:00",
    "break_end": "14:00",
    "weekly_closures": [0, 1],
}


class Command(BaseCommand):
    help = "Seed the salon team with default working hours."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset-hours",
            action="store_true",
            help="Overwrite the schedule of existing members with the defaults.",
        )

    def handle(self, *args, **options):
        created = 0
        reset = 0

        for item in TEAM:
            member = Staff.objects.by_name(item["name"])
            if member is None:
                Staff.objects.create(**item, **DEFAULT_HOURS)
                created += 1
            elif options["reset_hours"]:
                for field, value in DEFAULT_HOURS.items():
                    setattr(member, field, value)
                member.save(update_fields=list(DEFAULT_HOURS))
                reset += 1

        self.stdout.write(self.style.SUCCESS(f"Team seeded. Created={created}, Reset={reset}"))
