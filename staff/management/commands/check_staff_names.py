"""
check_staff_names.py
--------------------
Reports staff names that only differ by case or surrounding whitespace.
Name lookups (Staff.objects.by_name) are case-insensitive, so such pairs
must be renamed before legacy name-keyed data is imported.

Usage:
    python manage.py check_staff_names
Exits with status 1 when duplicates are found.
"""

from collections import defaultdict

from django.core.management.base import BaseCommand, CommandError
from booking.models import Staff


class Command(BaseCommand):
    help = "Find staff names that collide case-insensitively."

    def handle(self, *args, **options):
        groups = defaultdict(list)
        for member in Staff.objects.all().order_by("id"):
            groups[member.name.strip().lower()].append(member)

        clashes = {key: members for key, members in groups.items() if len(members) > 1}
        if not clashes:
            self.stdout.write(self.style.SUCCESS("No duplicate staff names."))
            return

        for members in clashes.values():
            listing = ", ".join(f"#{m.pk} {m.name!r}" for m in members)
            self.stdout.write(self.style.WARNING(f"Duplicate name: {listing}"))
        raise CommandError(f"{len(clashes)} duplicate staff name group(s) found.")
