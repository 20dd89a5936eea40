"""
seed_services.py
----------------
Seeds (creates or updates) the salon service catalog. You can run this any
time; it will upsert by name.

Usage:
    python manage.py seed_services
"""

from decimal import Decimal
from django.core.management.base import BaseCommand
from booking.models import Service


CATALOG = [
    # Hair - women
    {"name": "Taglio Donna & Piega",       "category": "hair",  "duration_minutes": 60,  "price": Decimal("75.00"),
     "description": "Taglio stilistico personalizzato con shampoo specifico e piega finale."},
    {"name": "Piega Luxury",               "category": "hair",  "duration_minutes": 45,  "price": Decimal("45.00"),
     "description": "Shampoo curativo, massaggio cutaneo e piega glamour."},
    {"name": "Colore Radici",              "category": "hair",  "duration_minutes": 90,  "price": Decimal("85.00"),
     "description": "Ritocco colore radici con prodotti professionali ipoallergenici."},
    {"name": "Balayage d'Autore",          "category": "hair",  "duration_minutes": 180, "price": Decimal("195.00"),
     "description": "Schiariture naturali ad effetto sun-kissed con tonalizzazione inclusa."},
    {"name": "Trattamento Cheratina",      "category": "hair",  "duration_minutes": 150, "price": Decimal("250.00"),
     "description": "Trattamento lisciante e ristrutturante profondo alla cheratina."},

    # Hair - men
    {"name": "Taglio Uomo Classic",        "category": "hair",  "duration_minutes": 30,  "price": Decimal("45.00"),
     "description": "Taglio a forbice o macchinetta con rifinitura barba inclusa."},

    # Face
    {"name": "Pulizia Viso Profonda",      "category": "face",  "duration_minutes": 60,  "price": Decimal("110.00"),
     "description": "Trattamento rigenerante con vaporizzazione e maschera specifica."},
    {"name": "Trattamento Anti-Age Gold",  "category": "face",  "duration_minutes": 75,  "price": Decimal("160.00"),
     "description": "Massaggio liftante con siero all'acido ialuronico e oro 24k."},

    # Body
    {"name": "Massaggio Rilassante",       "category": "body",  "duration_minutes": 60,  "price": Decimal("120.00"),
     "description": "Massaggio total body con oli essenziali riscaldati."},
    {"name": "Drenaggio Linfatico",        "category": "body",  "duration_minutes": 60,  "price": Decimal("130.00"),
     "description": "Trattamento manuale per favorire la circolazione e ridurre il gonfiore."},

    # Nails
    {"name": "Manicure Semipermanente",    "category": "nails", "duration_minutes": 45,  "price": Decimal("65.00"),
     "description": "Manicure completa con applicazione di smalto a lunga durata."},
    {"name": "Pedicure Medicale",          "category": "nails", "duration_minutes": 60,  "price": Decimal("85.00"),
     "description": "Trattamento podologico curativo ed estetico dei piedi."},
]

FIELDS = ("description", "category", "duration_minutes", "price")


class Command(BaseCommand):
    help = "Seed or update the salon service catalog."

    def handle(self, *args, **options):
        created = 0
        updated = 0

        for item in CATALOG:
            svc, is_created = Service.objects.get_or_create(
                name=item["name"],
                defaults={**{f: item[f] for f in FIELDS}, "active": True},
            )
            if is_created:
                created += 1
                continue

            changed = False
            for f in FIELDS:
                if getattr(svc, f) != item[f]:
                    setattr(svc, f, item[f])
                    changed = True
            if not svc.active:
                svc.active = True
                changed = True
            if changed:
                svc.save()
                updated += 1

        self.stdout.write(self.style.SUCCESS(f"Seed complete. Created={created}, Updated={updated}"))
