from decimal import Decimal

from django.contrib.auth.models import User
from django.test import TestCase
from rest_framework.test import APIClient

from booking.models import Appointment, ClientProfile, Service, Staff
from booking.services.time_grid import local_datetime, minutes_of_day


class RevenueReportTests(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.api.force_authenticate(User.objects.create_user("admin", password="pw", is_staff=True))

        self.melk = Staff.objects.create(name="Melk")
        self.romina = Staff.objects.create(name="Romina")
        client = ClientProfile.objects.create(name="Giulia", email="g@example.com", phone="0791234567")
        cut = Service.objects.create(name="Taglio", duration_minutes=60, price=Decimal("75.00"))
        facial = Service.objects.create(name="Viso", duration_minutes=60, price=Decimal("110.00"))

        def book(staff, service, day, hour, status=Appointment.STATUS_CONFIRMED):
            Appointment.objects.create(
                client=client, service=service, staff=staff, status=status,
                start_time=local_datetime(day, minutes_of_day(hour)),
            )

        book(self.melk, cut, "2030-06-03", 9)
        book(self.melk, cut, "2030-06-03", 23)            # late evening stays on the local day
        book(self.melk, facial, "2030-06-20", 10)
        book(self.melk, facial, "2030-02-10", 10)
        book(self.romina, facial, "2030-06-03", 10)
        book(self.romina, cut, "2030-06-03", 12, status=Appointment.STATUS_CANCELLED)

    def test_staff_only(self):
        self.assertEqual(APIClient().get("/api/reports/summary").status_code, 403)

    def test_revenue_per_staff(self):
        res = self.api.get("/api/reports/summary", {"date": "2030-06-03"})
        self.assertEqual(res.status_code, 200)
        data = res.json()

        revenue = {row["name"]: row for row in data["revenue"]}
        self.assertEqual(revenue["Melk"]["daily"], 150.0)
        self.assertEqual(revenue["Melk"]["monthly"], 260.0)
        self.assertEqual(revenue["Melk"]["yearly"], 370.0)
        self.assertEqual(revenue["Romina"]["daily"], 110.0)
        self.assertEqual(data["totals"]["daily"], 260.0)

    def test_appointments_per_day(self):
        data = self.api.get("/api/reports/summary", {"date": "2030-06-03"}).json()
        self.assertEqual(
            data["appointments_per_day"],
            [{"day": "2030-06-03", "count": 3}, {"day": "2030-06-20", "count": 1}],
        )

    def test_bad_date(self):
        self.assertEqual(self.api.get("/api/reports/summary", {"date": "junk"}).status_code, 400)
