from decimal import Decimal

from django.contrib import messages
from django.contrib.auth.models import User
from django.contrib.messages import get_messages
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from booking.models import Staff
from staff.models import AbsenceEntry, LeaveRequest


class HrApiTests(TestCase):

    def setUp(self):
        self.api = APIClient()
        self.admin = User.objects.create_user("admin", password="pw", is_staff=True)
        self.api.force_authenticate(self.admin)
        self.staff = Staff.objects.create(name="Romina", hours_per_day_contract=Decimal("8.00"))

    def test_anonymous_is_refused(self):
        self.assertEqual(APIClient().get("/api/hr/absences/").status_code, 403)

    def test_create_list_and_delete_absence(self):
        res = self.api.post("/api/hr/absences/", {
            "staff": self.staff.id, "type": "overtime",
            "start_date": "2030-06-03", "end_date": "2030-06-03", "hours_count": "4",
        }, format="json")
        self.assertEqual(res.status_code, 201)
        self.staff.refresh_from_db()
        self.assertEqual(self.staff.overtime_balance_hours, Decimal("4"))

        listing = self.api.get("/api/hr/absences/", {"staff": self.staff.id}).json()
        self.assertEqual(len(listing), 1)
        self.assertEqual(listing[0]["staff_name"], "Romina")

        res = self.api.delete(f"/api/hr/absences/{res.json()['id']}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["overtime_balance_hours"], 0.0)
        self.assertFalse(AbsenceEntry.objects.exists())

    def test_invalid_absence_is_400(self):
        res = self.api.post("/api/hr/absences/", {
            "staff": self.staff.id, "type": "vacation",
            "start_date": "2030-06-05", "end_date": "2030-06-03",
        }, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("detail", res.json())

    def test_request_approval_flow(self):
        res = self.api.post("/api/hr/requests/", {
            "staff": self.staff.id, "type": "vacation",
            "start_date": "2030-07-01", "end_date": "2030-07-02",
        }, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()["status"], "pending")
        req_id = res.json()["id"]

        pending = self.api.get("/api/hr/requests/", {"status": "pending"}).json()
        self.assertEqual([r["id"] for r in pending], [req_id])

        res = self.api.post(f"/api/hr/requests/{req_id}/approve/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["status"], "approved")
        self.assertEqual(res.json()["absence"]["hours_count"], "16.00")

        # approved is terminal
        self.assertEqual(self.api.post(f"/api/hr/requests/{req_id}/reject/").status_code, 400)

    def test_inverted_partial_window_is_refused_at_submit(self):
        res = self.api.post("/api/hr/requests/", {
            "staff": self.staff.id, "type": "vacation",
            "start_date": "2030-07-01", "end_date": "2030-07-01",
            "is_full_day": False, "start_time": "17:00", "end_time": "09:00",
        }, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("detail", res.json())
        self.assertFalse(LeaveRequest.objects.exists())

    def test_reject_and_cancel(self):
        first = LeaveRequest.objects.create(
            staff=self.staff, type="training", start_date="2030-07-01", end_date="2030-07-01"
        )
        second = LeaveRequest.objects.create(
            staff=self.staff, type="sick", start_date="2030-07-02", end_date="2030-07-02"
        )
        self.assertEqual(self.api.post(f"/api/hr/requests/{first.id}/reject/").json()["status"], "rejected")
        self.assertEqual(self.api.post(f"/api/hr/requests/{second.id}/cancel/").status_code, 200)
        self.assertFalse(LeaveRequest.objects.filter(pk=second.pk).exists())

    def test_revoke_endpoint(self):
        created = self.api.post("/api/hr/absences/", {
            "staff": self.staff.id, "type": "vacation",
            "start_date": "2030-06-03", "end_date": "2030-06-03",
        }, format="json").json()

        res = self.api.post(f"/api/hr/absences/{created['id']}/revoke/", {"notes": "plans changed"}, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()["type"], "availability_change")
        self.assertEqual(res.json()["target_absence"], created["id"])
        self.assertEqual(self.api.post(f"/api/hr/absences/{created['id']}/revoke/").status_code, 400)

        res = self.api.post(f"/api/hr/requests/{res.json()['id']}/approve/")
        self.assertEqual(res.status_code, 200)
        self.assertIsNone(res.json()["absence"])
        self.assertIsNone(res.json()["target_absence"])
        self.assertFalse(AbsenceEntry.objects.exists())


class LeaveRequestAdminTests(TestCase):

    def setUp(self):
        self.boss = User.objects.create_superuser("boss", "boss@example.com", "pw")
        self.client.force_login(self.boss)
        self.staff = Staff.objects.create(name="Melk")
        self.url = reverse("admin:staff_leaverequest_changelist")

    def test_bulk_approve_reports_requests_it_cannot_approve(self):
        good = LeaveRequest.objects.create(
            staff=self.staff, type="vacation", start_date="2030-07-01", end_date="2030-07-01"
        )
        # Legacy row stored before windows were checked at submit time
        broken = LeaveRequest.objects.create(
            staff=self.staff, type="vacation", start_date="2030-07-02", end_date="2030-07-02",
            is_full_day=False,
        )

        res = self.client.post(
            self.url,
            {"action": "approve_selected", "_selected_action": [good.pk, broken.pk]},
            follow=True,
        )
        self.assertEqual(res.status_code, 200)

        good.refresh_from_db()
        broken.refresh_from_db()
        self.assertEqual(good.status, LeaveRequest.STATUS_APPROVED)
        self.assertEqual(broken.status, LeaveRequest.STATUS_PENDING)

        errors = [m for m in get_messages(res.wsgi_request) if m.level == messages.ERROR]
        self.assertEqual(len(errors), 1)
        self.assertIn(f"#{broken.pk}", str(errors[0]))
