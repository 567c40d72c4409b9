import csv
import io

from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import User
from apps.marketplace.models import ShiftRequest
from apps.marketplace.services import marketplace
from apps.marketplace.tests.factories import make_approver, make_role, make_shift, make_user


class TestShiftHistoryView(TestCase):

    def setUp(self):
        self.role = make_role(auto_approve=True)
        self.alice = make_user("Alice", role=self.role, short_name="AC")
        self.bob = make_user("Bob", role=self.role, short_name="BM")
        self.admin = make_approver(self.role)
        self.shift = make_shift(self.role, assignee=self.alice)

        request = marketplace.create(self.alice, ShiftRequest.Kind.GIVEAWAY, self.shift.pk)
        marketplace.claim(self.bob, request.pk)
        self.request = request

    def test_requires_rota_editor(self):
        self.client.force_login(self.bob)
        self.assertEqual(self.client.get(reverse("audit:history")).status_code, 403)

    def test_history_entries(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse("audit:history"), {"role_id": self.role.pk, "year": 2030, "month": 1})
        self.assertEqual(response.status_code, 200)

        entries = response.json()["entries"]
        self.assertEqual(len(entries), 1)
        entry = entries[0]
        self.assertEqual(entry["shift_id"], str(self.shift.pk))
        self.assertEqual(entry["changed_by"], "BM")
        self.assertEqual(entry["old_staff"], "AC")
        self.assertEqual(entry["new_staff"], "BM")
        self.assertEqual(entry["note"], f"Request {self.request.pk}")

    def test_month_filter(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse("audit:history"), {"year": 2030, "month": 2})
        self.assertEqual(response.json()["entries"], [])

    def test_bad_filter(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse("audit:history"), {"month": "jan"})
        self.assertEqual(response.status_code, 400)

    def test_csv_export(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse("audit:history"), {"export": "csv"})
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn("shift_history.csv", response["Content-Disposition"])

        rows = list(csv.reader(io.StringIO(response.content.decode())))
        self.assertEqual(rows[0][0], "Timestamp")
        self.assertEqual(rows[1][4:6], ["AC", "BM"])

    def test_history_limited_to_approver_roles(self):
        other_role = make_role("Registrar", auto_approve=True)
        other_admin = make_approver(other_role)
        dan = make_user("Dan", role=other_role)
        erin = make_user("Erin", role=other_role)
        other_shift = make_shift(other_role, assignee=dan)
        request = marketplace.create(dan, ShiftRequest.Kind.GIVEAWAY, other_shift.pk)
        marketplace.claim(erin, request.pk)

        self.client.force_login(self.admin)
        entries = self.client.get(reverse("audit:history")).json()["entries"]
        self.assertEqual([entry["shift_id"] for entry in entries], [str(self.shift.pk)])

        self.client.force_login(other_admin)
        entries = self.client.get(reverse("audit:history")).json()["entries"]
        self.assertEqual([entry["shift_id"] for entry in entries], [str(other_shift.pk)])

        response = self.client.get(reverse("audit:history"), {"role_id": self.role.pk})
        self.assertEqual(response.status_code, 403)

        root = User.objects.create_superuser(email="root@example.com", password="pass123")
        self.client.force_login(root)
        entries = self.client.get(reverse("audit:history")).json()["entries"]
        self.assertEqual(len(entries), 2)
