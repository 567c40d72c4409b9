"""
Real concurrent claims against a database with row locks.

Skipped on SQLite (the default test database); run against PostgreSQL with
DJANGO_SETTINGS_MODULE=rotamarket.settings.local.
"""

import threading

from django.db import connection
from django.test import TransactionTestCase, skipUnlessDBFeature

from apps.marketplace.engine import RequestLifecycleEngine
from apps.marketplace.exceptions import Conflict, MarketplaceError
from apps.marketplace.models import ShiftRequest
from apps.marketplace.tests.factories import make_role, make_shift, make_user

Kind = ShiftRequest.Kind
Status = ShiftRequest.Status


@skipUnlessDBFeature("has_select_for_update")
class TestConcurrentClaims(TransactionTestCase):

    def setUp(self):
        self.engine = RequestLifecycleEngine()
        self.role = make_role(auto_approve=True)
        self.alice = make_user("Alice", role=self.role)
        self.claimers = [make_user(f"Claimer {n}", role=self.role) for n in range(2)]
        self.shift = make_shift(self.role, assignee=self.alice)
        self.request = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)

    def _run_race(self, operations):
        barrier = threading.Barrier(len(operations))
        outcomes = [None] * len(operations)

        def worker(index, operation):
            try:
                barrier.wait()
                outcomes[index] = operation()
            except MarketplaceError as exc:
                outcomes[index] = exc
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(i, op)) for i, op in enumerate(operations)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return outcomes

    def test_exactly_one_claim_wins(self):
        outcomes = self._run_race([
            lambda user=user: self.engine.claim(self.request.pk, user) for user in self.claimers
        ])

        winners = [o for o in outcomes if isinstance(o, ShiftRequest)]
        losers = [o for o in outcomes if isinstance(o, Conflict)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)

        self.shift.refresh_from_db()
        self.request.refresh_from_db()
        self.assertEqual(self.request.status, Status.APPROVED)
        self.assertEqual(self.shift.assignee_id, winners[0].candidate_id)

    def test_claim_races_cancel(self):
        outcomes = self._run_race([
            lambda: self.engine.claim(self.request.pk, self.claimers[0]),
            lambda: self.engine.cancel(self.request.pk, self.alice),
        ])

        self.request.refresh_from_db()
        self.shift.refresh_from_db()
        self.assertIn(self.request.status, (Status.APPROVED, Status.CANCELLED))
        if self.request.status == Status.APPROVED:
            self.assertEqual(self.shift.assignee, self.claimers[0])
        else:
            self.assertEqual(self.shift.assignee, self.alice)
        self.assertTrue(all(o is not None for o in outcomes))
