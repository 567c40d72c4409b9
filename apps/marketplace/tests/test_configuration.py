"""
Tests for the MARKETPLACE settings switches.
"""

from django.conf import settings
from django.test import TestCase, override_settings

from apps.marketplace.engine import RequestLifecycleEngine
from apps.marketplace.exceptions import Forbidden, InvalidState
from apps.marketplace.models import ShiftRequest
from apps.marketplace.tests.factories import make_role, make_shift, make_user
from apps.scheduling.models import Shift

Kind = ShiftRequest.Kind
Status = ShiftRequest.Status


def marketplace_settings(**overrides):
    return override_settings(MARKETPLACE={**settings.MARKETPLACE, **overrides})


class ConfigTestCase(TestCase):

    def setUp(self):
        self.engine = RequestLifecycleEngine()
        self.role = make_role()
        self.alice = make_user("Alice", role=self.role)
        self.bob = make_user("Bob", role=self.role)
        self.carol = make_user("Carol", role=self.role)
        self.mine = make_shift(self.role, assignee=self.alice)
        self.theirs = make_shift(self.role, assignee=self.bob, days_ahead=8)

    def _open_swap(self):
        return self.engine.create(Kind.SWAP, self.alice, self.mine, target_shift=self.theirs)


class TestOpenSwapAcceptance(ConfigTestCase):

    @marketplace_settings(OPEN_SWAP_ACCEPTANCE="any_owner")
    def test_any_owner_follows_current_owner(self):
        swap = self._open_swap()
        self.assertIsNone(swap.target_staff)

        Shift.objects.filter(pk=self.theirs.pk).update(assignee=self.carol)

        with self.assertRaises(Forbidden):
            self.engine.respond_to_swap(swap.pk, self.bob, accept=True)
        request = self.engine.respond_to_swap(swap.pk, self.carol, accept=True)
        self.assertEqual(request.status, Status.PENDING_APPROVAL)
        self.assertEqual(request.candidate, self.carol)

    @marketplace_settings(OPEN_SWAP_ACCEPTANCE="implicit_target")
    def test_implicit_target_pins_owner_at_creation(self):
        swap = self._open_swap()
        self.assertEqual(swap.target_staff, self.bob)

        Shift.objects.filter(pk=self.theirs.pk).update(assignee=self.carol)

        with self.assertRaises(Forbidden):
            self.engine.respond_to_swap(swap.pk, self.carol, accept=True)
        request = self.engine.respond_to_swap(swap.pk, self.bob, accept=False)
        self.assertEqual(request.status, Status.PEER_REJECTED)


class TestConcurrentOffers(ConfigTestCase):

    def test_allowed_by_default(self):
        self.engine.create(Kind.GIVEAWAY, self.alice, self.mine)
        swap = self._open_swap()
        self.assertEqual(swap.status, Status.PROPOSED)

    @marketplace_settings(ALLOW_CONCURRENT_OFFERS=False)
    def test_second_offer_rejected(self):
        self.engine.create(Kind.GIVEAWAY, self.alice, self.mine)
        with self.assertRaises(InvalidState):
            self._open_swap()

    @marketplace_settings(ALLOW_CONCURRENT_OFFERS=False)
    def test_target_shift_with_active_request_rejected(self):
        self.engine.create(Kind.GIVEAWAY, self.bob, self.theirs)
        with self.assertRaises(InvalidState):
            self._open_swap()

    @marketplace_settings(ALLOW_CONCURRENT_OFFERS=False)
    def test_closed_requests_do_not_block(self):
        giveaway = self.engine.create(Kind.GIVEAWAY, self.alice, self.mine)
        self.engine.cancel(giveaway.pk, self.alice)
        swap = self._open_swap()
        self.assertEqual(swap.status, Status.PROPOSED)


class TestActiveRequestLimit(ConfigTestCase):

    def test_no_limit_by_default(self):
        self.assertEqual(settings.MARKETPLACE["MAX_ACTIVE_REQUESTS"], 0)
        for offset in range(6):
            shift = make_shift(self.role, assignee=self.alice, days_ahead=30 + offset)
            self.engine.create(Kind.GIVEAWAY, self.alice, shift)
        self.assertEqual(ShiftRequest.objects.active().filter(requester=self.alice).count(), 6)

    @marketplace_settings(MAX_ACTIVE_REQUESTS=2)
    def test_limit_counts_active_requests_only(self):
        first = self.engine.create(Kind.GIVEAWAY, self.alice, self.mine)
        self._open_swap()
        extra = make_shift(self.role, assignee=self.alice, days_ahead=12)

        with self.assertRaises(InvalidState):
            self.engine.create(Kind.GIVEAWAY, self.alice, extra)

        self.engine.cancel(first.pk, self.alice)
        request = self.engine.create(Kind.GIVEAWAY, self.alice, extra)
        self.assertEqual(request.status, Status.OPEN)

    @marketplace_settings(MAX_ACTIVE_REQUESTS=0)
    def test_zero_disables_limit(self):
        for offset in range(7):
            shift = make_shift(self.role, assignee=self.alice, days_ahead=20 + offset)
            self.engine.create(Kind.GIVEAWAY, self.alice, shift)
        self.assertEqual(ShiftRequest.objects.active().filter(requester=self.alice).count(), 7)
