"""
Tests for the approval policy, acting-identity resolution and the facade.
"""

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from apps.accounts.models import Role
from apps.marketplace.exceptions import AmbiguousActor, Forbidden, NotFound
from apps.marketplace.identity import IdentityResolver
from apps.marketplace.models import ShiftRequest
from apps.marketplace.policy import ApprovalDecision, ApprovalPolicy
from apps.marketplace.services import MarketplaceFacade
from apps.marketplace.tests.factories import make_approver, make_role, make_shift, make_user

Kind = ShiftRequest.Kind
Status = ShiftRequest.Status


# ---------------------------------------------------------------------------
# ApprovalPolicy
# ---------------------------------------------------------------------------


class TestApprovalPolicy(TestCase):

    def setUp(self):
        self.policy = ApprovalPolicy()
        self.manual = make_role("Consultant", auto_approve=False)
        self.auto = make_role("Registrar", auto_approve=True)

    def test_decide(self):
        self.assertIs(self.policy.decide(self.auto), ApprovalDecision.AUTO_APPROVE)
        self.assertIs(self.policy.decide(self.manual), ApprovalDecision.REQUIRES_APPROVAL)
        self.assertIs(self.policy.decide(self.manual.pk), ApprovalDecision.REQUIRES_APPROVAL)

    def test_decide_reads_current_flag(self):
        stale = self.manual
        Role.objects.filter(pk=stale.pk).update(marketplace_auto_approve=True)
        self.assertIs(self.policy.decide(stale), ApprovalDecision.AUTO_APPROVE)

    def test_missing_role_requires_approval(self):
        self.assertIs(self.policy.decide(999999), ApprovalDecision.REQUIRES_APPROVAL)

    def test_decide_for_needs_every_role(self):
        auto_shift = make_shift(self.auto)
        manual_shift = make_shift(self.manual)
        self.assertIs(self.policy.decide_for([auto_shift]), ApprovalDecision.AUTO_APPROVE)
        self.assertIs(
            self.policy.decide_for([auto_shift, manual_shift]), ApprovalDecision.REQUIRES_APPROVAL
        )
        self.assertIs(self.policy.decide_for([]), ApprovalDecision.REQUIRES_APPROVAL)


# ---------------------------------------------------------------------------
# IdentityResolver
# ---------------------------------------------------------------------------


class TestIdentityResolver(TestCase):

    def setUp(self):
        self.resolver = IdentityResolver()
        self.alice = make_user("Alice")
        self.bob = make_user("Bob")
        self.ward = make_user("Ward", is_generic_login=True)

    def test_individual_acts_as_self(self):
        self.assertEqual(self.resolver.resolve_acting_identity(self.alice), self.alice)
        self.assertEqual(self.resolver.resolve_acting_identity(self.alice, self.alice.pk), self.alice)

    def test_individual_cannot_act_for_colleague(self):
        with self.assertRaises(Forbidden):
            self.resolver.resolve_acting_identity(self.alice, self.bob.pk)

    def test_anonymous_and_inactive_forbidden(self):
        with self.assertRaises(Forbidden):
            self.resolver.resolve_acting_identity(AnonymousUser())
        with self.assertRaises(Forbidden):
            self.resolver.resolve_acting_identity(None)
        self.alice.is_active = False
        with self.assertRaises(Forbidden):
            self.resolver.resolve_acting_identity(self.alice)

    def test_generic_login_must_confirm(self):
        with self.assertRaises(AmbiguousActor):
            self.resolver.resolve_acting_identity(self.ward)
        with self.assertRaises(AmbiguousActor):
            self.resolver.resolve_acting_identity(self.ward, self.ward.pk)

    def test_generic_login_may_skip_confirmation_when_allowed(self):
        actor = self.resolver.resolve_acting_identity(self.ward, require_individual=False)
        self.assertEqual(actor, self.ward)

    def test_generic_login_acts_as_confirmed_staff(self):
        self.assertEqual(self.resolver.resolve_acting_identity(self.ward, self.alice.pk), self.alice)
        self.assertEqual(self.resolver.resolve_acting_identity(self.ward, self.alice), self.alice)

    def test_confirmed_staff_must_exist_and_be_eligible(self):
        with self.assertRaises(NotFound):
            self.resolver.resolve_acting_identity(self.ward, 999999)
        with self.assertRaises(NotFound):
            self.resolver.resolve_acting_identity(self.ward, "abc")

        other_ward = make_user("Ward B", is_generic_login=True)
        with self.assertRaises(Forbidden):
            self.resolver.resolve_acting_identity(self.ward, other_ward.pk)

        self.bob.is_active = False
        self.bob.save()
        with self.assertRaises(Forbidden):
            self.resolver.resolve_acting_identity(self.ward, self.bob.pk)


# ---------------------------------------------------------------------------
# MarketplaceFacade
# ---------------------------------------------------------------------------


class TestMarketplaceFacade(TestCase):

    def setUp(self):
        self.facade = MarketplaceFacade()
        self.role = make_role()
        self.alice = make_user("Alice", role=self.role)
        self.bob = make_user("Bob", role=self.role)
        self.admin = make_approver(self.role)
        self.ward = make_user("Ward", is_generic_login=True)
        self.shift = make_shift(self.role, assignee=self.alice)

    def test_shared_login_acts_for_confirmed_staff(self):
        request = self.facade.create(self.ward, Kind.GIVEAWAY, self.shift.pk, confirmed_staff=self.alice.pk)
        self.assertEqual(request.requester, self.alice)

        request = self.facade.claim(self.ward, request.pk, confirmed_staff=self.bob.pk)
        self.assertEqual(request.candidate, self.bob)

    def test_shared_login_without_confirmation_is_ambiguous(self):
        with self.assertRaises(AmbiguousActor):
            self.facade.create(self.ward, Kind.GIVEAWAY, self.shift.pk)
        self.assertFalse(ShiftRequest.objects.exists())

    def test_unknown_target_staff_is_not_found(self):
        theirs = make_shift(self.role, assignee=self.bob, days_ahead=9)
        with self.assertRaises(NotFound):
            self.facade.create(
                self.alice, Kind.SWAP, self.shift.pk, target_shift_id=theirs.pk, target_staff_id=999999
            )

    def test_swap_through_facade(self):
        theirs = make_shift(self.role, assignee=self.bob, days_ahead=9)
        swap = self.facade.create(
            self.alice, Kind.SWAP, str(self.shift.pk), target_shift_id=str(theirs.pk), target_staff_id=self.bob.pk
        )
        request = self.facade.respond_to_swap(self.bob, swap.pk, accept=True)
        self.assertEqual(request.status, Status.PENDING_APPROVAL)

        request = self.facade.resolve(self.admin, swap.pk, approve=True, note="OK")
        self.assertEqual(request.status, Status.APPROVED)
        self.assertEqual(request.admin_note, "OK")

    def test_cancel_through_facade(self):
        request = self.facade.create(self.alice, Kind.GIVEAWAY, self.shift.pk)
        request = self.facade.cancel(self.alice, request.pk)
        self.assertEqual(request.status, Status.CANCELLED)
