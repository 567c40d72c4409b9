"""
Failure handling in the lifecycle engine.

Covers: database errors mid-resolution leave nothing behind (competing
requests included), lock contention maps to Conflict, terminal requests
never move again.
"""

from unittest import mock

from django.db import DatabaseError, OperationalError
from django.test import TestCase

from apps.audit.models import AuditLog
from apps.marketplace.engine import RequestLifecycleEngine, _is_contention_error
from apps.marketplace.exceptions import Conflict, InternalFailure, InvalidState
from apps.marketplace.models import ShiftRequest
from apps.marketplace.signals import request_transitioned
from apps.marketplace.tests.factories import make_approver, make_role, make_shift, make_user

Kind = ShiftRequest.Kind
Status = ShiftRequest.Status


class _FakeDriverError(Exception):
    def __init__(self, sqlstate):
        super().__init__("could not serialize access")
        self.sqlstate = sqlstate


class TestContentionDetection(TestCase):

    def _wrapped(self, cause):
        exc = OperationalError(str(cause))
        exc.__cause__ = cause
        return exc

    def test_serialization_failure(self):
        self.assertTrue(_is_contention_error(self._wrapped(_FakeDriverError("40001"))))

    def test_deadlock(self):
        self.assertTrue(_is_contention_error(self._wrapped(_FakeDriverError("40P01"))))

    def test_sqlite_busy(self):
        self.assertTrue(_is_contention_error(OperationalError("database is locked")))

    def test_other_errors(self):
        self.assertFalse(_is_contention_error(self._wrapped(_FakeDriverError("23505"))))
        self.assertFalse(_is_contention_error(DatabaseError("disk full")))


class TestResolutionRollsBack(TestCase):
    """An error after the shift moved must undo the move and the status change."""

    def setUp(self):
        self.engine = RequestLifecycleEngine()
        self.role = make_role("Registrar", auto_approve=True)
        self.alice = make_user("Alice", role=self.role)
        self.bob = make_user("Bob", role=self.role)
        self.shift = make_shift(self.role, assignee=self.alice)
        self.request = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)

    def _assert_untouched(self):
        self.request.refresh_from_db()
        self.shift.refresh_from_db()
        self.assertEqual(self.request.status, Status.OPEN)
        self.assertIsNone(self.request.candidate)
        self.assertEqual(self.shift.assignee, self.alice)
        self.assertFalse(AuditLog.objects.filter(action="shift.reassigned").exists())

    def test_database_error_is_internal_failure(self):
        with mock.patch.object(
            RequestLifecycleEngine, "_cancel_competing_requests", side_effect=DatabaseError("boom")
        ):
            with self.assertLogs("apps.marketplace.engine", level="ERROR"):
                with self.assertRaises(InternalFailure) as ctx:
                    self.engine.claim(self.request.pk, self.bob)

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.request_id, self.request.pk)
        self._assert_untouched()

    def test_locked_database_is_conflict(self):
        with mock.patch.object(
            RequestLifecycleEngine, "_cancel_competing_requests",
            side_effect=OperationalError("database is locked"),
        ):
            with self.assertLogs("apps.marketplace.engine", level="WARNING"):
                with self.assertRaises(Conflict):
                    self.engine.claim(self.request.pk, self.bob)

        self._assert_untouched()

    def test_request_can_be_claimed_after_failure(self):
        with mock.patch.object(
            RequestLifecycleEngine, "_cancel_competing_requests", side_effect=DatabaseError("boom")
        ):
            with self.assertLogs("apps.marketplace.engine", level="ERROR"):
                with self.assertRaises(InternalFailure):
                    self.engine.claim(self.request.pk, self.bob)

        request = self.engine.claim(self.request.pk, self.bob)
        self.assertEqual(request.status, Status.APPROVED)


class TestCompetitorSweepRollsBack(TestCase):
    """A failure while superseding competitors undoes the whole resolution."""

    def setUp(self):
        self.engine = RequestLifecycleEngine()
        self.role = make_role("Registrar", auto_approve=True)
        self.alice = make_user("Alice", role=self.role)
        self.bob = make_user("Bob", role=self.role)
        self.carol = make_user("Carol", role=self.role)
        self.shift = make_shift(self.role, assignee=self.alice)
        self.carols_shift = make_shift(self.role, assignee=self.carol, days_ahead=9)

        self.swap = self.engine.create(
            Kind.SWAP, self.alice, self.shift, target_shift=self.carols_shift, target_staff=self.carol
        )
        self.giveaway = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)

        request_transitioned.connect(self._fail_on_supersede, weak=False)
        self.addCleanup(request_transitioned.disconnect, self._fail_on_supersede)

    def _fail_on_supersede(self, sender, request, superseded_by=None, **kwargs):
        if request.status == Status.CANCELLED and superseded_by is not None:
            raise DatabaseError("write failed")

    def test_nothing_is_committed(self):
        with self.assertLogs("apps.marketplace.engine", level="ERROR"):
            with self.assertRaises(InternalFailure):
                self.engine.claim(self.giveaway.pk, self.bob)

        self.shift.refresh_from_db()
        self.giveaway.refresh_from_db()
        self.swap.refresh_from_db()
        self.assertEqual(self.shift.assignee, self.alice)
        self.assertEqual(self.giveaway.status, Status.OPEN)
        self.assertEqual(self.swap.status, Status.PROPOSED)
        self.assertFalse(AuditLog.objects.filter(action="shift.reassigned").exists())
        self.assertFalse(AuditLog.objects.filter(action="shift_request.approved").exists())
        self.assertFalse(AuditLog.objects.filter(action="shift_request.cancelled").exists())

    def test_competitor_is_superseded_once_the_failure_clears(self):
        with self.assertLogs("apps.marketplace.engine", level="ERROR"):
            with self.assertRaises(InternalFailure):
                self.engine.claim(self.giveaway.pk, self.bob)
        request_transitioned.disconnect(self._fail_on_supersede)

        request = self.engine.claim(self.giveaway.pk, self.bob)
        self.swap.refresh_from_db()
        self.assertEqual(request.status, Status.APPROVED)
        self.assertEqual(self.swap.status, Status.CANCELLED)


class TestTerminalRequestsAreFrozen(TestCase):

    def setUp(self):
        self.engine = RequestLifecycleEngine()
        self.role = make_role()
        self.alice = make_user("Alice", role=self.role)
        self.bob = make_user("Bob", role=self.role)
        self.admin = make_approver(self.role)
        self.shift = make_shift(self.role, assignee=self.alice)

    def _assert_frozen(self, request):
        snapshot = ShiftRequest.objects.get(pk=request.pk)
        with self.assertRaises(InvalidState):
            self.engine.cancel(request.pk, self.alice)
        with self.assertRaises(InvalidState):
            self.engine.resolve(request.pk, self.admin, approve=True)
        # Closed requests report their state even to users without rights.
        with self.assertRaises(InvalidState):
            self.engine.cancel(request.pk, self.bob)
        with self.assertRaises(InvalidState):
            self.engine.resolve(request.pk, self.bob, approve=True)
        with self.assertRaises(Conflict):
            self.engine.claim(request.pk, self.bob)
        after = ShiftRequest.objects.get(pk=request.pk)
        self.assertEqual(after.status, snapshot.status)
        self.assertEqual(after.updated_at, snapshot.updated_at)

    def test_approved(self):
        request = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)
        self.engine.claim(request.pk, self.bob)
        self.engine.resolve(request.pk, self.admin, approve=True)
        self._assert_frozen(request)

    def test_rejected(self):
        request = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)
        self.engine.claim(request.pk, self.bob)
        self.engine.resolve(request.pk, self.admin, approve=False)
        self._assert_frozen(request)

    def test_cancelled(self):
        request = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)
        self.engine.cancel(request.pk, self.alice)
        self._assert_frozen(request)

    def test_approve_twice_conflicts_on_status(self):
        request = self.engine.create(Kind.GIVEAWAY, self.alice, self.shift)
        self.engine.claim(request.pk, self.bob)
        stale = ShiftRequest.objects.get(pk=request.pk)
        self.engine.resolve(request.pk, self.admin, approve=False)

        with mock.patch.object(RequestLifecycleEngine, "_lock_request", return_value=stale):
            with self.assertRaises(Conflict):
                self.engine.resolve(request.pk, self.admin, approve=True)

        self.shift.refresh_from_db()
        self.assertEqual(self.shift.assignee, self.alice)
        self.assertEqual(ShiftRequest.objects.get(pk=request.pk).status, Status.REJECTED)
