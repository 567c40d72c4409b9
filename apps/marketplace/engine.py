"""
Marketplace request lifecycle engine.

Every public operation is one database transaction. Inside it the engine:
  1. Locks the request row (for operations on an existing request)
  2. Locks the shift rows involved, in ascending primary-key order
  3. Validates the operation against the state it just locked
  4. Writes: status transitions are conditional UPDATEs on the expected prior
     status; shift ownership changes only inside a resolution
  5. On resolution, cancels every other active request touching either shift

Either everything above commits or nothing does. Losing a race (a conditional
UPDATE that matched no row, a serialization failure, a deadlock) surfaces as
Conflict; the caller decides whether to refresh and retry. Nothing is retried
here.

Side effects outside the database (websocket pushes) are scheduled by the
signal receivers with transaction.on_commit, so a rolled-back operation never
notifies anyone.
"""

import logging
import uuid
from contextlib import contextmanager

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.scheduling.models import Shift
from apps.scheduling.signals import shift_reassigned
from core.permissions import has_permission

from .exceptions import AmbiguousActor, Conflict, Forbidden, InternalFailure, InvalidState, NotFound
from .models import ShiftRequest
from .policy import ApprovalDecision, ApprovalPolicy
from .signals import request_transitioned

logger = logging.getLogger(__name__)

Kind = ShiftRequest.Kind
Status = ShiftRequest.Status

# SQLSTATE codes for serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def _is_contention_error(exc: DatabaseError) -> bool:
    """Return True if the database aborted us because of a concurrent writer."""
    cause = exc.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(exc)


class RequestLifecycleEngine:
    """The ShiftRequest state machine and its transactional resolution protocol."""

    def __init__(self, policy: ApprovalPolicy = None):
        self.policy = policy or ApprovalPolicy()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def create(self, kind, requester, source_shift, target_shift=None, target_staff=None, notes: str = "") -> ShiftRequest:
        """
        Open a new marketplace request.

        Args:
            kind: ShiftRequest.Kind value.
            requester: The acting user (must be an individual).
            source_shift: Shift or shift id being offered, picked up or swapped.
            target_shift: Shift or shift id wanted in exchange (SWAP only).
            target_staff: User the swap is addressed to (SWAP only, optional).
            notes: Free text shown to colleagues.

        Returns:
            The new ShiftRequest in OPEN or PROPOSED.

        Raises:
            NotFound: A shift does not exist.
            InvalidState: The ownership rules for this kind are not met.
        """
        if kind not in Kind.values:
            raise InvalidState(f"Unknown request kind: {kind!r}.")
        self._require_individual(requester)

        source_id = self._shift_pk(source_shift)
        target_id = self._shift_pk(target_shift) if target_shift is not None else None

        with self._unit_of_work():
            shifts = Shift.objects.lock([pk for pk in (source_id, target_id) if pk is not None])
            source = shifts.get(source_id)
            if source is None:
                raise NotFound(f"Shift {source_id} not found.")

            target = None
            if target_id is not None:
                target = shifts.get(target_id)
                if target is None:
                    raise NotFound(f"Shift {target_id} not found.")

            target_staff = self._validate_creation(kind, requester, source, target, target_staff)
            self._check_requester_limits(requester, [s.pk for s in (source, target) if s])

            request = ShiftRequest.objects.create(
                kind=kind,
                status=Status.PROPOSED if kind == Kind.SWAP else Status.OPEN,
                source_shift=source,
                target_shift=target,
                requester=requester,
                target_staff=target_staff,
                notes=notes or "",
            )

        logger.info(
            "Request %s created: %s of shift %s by user %s.",
            request.pk, kind, source.pk, requester.pk,
        )
        return request

    def claim(self, request_id, candidate) -> ShiftRequest:
        """
        Claim an OPEN giveaway or pickup and run the resolution.

        Returns:
            The request, now APPROVED or PENDING_APPROVAL.

        Raises:
            NotFound: No such request.
            InvalidState: Not a giveaway/pickup, or the candidate is the requester.
            Conflict: The request is no longer OPEN.
            Forbidden: The candidate cannot work shifts of this role.
        """
        self._require_individual(candidate)

        with self._unit_of_work(request_id):
            request = self._lock_request(request_id)
            if request.kind not in (Kind.GIVEAWAY, Kind.PICKUP):
                raise InvalidState("Only giveaways and pickups can be claimed.", request.pk)
            if request.status != Status.OPEN:
                raise Conflict(
                    f"Request is no longer open (status {request.status}).", request.pk
                )
            if candidate.pk == request.requester_id:
                raise InvalidState("Cannot accept your own request.", request.pk)

            shifts = Shift.objects.lock(request.shift_ids)
            source = shifts[request.source_shift_id]
            if not has_permission(candidate, settings.MARKETPLACE["WORKER_PERMISSION"], source.role_id):
                logger.warning(
                    "User %s tried to claim request %s without permission to work role %s.",
                    candidate.pk, request.pk, source.role_id,
                )
                raise Forbidden("You are not able to work shifts of this role.", request.pk)

            self._resolve_or_park(request, shifts, Status.OPEN, candidate, actor=candidate)
            request.refresh_from_db()

        logger.info("Request %s claimed by user %s -> %s.", request.pk, candidate.pk, request.status)
        return request

    def respond_to_swap(self, request_id, peer, accept: bool) -> ShiftRequest:
        """
        Accept or decline a PROPOSED swap.

        The peer must be the named target_staff or, for an untargeted swap, the
        current owner of the target shift.

        Returns:
            The request, now PEER_REJECTED, APPROVED or PENDING_APPROVAL.
        """
        self._require_individual(peer)

        with self._unit_of_work(request_id):
            request = self._lock_request(request_id)
            if request.kind != Kind.SWAP:
                raise InvalidState("Only swaps can be accepted or declined.", request.pk)
            if request.status != Status.PROPOSED:
                raise InvalidState(
                    f"Swap is not awaiting a response (status {request.status}).", request.pk
                )

            shifts = Shift.objects.lock(request.shift_ids)
            target = shifts[request.target_shift_id]
            if request.target_staff_id is not None:
                allowed = peer.pk == request.target_staff_id
            else:
                allowed = peer.pk == target.assignee_id
            if not allowed:
                logger.warning("User %s tried to answer swap %s addressed to someone else.", peer.pk, request.pk)
                raise Forbidden("This swap is not addressed to you.", request.pk)

            if not accept:
                self._transition(request, Status.PROPOSED, Status.PEER_REJECTED, actor=peer)
            else:
                self._transition(request, Status.PROPOSED, Status.PEER_ACCEPTED, actor=peer, candidate=peer)
                self._resolve_or_park(request, shifts, Status.PEER_ACCEPTED, peer, actor=peer)
            request.refresh_from_db()

        logger.info("Swap %s answered by user %s -> %s.", request.pk, peer.pk, request.status)
        return request

    def resolve(self, request_id, approver, approve: bool, note: str = "") -> ShiftRequest:
        """
        Administrator decision on a PENDING_APPROVAL request.

        The approver needs the approver capability on every role involved, or
        must be a superuser.
        """
        with self._unit_of_work(request_id):
            request = self._lock_request(request_id)
            shifts = Shift.objects.lock(request.shift_ids)

            if request.status != Status.PENDING_APPROVAL:
                raise InvalidState(
                    f"Request is not awaiting approval (status {request.status}).", request.pk
                )
            if not self._can_approve(approver, shifts.values()):
                logger.warning("User %s tried to decide request %s without approval rights.", approver.pk, request.pk)
                raise Forbidden("You cannot approve requests for this role.", request.pk)
            if request.candidate_id is None:
                raise InvalidState("Request has no candidate to transfer the shift to.", request.pk)

            if approve:
                self._apply_transfer(
                    request, shifts, Status.PENDING_APPROVAL, request.candidate,
                    resolved_by=approver, admin_note=note or "",
                )
            else:
                self._transition(
                    request, Status.PENDING_APPROVAL, Status.REJECTED, actor=approver,
                    resolved_by=approver, resolved_at=timezone.now(), admin_note=note or "",
                )
            request.refresh_from_db()

        logger.info("Request %s %s by user %s.", request.pk, request.status, approver.pk)
        return request

    def cancel(self, request_id, actor) -> ShiftRequest:
        """
        Withdraw an active request.

        Allowed for the requester, and for anyone holding the approver
        capability on the source shift's role.
        """
        with self._unit_of_work(request_id):
            request = self._lock_request(request_id)
            if not request.is_active:
                raise InvalidState(
                    f"Request is already closed (status {request.status}).", request.pk
                )
            role_id = (
                Shift.objects.filter(pk=request.source_shift_id)
                .values_list("role_id", flat=True)
                .first()
            )
            is_requester = actor.pk == request.requester_id
            if not is_requester and not has_permission(actor, settings.MARKETPLACE["APPROVER_PERMISSION"], role_id):
                logger.warning("User %s tried to cancel request %s they do not own.", actor.pk, request.pk)
                raise Forbidden("You cannot cancel this request.", request.pk)

            self._transition(request, request.status, Status.CANCELLED, actor=actor)
            request.refresh_from_db()

        logger.info("Request %s cancelled by user %s.", request.pk, actor.pk)
        return request

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve_or_park(self, request, shifts, expected, candidate, actor) -> None:
        """
        Complete the transfer now if every role auto-approves, else wait for an admin.
        """
        decision = self.policy.decide_for(shifts.values())
        if decision is ApprovalDecision.REQUIRES_APPROVAL:
            self._transition(request, expected, Status.PENDING_APPROVAL, actor=actor, candidate=candidate)
            return
        self._apply_transfer(request, shifts, expected, candidate, resolved_by=actor)

    def _apply_transfer(self, request, shifts, expected, candidate, resolved_by, admin_note=None) -> None:
        """
        Move ownership, mark the request APPROVED and cancel its competitors.

        Raises:
            Conflict: Ownership changed since the request was made.
        """
        source = shifts[request.source_shift_id]
        target = shifts.get(request.target_shift_id)

        if request.kind == Kind.PICKUP:
            drifted = source.assignee_id is not None
        else:
            drifted = source.assignee_id != request.requester_id
        if request.kind == Kind.SWAP:
            drifted = drifted or target.assignee_id != candidate.pk
        if drifted:
            logger.warning("Ownership of shifts in request %s changed before resolution.", request.pk)
            raise Conflict("The shift has changed hands since this request was made.", request.pk)

        fields = {
            "candidate": candidate,
            "resolved_by": resolved_by,
            "resolved_at": timezone.now(),
        }
        if admin_note is not None:
            fields["admin_note"] = admin_note
        self._transition(request, expected, Status.APPROVED, actor=resolved_by, **fields)

        self._reassign(source, candidate, request, resolved_by)
        if request.kind == Kind.SWAP:
            self._reassign(target, request.requester, request, resolved_by)

        self._cancel_competing_requests(request, resolved_by)

    def _reassign(self, shift, new_owner, request, actor) -> None:
        previous_id = shift.assignee_id
        shift.assignee = new_owner
        shift.save(update_fields=["assignee", "updated_at"])
        shift_reassigned.send(
            sender=Shift,
            shift=shift,
            previous_assignee_id=previous_id,
            request=request,
            actor=actor,
        )

    def _cancel_competing_requests(self, request, actor) -> list:
        """
        Cancel every other active request touching a shift of `request`.

        Returns:
            The cancelled requests.
        """
        competitors = list(
            ShiftRequest.objects.select_for_update()
            .active()
            .touching(request.shift_ids)
            .exclude(pk=request.pk)
            .order_by("pk")
        )
        for other in competitors:
            self._transition(other, other.status, Status.CANCELLED, actor=actor, superseded_by=request)
        if competitors:
            logger.info(
                "Request %s superseded %d competing request(s).", request.pk, len(competitors)
            )
        return competitors

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, request, expected, status, actor=None, superseded_by=None, **fields) -> None:
        """
        Compare-and-set the request's status, then announce the transition.

        Raises:
            Conflict: The stored status is no longer `expected`.
        """
        if not ShiftRequest.objects.transition(request.pk, expected, status, **fields):
            logger.warning(
                "Request %s left %s before it could become %s.", request.pk, expected, status
            )
            raise Conflict("The request was changed by someone else. Refresh and try again.", request.pk)

        request.status = status
        for name, value in fields.items():
            setattr(request, name, value)
        request_transitioned.send(
            sender=ShiftRequest,
            request=request,
            previous_status=expected,
            actor=actor,
            superseded_by=superseded_by,
        )

    def _can_approve(self, user, shifts) -> bool:
        if user.is_superuser:
            return True
        permission = settings.MARKETPLACE["APPROVER_PERMISSION"]
        return all(has_permission(user, permission, shift.role_id) for shift in shifts)

    def _validate_creation(self, kind, requester, source, target, target_staff):
        """Apply the per-kind ownership rules. Returns the target_staff to store."""
        if kind in (Kind.GIVEAWAY, Kind.PICKUP):
            if target is not None or target_staff is not None:
                raise InvalidState("Only swaps can name a target shift or colleague.")

        if kind == Kind.PICKUP:
            if source.assignee_id is not None:
                raise InvalidState("Only open shifts can be picked up.")
            return None

        if source.assignee_id != requester.pk:
            raise InvalidState("You can only offer shifts you own.")
        if kind == Kind.GIVEAWAY:
            return None

        if target is None:
            raise InvalidState("A swap needs a shift to swap with.")
        if target.pk == source.pk:
            raise InvalidState("A shift cannot be swapped with itself.")
        if target.assignee_id is None or target.assignee_id == requester.pk:
            raise InvalidState("The shift to swap with must belong to a colleague.")
        if target_staff is not None and target_staff.pk != target.assignee_id:
            raise InvalidState("The named colleague does not own the shift to swap with.")
        if target_staff is None and settings.MARKETPLACE["OPEN_SWAP_ACCEPTANCE"] == "implicit_target":
            return target.assignee
        return target_staff

    def _check_requester_limits(self, requester, shift_ids) -> None:
        config = settings.MARKETPLACE
        limit = config["MAX_ACTIVE_REQUESTS"]
        if limit and ShiftRequest.objects.active().filter(requester=requester).count() >= limit:
            raise InvalidState(f"You already have {limit} active requests.")
        if not config["ALLOW_CONCURRENT_OFFERS"]:
            if ShiftRequest.objects.active().touching(shift_ids).exists():
                raise InvalidState("This shift already has an active request.")

    @staticmethod
    def _require_individual(user) -> None:
        if user.is_generic_login:
            raise AmbiguousActor("A shared login must confirm which staff member is acting.")

    @staticmethod
    def _shift_pk(value):
        if isinstance(value, Shift):
            return value.pk
        try:
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        except ValueError:
            raise NotFound(f"Shift {value} not found.")

    @staticmethod
    def _lock_request(request_id) -> ShiftRequest:
        try:
            return ShiftRequest.objects.select_for_update().get(pk=request_id)
        except (ShiftRequest.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"Request {request_id} not found.")

    @contextmanager
    def _unit_of_work(self, request_id=None):
        """
        One transaction; database failures become marketplace errors.

        Raises:
            Conflict: Serialization failure, deadlock or a locked database.
            InternalFailure: Any other database error.
        """
        try:
            with transaction.atomic():
                yield
        except DatabaseError as exc:
            if _is_contention_error(exc):
                logger.warning("Request %s hit a concurrent writer: %s", request_id, exc)
                raise Conflict(
                    "Another change to these shifts happened at the same time. Refresh and try again.",
                    request_id,
                ) from exc
            logger.exception("Database failure while processing request %s.", request_id)
            raise InternalFailure("The change could not be saved.", request_id) from exc
