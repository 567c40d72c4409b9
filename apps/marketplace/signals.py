"""
Marketplace signals: audit trail and notifications.

The engine sends request_transitioned(request, previous_status, actor,
superseded_by) from inside its transaction, and apps.scheduling.signals
shift_reassigned whenever it moves a shift.

Request creation is picked up through post_save. Receivers here write the
AuditLog row and Notification rows in the same transaction; websocket pushes
are deferred to after commit by apps.notifications.services.
"""

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from apps.audit.models import AuditLog
from apps.notifications.models import Notification
from apps.notifications.services import broadcast_board_change, notify
from apps.scheduling.models import Shift
from apps.scheduling.signals import shift_reassigned

from .models import ShiftRequest

request_transitioned = Signal()

Status = ShiftRequest.Status


def _snapshot(request: ShiftRequest) -> dict:
    def ref(value):
        return str(value) if value is not None else None

    return {
        "kind": request.kind,
        "status": request.status,
        "source_shift": ref(request.source_shift_id),
        "target_shift": ref(request.target_shift_id),
        "requester": request.requester_id,
        "target_staff": request.target_staff_id,
        "candidate": request.candidate_id,
        "resolved_by": request.resolved_by_id,
    }


def _role_ids(request: ShiftRequest) -> list:
    return sorted(set(
        Shift.objects.filter(pk__in=request.shift_ids).values_list("role_id", flat=True)
    ))


def _approvers(role_ids):
    permission = settings.MARKETPLACE["APPROVER_PERMISSION"]
    return get_user_model().objects.filter(
        is_active=True,
        user_roles__role_id__in=role_ids,
        **{f"user_roles__{permission}": True},
    ).distinct()


def _broadcast(request: ShiftRequest, role_ids) -> None:
    payload = {"request_id": str(request.pk), "kind": request.kind, "status": request.status}
    for role_id in role_ids:
        broadcast_board_change(role_id, payload)


# ---------------------------------------------------------------------------
# Request created
# ---------------------------------------------------------------------------

@receiver(post_save, sender=ShiftRequest)
def log_request_created(sender, instance, created, **kwargs):
    """Audit and notify when a marketplace request is opened."""
    if not created:
        return

    AuditLog.objects.create(
        actor=instance.requester,
        action="shift_request.created",
        content_object=instance,
        after=_snapshot(instance),
        note=instance.notes,
    )

    if instance.kind == ShiftRequest.Kind.SWAP:
        peer_id = instance.target_staff_id or instance.target_shift.assignee_id
        if peer_id:
            notify(
                get_user_model().objects.get(pk=peer_id),
                Notification.Type.SWAP_PROPOSED,
                "Swap proposed",
                f"{instance.requester} would like to swap shifts with you.",
                {"request_id": str(instance.pk)},
            )

    _broadcast(instance, _role_ids(instance))


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

@receiver(request_transitioned)
def log_request_transition(sender, request, previous_status, actor=None, superseded_by=None, **kwargs):
    """Write one audit row per status change."""
    note = ""
    if superseded_by is not None:
        note = f"Superseded by request {superseded_by.pk}."
    elif request.status in (Status.APPROVED, Status.REJECTED):
        note = request.admin_note

    AuditLog.objects.create(
        actor=actor,
        action=f"shift_request.{request.status.lower()}",
        content_object=request,
        before={"status": previous_status},
        after=_snapshot(request),
        note=note,
    )


@receiver(request_transitioned)
def notify_request_transition(sender, request, previous_status, actor=None, superseded_by=None, **kwargs):
    """Tell the people involved what happened to the request."""
    data = {"request_id": str(request.pk), "status": request.status}
    role_ids = _role_ids(request)
    actor_id = actor.pk if actor is not None else None

    def others(*users):
        seen = set()
        for user in users:
            if user is None or user.pk == actor_id or user.pk in seen:
                continue
            seen.add(user.pk)
            yield user

    if request.status == Status.PEER_ACCEPTED:
        notify(request.requester, Notification.Type.SWAP_ACCEPTED,
               "Swap accepted", f"{actor} accepted your swap.", data)

    elif request.status == Status.PEER_REJECTED:
        notify(request.requester, Notification.Type.SWAP_DECLINED,
               "Swap declined", f"{actor} declined your swap.", data)

    elif request.status == Status.PENDING_APPROVAL:
        if previous_status == Status.OPEN:
            notify(request.requester, Notification.Type.REQUEST_CLAIMED,
                   "Your shift was claimed", f"{actor} claimed your shift. Awaiting approval.", data)
        for approver in _approvers(role_ids):
            notify(approver, Notification.Type.APPROVAL_NEEDED,
                   "Approval needed", f"A {request.get_kind_display().lower()} request is awaiting your decision.", data)

    elif request.status == Status.APPROVED:
        for user in others(request.requester, request.candidate):
            notify(user, Notification.Type.REQUEST_APPROVED,
                   "Request approved", "The shift transfer has been completed.", data)

    elif request.status == Status.REJECTED:
        for user in others(request.requester, request.candidate):
            notify(user, Notification.Type.REQUEST_REJECTED,
                   "Request rejected", request.admin_note or "An administrator rejected the request.", data)

    elif request.status == Status.CANCELLED:
        if superseded_by is not None:
            body = "The shift was transferred through another request."
            recipients = others(request.requester, request.candidate, request.target_staff)
        else:
            body = f"{actor} cancelled the request."
            recipients = others(request.requester, request.candidate)
        for user in recipients:
            notify(user, Notification.Type.REQUEST_CANCELLED, "Request cancelled", body, data)

    _broadcast(request, role_ids)


# ---------------------------------------------------------------------------
# Shift ownership
# ---------------------------------------------------------------------------

@receiver(shift_reassigned)
def log_shift_reassigned(sender, shift, previous_assignee_id, request=None, actor=None, **kwargs):
    """Audit every change of shift ownership; notify on administrative edits."""
    AuditLog.objects.create(
        actor=actor,
        action="shift.reassigned",
        content_object=shift,
        role_id=shift.role_id,
        shift_date=shift.date,
        before={"assignee": previous_assignee_id},
        after={"assignee": shift.assignee_id},
        note=f"Request {request.pk}" if request is not None else "Administrative edit",
    )

    if request is None and shift.assignee_id is not None:
        notify(shift.assignee, Notification.Type.SHIFT_REASSIGNED,
               "Shift assigned to you", f"You now own {shift}.", {"shift_id": str(shift.pk)})
