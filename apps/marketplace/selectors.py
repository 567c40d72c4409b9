"""
Read-only marketplace projections.

These queries back the marketplace board: what is open, what I asked for,
what is waiting on me, what is waiting on an approver. They never lock or
write. serialize_request() flattens a request with the names, dates and role
details a client needs to render it.
"""

from django.db.models import Count, Q

from apps.scheduling.models import Shift

from .models import ShiftRequest

Status = ShiftRequest.Status

INCOMING_STATUSES = (Status.PROPOSED, Status.PEER_ACCEPTED)


def request_queryset():
    return ShiftRequest.objects.select_related(
        "source_shift__role",
        "source_shift__assignee",
        "target_shift__role",
        "requester",
        "target_staff",
        "candidate",
        "resolved_by",
    )


def open_requests(role_id=None):
    """Requests anyone may claim, newest first."""
    qs = request_queryset().filter(status=Status.OPEN)
    if role_id is not None:
        qs = qs.filter(source_shift__role_id=role_id)
    return qs.order_by("-created_at")


def my_requests(user):
    """Every request the user opened, newest first."""
    return request_queryset().filter(requester=user).order_by("-created_at")


def incoming_requests(user):
    """Swaps addressed to the user, or open swaps for a shift the user owns."""
    return (
        request_queryset()
        .filter(status__in=INCOMING_STATUSES)
        .filter(
            Q(target_staff=user)
            | Q(target_staff__isnull=True, target_shift__assignee=user)
        )
        .order_by("-created_at")
    )


def approval_queue(role_ids=None):
    """Requests awaiting an administrator, oldest first."""
    qs = request_queryset().filter(status=Status.PENDING_APPROVAL)
    if role_ids is not None:
        qs = qs.filter(source_shift__role_id__in=role_ids)
    return qs.order_by("created_at")


def dashboard_counts(user) -> dict:
    """Badge counts for the marketplace landing page."""
    counts = ShiftRequest.objects.aggregate(
        open=Count("pk", filter=Q(status=Status.OPEN)),
        mine=Count("pk", filter=Q(requester=user)),
    )
    return {
        "open": counts["open"],
        "my_requests": counts["mine"],
        "incoming": incoming_requests(user).count(),
    }


def swappable_shifts(role_id, year: int, month: int):
    """Published, owned shifts of a role in a month: candidates to swap with."""
    return (
        Shift.objects.select_related("assignee", "role")
        .filter(
            role_id=role_id,
            date__year=year,
            date__month=month,
            assignee__isnull=False,
            published=True,
        )
        .order_by("date", "start_time")
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _person(user) -> dict:
    if user is None:
        return None
    return {"id": user.pk, "name": user.get_full_name(), "short_name": user.get_short_name()}


def serialize_shift(shift) -> dict:
    if shift is None:
        return None
    return {
        "id": str(shift.pk),
        "date": shift.date.isoformat(),
        "start": shift.start_time.strftime("%H:%M"),
        "end": shift.end_time.strftime("%H:%M"),
        "label": shift.label,
        "role_id": shift.role_id,
        "role_name": shift.role.name,
        "assignee": _person(shift.assignee),
        "published": shift.published,
    }


def serialize_request(request: ShiftRequest) -> dict:
    """
    Flatten a request for JSON responses.

    Args:
        request: A ShiftRequest, ideally from request_queryset() to avoid extra queries.

    Returns:
        Dict with the persisted fields plus staff names, shift times and the
        role's auto-approve flag.
    """
    source = request.source_shift
    return {
        "id": str(request.pk),
        "kind": request.kind,
        "status": request.status,
        "source_shift": serialize_shift(source),
        "target_shift": serialize_shift(request.target_shift),
        "requester": _person(request.requester),
        "target_staff": _person(request.target_staff),
        "candidate": _person(request.candidate),
        "resolved_by": _person(request.resolved_by),
        "resolved_at": request.resolved_at.isoformat() if request.resolved_at else None,
        "notes": request.notes,
        "admin_note": request.admin_note,
        "role_auto_approve": source.role.marketplace_auto_approve,
        "created_at": request.created_at.isoformat(),
        "updated_at": request.updated_at.isoformat(),
    }
