"""
Marketplace models.

A ShiftRequest is one attempt to move ownership of a shift:
  - GIVEAWAY: the owner offers their shift to any eligible colleague
  - PICKUP: someone asks to take an open (unowned) shift
  - SWAP: two owners exchange shifts

State machine:

    GIVEAWAY / PICKUP                 SWAP
    OPEN ──claim──┐                   PROPOSED ──reject──> PEER_REJECTED
                  │                      │
                  │                   accept
                  │                      v
                  │                   PEER_ACCEPTED
                  v                      │
         (auto-approve?) <───────────────┘
           │yes       │no
           v          v
        APPROVED   PENDING_APPROVAL ──approve──> APPROVED
                          │
                          └──reject──> REJECTED

    Any active status ──cancel──> CANCELLED

Terminal statuses never change again. Requests are never deleted: they are
the history of who gave what to whom.

Status writes go through ShiftRequestQuerySet.transition(), a conditional
UPDATE on the expected prior status, so a stale reader can never overwrite a
transition that committed in between.
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ShiftRequestQuerySet(models.QuerySet):

    def active(self):
        return self.filter(status__in=ShiftRequest.ACTIVE_STATUSES)

    def touching(self, shift_ids):
        """Return requests whose source or target is any of the given shifts."""
        shift_ids = list(shift_ids)
        return self.filter(
            models.Q(source_shift_id__in=shift_ids) | models.Q(target_shift_id__in=shift_ids)
        )

    def transition(self, pk, expected: str, status: str, **fields) -> int:
        """
        Move one request from `expected` to `status` if it is still there.

        Args:
            pk: The request's primary key.
            expected: The status the caller read (compare).
            status: The new status (set).
            **fields: Additional columns written in the same statement.

        Returns:
            Number of rows updated: 1 on success, 0 if the request moved on.
        """
        return self.filter(pk=pk, status=expected).update(
            status=status, updated_at=timezone.now(), **fields
        )


class ShiftRequest(models.Model):
    """A marketplace request to transfer ownership of one or two shifts."""

    class Kind(models.TextChoices):
        GIVEAWAY = "GIVEAWAY", _("Giveaway")
        PICKUP = "PICKUP", _("Pickup")
        SWAP = "SWAP", _("Swap")

    class Status(models.TextChoices):
        OPEN = "OPEN", _("Open")
        PROPOSED = "PROPOSED", _("Proposed")
        PEER_ACCEPTED = "PEER_ACCEPTED", _("Accepted by colleague")
        PEER_REJECTED = "PEER_REJECTED", _("Declined by colleague")
        PENDING_APPROVAL = "PENDING_APPROVAL", _("Awaiting approval")
        APPROVED = "APPROVED", _("Approved")
        REJECTED = "REJECTED", _("Rejected")
        CANCELLED = "CANCELLED", _("Cancelled")

    ACTIVE_STATUSES = frozenset({
        Status.OPEN.value,
        Status.PROPOSED.value,
        Status.PEER_ACCEPTED.value,
        Status.PENDING_APPROVAL.value,
    })
    TERMINAL_STATUSES = frozenset({
        Status.APPROVED.value,
        Status.REJECTED.value,
        Status.CANCELLED.value,
        Status.PEER_REJECTED.value,
    })

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=10, choices=Kind.choices)
    status = models.CharField(max_length=20, choices=Status.choices)

    source_shift = models.ForeignKey(
        "scheduling.Shift",
        on_delete=models.PROTECT,
        related_name="source_requests",
    )
    # Only set for SWAP: the shift the requester wants in exchange
    target_shift = models.ForeignKey(
        "scheduling.Shift",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="target_requests",
    )

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="shift_requests_made",
    )
    # Named colleague for a SWAP; null means any owner of target_shift may answer
    target_staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="shift_requests_received",
    )
    # Who would receive source_shift once the request resolves
    candidate = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="shift_requests_claimed",
    )
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="shift_requests_resolved",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)
    admin_note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ShiftRequestQuerySet.as_manager()

    class Meta:
        verbose_name = "Shift Request"
        verbose_name_plural = "Shift Requests"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="shiftrequest_status_idx"),
            models.Index(fields=["requester", "status"], name="shiftrequest_requester_idx"),
            models.Index(fields=["source_shift", "status"], name="shiftrequest_source_idx"),
            models.Index(fields=["target_shift", "status"], name="shiftrequest_target_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.source_shift_id} by {self.requester_id} [{self.status}]"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def shift_ids(self) -> list:
        """Primary keys of every shift this request touches."""
        return [pk for pk in (self.source_shift_id, self.target_shift_id) if pk is not None]
