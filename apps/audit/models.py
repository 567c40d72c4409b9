"""
Audit trail for the rota marketplace.

Every request creation, status transition and shift reassignment is logged
immutably: who did what, when, and the before/after state. Logs are never
updated or deleted.

The log is written by signal receivers inside the engine's transaction, so
there is no window where a change exists without an audit record, and a
rolled-back change leaves no record behind.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class AuditLog(models.Model):
    """
    Immutable record of every marketplace change.

    Uses Django's ContentType framework so requests and shifts share one log.
    object_id is text because both audited models use UUID keys.

    Action strings follow the pattern "model.event":
      - "shift_request.created"
      - "shift_request.pending_approval"
      - "shift_request.approved"
      - "shift_request.cancelled"
      - "shift.reassigned"

    role and shift_date are denormalized from the shift so the ownership
    history of a role can be filtered by month without joins.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="audit_actions",
    )

    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Dot-separated action identifier, e.g., 'shift_request.approved'",
    )

    content_type = models.ForeignKey(ContentType, on_delete=models.SET_NULL, null=True)
    object_id = models.CharField(max_length=64, blank=True)
    content_object = GenericForeignKey("content_type", "object_id")

    role = models.ForeignKey(
        "accounts.Role",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    shift_date = models.DateField(null=True, blank=True)

    before = models.JSONField(
        default=dict,
        blank=True,
        help_text="Serialized state of the object before the change. Empty for creations.",
    )
    after = models.JSONField(
        default=dict,
        blank=True,
        help_text="Serialized state of the object after the change.",
    )

    note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["content_type", "object_id"], name="audit_object_idx"),
            models.Index(fields=["actor", "-created_at"], name="audit_actor_idx"),
            models.Index(fields=["role", "shift_date"], name="audit_role_date_idx"),
        ]

    def __str__(self) -> str:
        actor_name = self.actor.get_full_name() if self.actor else "System"
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {actor_name} → {self.action}"

    def save(self, *args, **kwargs):
        """
        Override save to enforce immutability: audit logs cannot be updated.

        Raises:
            RuntimeError: If attempting to update an existing audit log entry.
        """
        if self.pk:
            raise RuntimeError("AuditLog entries are immutable and cannot be updated.")
        super().save(*args, **kwargs)
