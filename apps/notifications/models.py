"""
Notifications models for the rota marketplace.

All user-facing notifications are persisted here. Real-time delivery happens
after commit via a Celery task that pushes to the recipient's Channels group.

Notification types map to marketplace events; the data field carries the
request and shift ids a client needs to link to the right place.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    """
    A persisted notification for a specific user.

    Notifications are created by apps.notifications.services.notify (called
    from marketplace signal receivers), never directly by views.
    """

    class Type(models.TextChoices):
        # Colleague notifications
        SWAP_PROPOSED = "swap_proposed", _("Swap Proposed to You")
        SWAP_ACCEPTED = "swap_accepted", _("Swap Accepted by Colleague")
        SWAP_DECLINED = "swap_declined", _("Swap Declined by Colleague")
        REQUEST_CLAIMED = "request_claimed", _("Your Shift Was Claimed")
        REQUEST_APPROVED = "request_approved", _("Request Approved")
        REQUEST_REJECTED = "request_rejected", _("Request Rejected")
        REQUEST_CANCELLED = "request_cancelled", _("Request Cancelled")
        SHIFT_REASSIGNED = "shift_reassigned", _("Shift Ownership Changed")
        # Approver notifications
        APPROVAL_NEEDED = "approval_needed", _("Request Awaiting Your Approval")

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    notification_type = models.CharField(max_length=30, choices=Type.choices)

    title = models.CharField(max_length=200)
    body = models.TextField()

    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notification_unread_idx"),
            models.Index(fields=["recipient", "-created_at"], name="notification_recent_idx"),
        ]

    def __str__(self) -> str:
        return f"[{self.get_notification_type_display()}] → {self.recipient.get_short_name()}"

    def mark_read(self) -> None:
        """Mark this notification as read and record the timestamp."""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at"])

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "type": self.notification_type,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
