"""
Notification creation and real-time fan-out.

notify() persists a Notification inside the caller's transaction and
schedules the websocket push for after commit, so a rolled-back marketplace
operation neither leaves a notification row nor pushes anything.
"""

import logging

from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


def notify(recipient, notification_type: str, title: str, body: str, data: dict = None) -> Notification:
    """
    Create a notification and push it to the recipient once committed.

    Args:
        recipient: The User to notify.
        notification_type: One of Notification.Type.
        title: Short title.
        body: Full text.
        data: JSON-serializable context (request/shift ids).

    Returns:
        The persisted Notification.
    """
    notification = Notification.objects.create(
        recipient=recipient,
        notification_type=notification_type,
        title=title,
        body=body,
        data=data or {},
    )

    from .tasks import push_notification

    transaction.on_commit(
        lambda: push_notification.delay(notification.pk),
        robust=True,
    )
    return notification


def broadcast_board_change(role_id, payload: dict) -> None:
    """Tell everyone watching a role's marketplace board that it changed, after commit."""
    from .tasks import push_board_update

    transaction.on_commit(
        lambda: push_board_update.delay(role_id, payload),
        robust=True,
    )
