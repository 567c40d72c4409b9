"""
Celery tasks for real-time notification delivery.

Tasks:
  push_notification:  sends one persisted Notification to the recipient's
                      personal Channels group (user_<id>)
  push_board_update:  tells viewers of a role's marketplace board
                      (marketplace_<role_id>) to refresh

Both are routed to the "notifications" queue (CELERY_TASK_ROUTES). They are
scheduled with transaction.on_commit, so they only ever see committed data.
"""

import logging

from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def _group_send(group: str, payload: dict) -> bool:
    """
    Send a message to a channel group from synchronous code.

    Returns:
        False if no channel layer is configured.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer configured; dropping message for group '%s'.", group)
        return False
    async_to_sync(channel_layer.group_send)(group, payload)
    return True


@shared_task(name="notifications.push_notification")
def push_notification(notification_id: int) -> dict:
    """
    Push a persisted notification to its recipient's websocket group.

    Args:
        notification_id: PK of the Notification.

    Returns:
        Dict describing what was sent.
    """
    from apps.notifications.models import Notification

    notification = Notification.objects.filter(pk=notification_id).first()
    if notification is None:
        logger.warning("Notification %s vanished before it could be pushed.", notification_id)
        return {"sent": False}

    group = f"user_{notification.recipient_id}"
    sent = _group_send(group, {
        "type": "notification",
        "notification_id": notification.pk,
        "notification_type": notification.notification_type,
        "title": notification.title,
        "body": notification.body,
        "data": notification.data,
    })
    return {"sent": sent, "group": group}


@shared_task(name="notifications.push_board_update")
def push_board_update(role_id, payload: dict) -> dict:
    """
    Broadcast a marketplace board change to everyone watching the role.

    Args:
        role_id: The role whose board changed.
        payload: Event fields (request_id, status, kind).
    """
    group = f"marketplace_{role_id}"
    sent = _group_send(group, {"type": "board.update", **payload})
    return {"sent": sent, "group": group}
