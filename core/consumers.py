"""
WebSocket consumers for the rota marketplace's real-time features.

Two consumers:
  1. UserConsumer: delivers personal notifications (claims, approvals, swaps)
  2. MarketplaceConsumer: tells viewers of a role's marketplace board that a
     request was opened or changed status, so they can refresh

Channel group naming convention:
  - user_{user_id}: personal notification stream
  - marketplace_{role_id}: everyone viewing a role's marketplace board

Messages reach these groups from apps.notifications.tasks, which run after the
marketplace transaction has committed.

Security: both consumers require authentication. Anonymous connections are
closed with 4001; a board for a role the user has no membership in is closed
with 4003.
"""

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

logger = logging.getLogger(__name__)


class UserConsumer(AsyncWebsocketConsumer):
    """
    Personal WebSocket channel for a specific authenticated user.

    URL: /ws/user/
    Group: user_{user_id}
    """

    group_name = None

    async def connect(self) -> None:
        """Accept connection after verifying authentication."""
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            await self.close(code=4001)
            return

        self.group_name = f"user_{self.user.pk}"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code: int) -> None:
        """Leave the personal notification group on disconnect."""
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data: str) -> None:
        """
        Handle client-to-server messages.

        Currently supports:
          - mark_read: mark a notification as read
        """
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON received from user %d", self.user.pk)
            return

        if data.get("type") == "mark_read":
            notification_id = data.get("notification_id")
            if notification_id:
                await self._mark_notification_read(notification_id)

    async def notification(self, event: dict) -> None:
        """
        Forward a notification event to the connected client.

        Args:
            event: The notification event dict sent by push_notification.
        """
        await self.send(text_data=json.dumps({
            "type": "notification",
            "notification_id": event["notification_id"],
            "notification_type": event["notification_type"],
            "title": event["title"],
            "body": event["body"],
            "data": event.get("data", {}),
        }))

    @database_sync_to_async
    def _mark_notification_read(self, notification_id: int) -> None:
        """
        Mark a notification as read if it belongs to this user.

        Args:
            notification_id: The PK of the notification to mark as read.
        """
        from django.utils import timezone

        from apps.notifications.models import Notification

        Notification.objects.filter(
            pk=notification_id, recipient=self.user, is_read=False
        ).update(is_read=True, read_at=timezone.now())


class MarketplaceConsumer(AsyncWebsocketConsumer):
    """
    Live marketplace board for one role.

    URL: /ws/marketplace/{role_id}/
    Group: marketplace_{role_id}

    Events broadcast:
      - board.update: a request was created or changed status
    """

    group_name = None

    async def connect(self) -> None:
        self.role_id = int(self.scope["url_route"]["kwargs"]["role_id"])
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            logger.warning("Unauthenticated WebSocket connection attempt rejected.")
            await self.close(code=4001)
            return

        if not await self._user_belongs_to_role():
            logger.warning(
                "User %d attempted to watch the marketplace of role %s without membership.",
                self.user.pk,
                self.role_id,
            )
            await self.close(code=4003)
            return

        self.group_name = f"marketplace_{self.role_id}"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code: int) -> None:
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def board_update(self, event: dict) -> None:
        """
        Forward a board change to the client.

        Args:
            event: Dict with request_id, kind and status.
        """
        await self.send(text_data=json.dumps({
            "type": "board.update",
            "role_id": self.role_id,
            "request_id": event["request_id"],
            "kind": event["kind"],
            "status": event["status"],
        }))

    @database_sync_to_async
    def _user_belongs_to_role(self) -> bool:
        """Superusers see every board; others need a UserRole in this role."""
        from apps.accounts.models import UserRole

        if self.user.is_superuser:
            return True
        return UserRole.objects.filter(user=self.user, role_id=self.role_id).exists()
