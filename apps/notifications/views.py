"""
Notifications views for the rota marketplace.

View inventory:
  NotificationListView → GET: the current user's latest notifications (JSON)
  mark_read            → POST: mark one or all notifications read
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views import View
from django.views.decorators.http import require_POST

from apps.notifications.models import Notification
from core.permissions import ApiLoginRequiredMixin

logger = logging.getLogger(__name__)


class NotificationListView(ApiLoginRequiredMixin, View):
    """Notification inbox for the current user, newest first."""

    def get(self, request: HttpRequest) -> JsonResponse:
        qs = Notification.objects.filter(recipient=request.user).order_by("-created_at")

        # Count on the full queryset before slicing
        unread_count = qs.filter(is_read=False).count()

        return JsonResponse({
            "unread_count": unread_count,
            "notifications": [n.as_dict() for n in qs[:50]],
        })


@login_required
@require_POST
def mark_read(request: HttpRequest) -> JsonResponse:
    """
    Mark one or all notifications as read.

    POST body:
      notification_id: int   → mark a single notification
                       'all' → mark every unread notification
    """
    notification_id = request.POST.get("notification_id", "")

    if notification_id == "all":
        updated = Notification.objects.filter(
            recipient=request.user, is_read=False
        ).update(is_read=True, read_at=timezone.now())
        logger.info("User %d marked all notifications read", request.user.pk)
    elif notification_id.isdigit():
        updated = Notification.objects.filter(
            pk=notification_id, recipient=request.user, is_read=False
        ).update(is_read=True, read_at=timezone.now())
    else:
        return JsonResponse({"error": "notification_id is required.", "code": "invalid_state"}, status=400)

    return JsonResponse({"updated": updated})
