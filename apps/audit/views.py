"""
Audit views for the rota marketplace.

View inventory:
  ShiftHistoryView → shift ownership history (can_edit_rota), JSON or CSV export
"""

import csv

from django.contrib.auth import get_user_model
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views import View

from apps.audit.models import AuditLog
from core.permissions import RotaEditorRequiredMixin, roles_with_permission


class ShiftHistoryView(RotaEditorRequiredMixin, View):
    """
    Who owned which shift, and who changed it.

    Query params:
      role_id: filter by role (the approver capability is checked for it);
               without it, every role the user approves for
      year:    filter by shift year
      month:   filter by shift month
      export:  'csv' triggers a file download
    """

    def get(self, request: HttpRequest) -> HttpResponse:
        logs = AuditLog.objects.filter(
            action="shift.reassigned",
            role__in=roles_with_permission(request.user, "can_edit_rota"),
        ).select_related("actor")

        filters = {}
        for param, lookup in (("role_id", "role_id"), ("year", "shift_date__year"), ("month", "shift_date__month")):
            value = request.GET.get(param, "").strip()
            if not value:
                continue
            if not value.isdigit():
                return JsonResponse({"error": f"'{param}' must be an integer.", "code": "invalid_state"}, status=400)
            filters[lookup] = int(value)
        logs = logs.filter(**filters).order_by("-created_at", "-id")

        entries = self._entries(logs)

        if request.GET.get("export") == "csv":
            return self._export_csv(entries)
        return JsonResponse({"entries": entries})

    @staticmethod
    def _entries(logs) -> list:
        """Flatten audit rows, resolving old/new owner ids to short names in one query."""
        logs = list(logs)
        owner_ids = set()
        for log in logs:
            owner_ids.update(v for v in (log.before.get("assignee"), log.after.get("assignee")) if v)
        names = {
            user.pk: user.get_short_name()
            for user in get_user_model().objects.filter(pk__in=owner_ids)
        }

        return [
            {
                "id": log.pk,
                "shift_id": log.object_id,
                "role_id": log.role_id,
                "date": log.shift_date.isoformat() if log.shift_date else "",
                "changed_by": log.actor.get_short_name() if log.actor else "System",
                "old_staff": names.get(log.before.get("assignee")),
                "new_staff": names.get(log.after.get("assignee")),
                "note": log.note,
                "created_at": log.created_at.isoformat(),
            }
            for log in logs
        ]

    @staticmethod
    def _export_csv(entries) -> HttpResponse:
        """
        Write ownership history as a CSV file download.

        Args:
            entries: Flattened entries from _entries().

        Returns:
            HttpResponse with CSV content.
        """
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = 'attachment; filename="shift_history.csv"'
        writer = csv.writer(response)
        writer.writerow(["Timestamp", "Shift", "Date", "Changed by", "From", "To", "Note"])
        for entry in entries:
            writer.writerow([
                entry["created_at"],
                entry["shift_id"],
                entry["date"],
                entry["changed_by"],
                entry["old_staff"] or "",
                entry["new_staff"] or "",
                entry["note"],
            ])
        return response
