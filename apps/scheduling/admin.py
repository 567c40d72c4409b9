import logging

from django.contrib import admin
from django.db import transaction

from .models import Shift
from .signals import shift_reassigned

logger = logging.getLogger(__name__)


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    list_display = ("date", "start_time", "end_time", "role", "assignee", "label", "published")
    list_filter = ("role", "published", "date")
    search_fields = ("role__name", "assignee__email", "assignee__last_name", "label")
    ordering = ("date", "start_time")
    autocomplete_fields = ("assignee",)

    def save_model(self, request, obj, form, change):
        """
        Save a shift edited through the admin.

        Existing rows are locked first so an ownership edit cannot interleave
        with a marketplace resolution on the same shift. The owner before the
        edit is read from the locked row, not from the form.
        """
        with transaction.atomic():
            previous_id = None
            if change:
                locked = Shift.objects.select_for_update().filter(pk=obj.pk).first()
                previous_id = locked.assignee_id if locked else None
            if obj.created_by_id is None:
                obj.created_by = request.user
            super().save_model(request, obj, form, change)

            if obj.assignee_id != previous_id:
                logger.info(
                    "Admin %s reassigned shift %s from %s to %s.",
                    request.user.pk, obj.pk, previous_id, obj.assignee_id,
                )
                shift_reassigned.send(
                    sender=Shift,
                    shift=obj,
                    previous_assignee_id=previous_id,
                    request=None,
                    actor=request.user,
                )

    def delete_model(self, request, obj):
        with transaction.atomic():
            Shift.objects.select_for_update().filter(pk=obj.pk).first()
            super().delete_model(request, obj)
