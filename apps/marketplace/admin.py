from django.contrib import admin

from .models import ShiftRequest


@admin.register(ShiftRequest)
class ShiftRequestAdmin(admin.ModelAdmin):
    """
    Read-only view of marketplace requests.

    Status changes must go through the lifecycle engine, so the admin cannot
    edit, add or delete requests.
    """

    list_display = ("created_at", "kind", "status", "requester", "source_shift", "target_shift", "candidate", "resolved_by")
    list_filter = ("kind", "status", "source_shift__role")
    search_fields = ("requester__email", "requester__last_name", "candidate__email", "target_staff__email")
    ordering = ("-created_at",)
    readonly_fields = [field.name for field in ShiftRequest._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
