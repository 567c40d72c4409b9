from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor", "action", "object_id", "role", "shift_date")
    list_filter = ("action", "role")
    search_fields = ("actor__email", "actor__first_name", "actor__last_name", "action", "object_id")
    ordering = ("-created_at",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
