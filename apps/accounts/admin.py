from django.contrib import admin
from .models import Role, User, UserRole


class UserRoleInline(admin.TabularInline):
    model = UserRole
    extra = 0


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "first_name", "last_name", "short_name", "is_generic_login", "is_active", "date_joined")
    list_filter = ("is_generic_login", "is_active", "is_superuser")
    search_fields = ("email", "first_name", "last_name", "short_name")
    ordering = ("last_name", "first_name")
    inlines = [UserRoleInline]


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "workplace", "marketplace_auto_approve", "created_at")
    list_filter = ("marketplace_auto_approve",)
    search_fields = ("name", "workplace")
    ordering = ("workplace", "name")


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "can_edit_rota", "can_work_shifts", "can_edit_staff")
    list_filter = ("role", "can_edit_rota", "can_work_shifts")
    search_fields = ("user__email", "user__first_name", "user__last_name", "role__name")
