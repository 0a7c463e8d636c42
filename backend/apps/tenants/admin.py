from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Tenant, Role, User


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ["name", "number_prefix", "currency", "is_active", "created_at"]
    list_filter = ["is_active", "currency"]
    search_fields = ["name", "domain", "contract_prefix"]

    @admin.display(description="Contract prefix")
    def number_prefix(self, obj):
        return obj.number_prefix


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "permission_count", "is_default", "is_system"]
    list_filter = ["tenant", "is_system"]
    search_fields = ["name", "tenant__name"]
    readonly_fields = ["is_system"]

    @admin.display(description="Permissions")
    def permission_count(self, obj):
        return sum(1 for granted in (obj.permissions or {}).values() if granted)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ["email", "tenant", "role_list", "is_active"]
    list_filter = ["is_active", "tenant", "roles"]
    search_fields = ["email", "first_name", "last_name"]
    ordering = ["email"]
    filter_horizontal = ["roles"]
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name")}),
        ("Tenant access", {"fields": ("tenant", "roles", "is_admin")}),
        ("Django admin", {"fields": ("is_active", "is_staff", "is_superuser")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "password1", "password2", "tenant", "roles")}),
    )

    @admin.display(description="Roles")
    def role_list(self, obj):
        return ", ".join(obj.role_names)
