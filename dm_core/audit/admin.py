# backend/dm_core/audit/admin.py
from django.contrib import admin

from dm_core.audit.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = (
        "action",
        "resource",
        "resource_id",
        "user",
        "ip_address",
        "timestamp",
    )
    list_filter = ("action", "resource")
    search_fields = ("action", "resource", "resource_id", "user__username")
    ordering = ("-timestamp",)
    list_select_related = ("user",)

    # append-only: admin is a viewer
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
