from django.contrib import admin

from .models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "entity_type", "entity_id", "from_status", "to_status", "user")
    list_filter = ("status", "entity_type", "from_status", "to_status")
    search_fields = ("action", "entity_id", "message", "user__username")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)

    # Audit rows are written by the API and background tasks only.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
