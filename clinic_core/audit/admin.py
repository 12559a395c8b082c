# clinic_core/audit/admin.py
from django.contrib import admin

from clinic_core.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ("occurred_at", "event_code", "entity_type", "entity_id", "actor_user")
    list_filter = ("event_code", "entity_type", "facility_id")
    search_fields = ("=entity_id", "event_code")
    date_hierarchy = "occurred_at"
    list_select_related = ("actor_user",)

    # read-only: rows are written by AuditService only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
