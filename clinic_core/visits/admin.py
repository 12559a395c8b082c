# clinic_core/visits/admin.py
from django.contrib import admin

from clinic_core.visits.models import PatientStatusEvent, Visit


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "visit_type", "status", "routing_status", "status_updated_at", "visit_date")
    list_filter = ("tenant_id", "facility_id", "status", "routing_status", "visit_type")
    search_fields = ("id", "patient__full_name", "patient__mrn")
    readonly_fields = ("journey_timeline", "status_updated_at")
    ordering = ("-created_at",)


@admin.register(PatientStatusEvent)
class PatientStatusEventAdmin(admin.ModelAdmin):
    list_display = ("visit", "event_type", "previous_status", "new_status", "changed_by", "changed_at")
    list_filter = ("event_type", "new_status")
    search_fields = ("visit__id", "event_key")
    ordering = ("-changed_at",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
