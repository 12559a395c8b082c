# clinic_core/orders/admin.py
from __future__ import annotations

from django.contrib import admin

from clinic_core.orders.models import ImagingOrder, LabOrder, MedicationOrder

_COMMON_DISPLAY = ("id", "visit", "status", "priority", "amount", "payment_status", "created_at")
_COMMON_FILTER = ("tenant_id", "facility_id", "status", "payment_status", "priority")


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = ("test_name",) + _COMMON_DISPLAY
    list_filter = _COMMON_FILTER
    search_fields = ("id", "visit__id", "test_name", "test_code")
    ordering = ("-created_at",)


@admin.register(ImagingOrder)
class ImagingOrderAdmin(admin.ModelAdmin):
    list_display = ("study_name",) + _COMMON_DISPLAY
    list_filter = _COMMON_FILTER
    search_fields = ("id", "visit__id", "study_name")
    ordering = ("-created_at",)


@admin.register(MedicationOrder)
class MedicationOrderAdmin(admin.ModelAdmin):
    list_display = ("medication_name", "dosage") + _COMMON_DISPLAY
    list_filter = _COMMON_FILTER
    search_fields = ("id", "visit__id", "medication_name")
    ordering = ("-created_at",)
