from django.contrib import admin

from clinic_core.catalog.models import MedicalService


@admin.register(MedicalService)
class MedicalServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "category", "price", "is_active", "facility_id")
    list_filter = ("category", "is_active", "facility_id")
    search_fields = ("name", "code")
    ordering = ("category", "name")
