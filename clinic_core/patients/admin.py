from django.contrib import admin

from clinic_core.patients.models import Patient, PatientIdentifier


class PatientIdentifierInline(admin.TabularInline):
    model = PatientIdentifier
    extra = 0


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("mrn", "full_name", "phone", "national_id", "is_active")
    list_filter = ("facility_id", "is_active")
    search_fields = ("=mrn", "=national_id", "full_name", "phone")
    inlines = [PatientIdentifierInline]
