from django.contrib import admin

from clinic_core.facilities.models import Facility


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "tenant", "is_active")
    list_filter = ("tenant", "is_active")
    search_fields = ("name", "code")
    list_select_related = ("tenant",)
