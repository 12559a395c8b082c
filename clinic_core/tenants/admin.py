from django.contrib import admin

from clinic_core.facilities.models import Facility
from clinic_core.tenants.models import Tenant


class FacilityInline(admin.TabularInline):
    model = Facility
    extra = 0
    fields = ("code", "name", "is_active")


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "status")
    list_filter = ("status",)
    search_fields = ("code", "name")
    inlines = [FacilityInline]
