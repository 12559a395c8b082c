# clinic_core/iam/admin.py
from django.contrib import admin

from clinic_core.iam.models import FacilityMembership, Role, UserProfile


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "tenant", "is_active")
    list_filter = ("tenant", "code")


class FacilityMembershipInline(admin.TabularInline):
    model = FacilityMembership
    fk_name = "user_profile"
    extra = 0
    fields = ("tenant", "facility", "role", "is_primary", "is_active")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "tenant", "default_facility", "is_active")
    search_fields = ("user__username", "full_name")
    inlines = [FacilityMembershipInline]
