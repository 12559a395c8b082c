from django.contrib import admin

from clinic_core.payers.models import Creditor, Insurer, Program


@admin.register(Program)
class ProgramAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant_id", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(Creditor)
class CreditorAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "tenant_id", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "code")


@admin.register(Insurer)
class InsurerAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "tenant_id", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "code")
