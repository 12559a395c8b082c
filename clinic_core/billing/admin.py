# clinic_core/billing/admin.py
from __future__ import annotations

from django.contrib import admin

from clinic_core.billing.models import BillingItem, Payment, PaymentLineItem, PaymentTransaction


@admin.register(BillingItem)
class BillingItemAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "visit",
        "service",
        "quantity",
        "total_amount",
        "payment_status",
        "paid_at",
        "created_at",
    )
    list_filter = ("tenant_id", "facility_id", "payment_status", "created_at")
    search_fields = ("id", "visit__id", "service__name")
    ordering = ("-created_at",)


class PaymentLineItemInline(admin.TabularInline):
    model = PaymentLineItem
    extra = 0
    fields = ("item_type", "item_id", "description", "subtotal", "final_amount", "payment_method", "payment_status")
    readonly_fields = fields


class PaymentTransactionInline(admin.TabularInline):
    model = PaymentTransaction
    extra = 0
    fields = ("payment_method", "amount", "reference_number", "transaction_date", "received_by")
    readonly_fields = fields


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "visit",
        "total_amount",
        "amount_paid",
        "amount_due",
        "payment_status",
        "created_at",
    )
    list_filter = ("tenant_id", "facility_id", "payment_status", "created_at")
    search_fields = ("id", "visit__id", "patient_id")
    inlines = (PaymentLineItemInline, PaymentTransactionInline)
    ordering = ("-created_at",)
