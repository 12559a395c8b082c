# clinic_core/facilities/models.py
from __future__ import annotations

import uuid

from django.db import models


class Facility(models.Model):
    """Clinic branch. Every visit, order and payment belongs to exactly one."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="facilities")

    code = models.SlugField(max_length=64)
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True, default="")
    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "facilities_facility"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["tenant", "code"], name="uq_facility_code_per_tenant"),
        ]

    def __str__(self) -> str:
        return self.name
