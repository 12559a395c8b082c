# clinic_core/payers/models.py
from __future__ import annotations

import uuid

from django.db import models

from clinic_core.common.models import TimeStampedModel


class TenantMasterData(TimeStampedModel):
    """
    Payment master data is shared by all facilities of a tenant.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return self.name


class Program(TenantMasterData):
    """Fee-waiver / sponsored care program (e.g. maternal health, TB)."""
    description = models.TextField(blank=True, default="")

    class Meta:
        db_table = "payers_program"


class Creditor(TenantMasterData):
    """Organization billed on credit for its members' care."""
    code = models.SlugField(max_length=64, blank=True, default="")
    contact_phone = models.CharField(max_length=32, blank=True, default="")

    class Meta:
        db_table = "payers_creditor"


class Insurer(TenantMasterData):
    code = models.SlugField(max_length=64, blank=True, default="")
    contact_phone = models.CharField(max_length=32, blank=True, default="")

    class Meta:
        db_table = "payers_insurer"
