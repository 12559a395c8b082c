# clinic_core/catalog/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from clinic_core.common.models import ScopedModel


class ServiceCategory(models.TextChoices):
    CONSULTATION = "Consultation", "Consultation"
    LABORATORY = "Laboratory", "Laboratory"
    IMAGING = "Imaging", "Imaging"
    PROCEDURE = "Procedure", "Procedure"
    PHARMACY = "Pharmacy", "Pharmacy"
    OTHER = "Other", "Other"


class MedicalService(ScopedModel):
    """
    Facility price list. Consultation services are billed at registration;
    the rest are referenced by billing items raised during the visit.
    """
    code = models.SlugField(max_length=64)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=32, choices=ServiceCategory.choices, db_index=True)

    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "catalog_medical_service"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "code"],
                name="uq_medical_service_scope_code",
            ),
            models.CheckConstraint(condition=Q(price__gte=0), name="ck_medical_service_price_non_negative"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "category", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.price})"
