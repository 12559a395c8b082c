# clinic_core/patients/models.py
from django.db import models
from django.db.models import Q

from clinic_core.common.models import ScopedModel


class Gender(models.TextChoices):
    MALE = "male", "Male"
    FEMALE = "female", "Female"
    OTHER = "other", "Other"


class Patient(ScopedModel):
    """
    Patient demographics. Registered at one facility; identifiers that must be
    unique across the tenant live on PatientIdentifier.
    """
    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100)
    full_name = models.CharField(max_length=320)

    gender = models.CharField(max_length=16, choices=Gender.choices, blank=True, default="")
    date_of_birth = models.DateField(null=True, blank=True)
    age = models.PositiveSmallIntegerField(null=True, blank=True)

    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    # Fayida national id, stored formatted XXXX-XXXX-XXXX-XXXX
    national_id = models.CharField(max_length=19, blank=True, default="")

    # facility-local medical record number
    mrn = models.CharField(max_length=64)

    region = models.CharField(max_length=128, blank=True, default="")
    zone = models.CharField(max_length=128, blank=True, default="")
    woreda = models.CharField(max_length=128, blank=True, default="")
    kebele = models.CharField(max_length=64, blank=True, default="")
    house_number = models.CharField(max_length=64, blank=True, default="")

    occupation = models.CharField(max_length=128, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "patients_patient"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "mrn"],
                name="uq_patient_scope_mrn",
            ),
            models.CheckConstraint(
                condition=Q(age__isnull=True) | Q(age__lte=150),
                name="ck_patient_age_range",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "full_name"]),
            models.Index(fields=["tenant_id", "facility_id", "phone"]),
            models.Index(fields=["tenant_id", "national_id"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.mrn})"

    @property
    def residence(self) -> str:
        return ", ".join(p for p in (self.kebele, self.woreda, self.zone, self.region) if p)


class IdentifierType(models.TextChoices):
    FAYIDA_ID = "fayida_id", "Fayida national ID"
    MRN = "mrn", "Medical record number"
    PASSPORT = "passport", "Passport"
    OTHER = "other", "Other"


class PatientIdentifier(ScopedModel):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="identifiers")

    identifier_type = models.CharField(max_length=16, choices=IdentifierType.choices)
    identifier_value = models.CharField(max_length=64)
    is_primary = models.BooleanField(default=False)

    class Meta:
        db_table = "patients_identifier"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "identifier_type", "identifier_value"],
                name="uq_patient_identifier_per_tenant",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.identifier_type}:{self.identifier_value}"
