# clinic_core/patients/services.py
from __future__ import annotations

from uuid import UUID

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.patients.identity import build_full_name, generate_mrn, normalize_national_id
from clinic_core.patients.models import IdentifierType, Patient, PatientIdentifier

logger = get_logger(__name__)

DEMOGRAPHIC_FIELDS = (
    "gender",
    "date_of_birth",
    "age",
    "phone",
    "email",
    "region",
    "zone",
    "woreda",
    "kebele",
    "house_number",
    "occupation",
)

NAME_FIELDS = ("first_name", "middle_name", "last_name")

MAX_AGE = 150


def _check_age(age) -> None:
    if age is None:
        return
    try:
        years = int(age)
    except (TypeError, ValueError):
        raise ValidationError({"age": "Age must be a whole number."})
    if not 0 <= years <= MAX_AGE:
        raise ValidationError({"age": f"Age must be between 0 and {MAX_AGE}."})


class PatientService:
    @staticmethod
    def _sync_national_id(patient: Patient) -> None:
        """
        Keeps the primary fayida_id identifier row in step with patient.national_id.
        """
        existing = PatientIdentifier.objects.filter(
            patient=patient,
            identifier_type=IdentifierType.FAYIDA_ID,
        ).first()

        if not patient.national_id:
            if existing is not None:
                existing.delete()
            return

        try:
            with transaction.atomic():
                if existing is None:
                    PatientIdentifier.objects.create(
                        tenant_id=patient.tenant_id,
                        facility_id=patient.facility_id,
                        patient=patient,
                        identifier_type=IdentifierType.FAYIDA_ID,
                        identifier_value=patient.national_id,
                        is_primary=True,
                    )
                elif existing.identifier_value != patient.national_id:
                    existing.identifier_value = patient.national_id
                    existing.save(update_fields=["identifier_value", "updated_at"])
        except IntegrityError:
            raise ValidationError({"national_id": "A patient with this national ID is already registered."})

    @staticmethod
    @transaction.atomic
    def create_patient(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        first_name: str,
        last_name: str,
        middle_name: str = "",
        national_id: str | None = None,
        mrn: str | None = None,
        **demographics,
    ) -> Patient:
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name or not last_name:
            raise ValidationError("first_name and last_name are required.")

        unknown = set(demographics) - set(DEMOGRAPHIC_FIELDS)
        if unknown:
            raise ValidationError({"detail": f"Unknown patient fields: {', '.join(sorted(unknown))}"})

        _check_age(demographics.get("age"))

        middle_name = (middle_name or "").strip()
        try:
            with transaction.atomic():
                patient = Patient.objects.create(
                    tenant_id=tenant_id,
                    facility_id=facility_id,
                    first_name=first_name,
                    middle_name=middle_name,
                    last_name=last_name,
                    full_name=build_full_name(first_name, middle_name, last_name),
                    national_id=normalize_national_id(national_id),
                    mrn=(mrn or "").strip() or generate_mrn(),
                    **{k: v for k, v in demographics.items() if v is not None},
                )
        except IntegrityError:
            raise ValidationError({"mrn": "MRN already exists for this tenant/facility."})

        PatientService._sync_national_id(patient)

        AuditService.log(
            event_code="patient.created",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            metadata={"mrn": patient.mrn},
        )
        log_domain_event(logger, "patient.created", patient_id=str(patient.id))
        return patient

    @staticmethod
    @transaction.atomic
    def update_patient(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        data: dict,
    ) -> Patient:
        patient = Patient.objects.select_for_update().get(
            id=patient_id,
            tenant_id=tenant_id,
            facility_id=facility_id,
        )

        allowed = set(DEMOGRAPHIC_FIELDS) | set(NAME_FIELDS) | {"national_id", "mrn", "is_active"}
        updates = {k: v for k, v in (data or {}).items() if k in allowed}

        if "national_id" in updates:
            updates["national_id"] = normalize_national_id(updates["national_id"])
        if "age" in updates:
            _check_age(updates["age"])

        for k, v in updates.items():
            setattr(patient, k, v)

        if set(updates) & set(NAME_FIELDS):
            if not patient.first_name.strip() or not patient.last_name.strip():
                raise ValidationError("first_name and last_name are required.")
            patient.full_name = build_full_name(patient.first_name, patient.middle_name, patient.last_name)

        try:
            with transaction.atomic():
                patient.save()
        except IntegrityError:
            raise ValidationError({"mrn": "MRN already exists for this tenant/facility."})

        if "national_id" in updates:
            PatientService._sync_national_id(patient)

        AuditService.log(
            event_code="patient.updated",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            metadata={"updated_fields": sorted(updates.keys())},
        )
        return patient
