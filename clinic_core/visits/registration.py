# clinic_core/visits/registration.py
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic_core.audit.services import AuditService
from clinic_core.billing.models import BillingItem
from clinic_core.catalog.selectors import find_consultation_service
from clinic_core.common.events import VISIT_REGISTERED, publish
from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.common.models import ItemPaymentStatus
from clinic_core.facilities.selectors import find_facility
from clinic_core.patients.services import DEMOGRAPHIC_FIELDS, PatientService
from clinic_core.payers.services import validate_payment_master_data
from clinic_core.visits.models import (
    ConsultationPaymentType,
    RoutingStatus,
    StatusEventType,
    Visit,
    VisitStatus,
    VisitType,
)
from clinic_core.visits.services import record_status_event

logger = get_logger(__name__)

INTAKE_FORM_VERSION = "reception_intake_v1"

# Consultation is settled up front for these payment types.
PREPAID_CONSULTATION_TYPES = (ConsultationPaymentType.FREE, ConsultationPaymentType.INSURED)


class RegistrationService:
    @staticmethod
    @transaction.atomic
    def register_patient_with_visit(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        first_name: str,
        last_name: str,
        middle_name: str = "",
        national_id: str | None = None,
        visit_type: str = VisitType.NEW,
        reason: str = "",
        provider_id: int | None = None,
        consultation_service_id: UUID | None = None,
        consultation_payment_type: str = ConsultationPaymentType.PAYING,
        program_id: UUID | None = None,
        creditor_id: UUID | None = None,
        insurer_id: UUID | None = None,
        insurance_policy_number: str = "",
        **demographics: Any,
    ) -> Dict[str, Any]:
        """
        Front-desk intake: patient + visit + consultation billing item in one
        transaction. Unknown payer master data is dropped with a warning;
        everything else that is wrong aborts the whole registration.
        """
        facility = find_facility(facility_id=facility_id, tenant_id=tenant_id)
        if facility is None:
            raise NotFound("Facility not found")

        tenant = facility.tenant
        if tenant is None or not tenant.is_active:
            raise NotFound("Tenant ID not found")

        if visit_type not in VisitType.values:
            raise ValidationError({"visit_type": f"Unknown visit type: {visit_type}"})
        if consultation_payment_type not in ConsultationPaymentType.values:
            raise ValidationError(
                {"consultation_payment_type": f"Unknown payment type: {consultation_payment_type}"}
            )

        master = validate_payment_master_data(
            tenant_id=tenant_id,
            program_id=program_id,
            creditor_id=creditor_id,
            insurer_id=insurer_id,
        )

        patient = PatientService.create_patient(
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            first_name=first_name,
            middle_name=middle_name,
            last_name=last_name,
            national_id=national_id,
            **{k: v for k, v in demographics.items() if k in DEMOGRAPHIC_FIELDS},
        )

        now = timezone.now()
        now_iso = now.isoformat()
        started_by = str(actor_user_id) if actor_user_id is not None else None

        visit = Visit.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            visit_type=visit_type,
            reason=reason or "",
            provider_id=provider_id,
            created_by_id=actor_user_id,
            status=VisitStatus.REGISTERED,
            routing_status=RoutingStatus.COMPLETED,
            status_updated_at=now,
            consultation_payment_type=consultation_payment_type,
            program_id=master.program_id,
            creditor_id=master.creditor_id,
            insurer_id=master.insurer_id,
            insurance_policy_number=insurance_policy_number or "",
            journey_timeline={
                "stages": [
                    {
                        "stage": VisitStatus.REGISTERED.value,
                        "arrived_at": now_iso,
                        "start_time": now_iso,
                        "completed_at": None,
                        "end_time": None,
                        "wait_time_minutes": None,
                        "completed_by": None,
                        "started_by": started_by,
                    }
                ]
            },
            metadata={
                "visitType": visit_type,
                "residence": patient.residence,
                "occupation": patient.occupation,
                "intakeTimestamp": now_iso,
                "intakePatientId": str(patient.id),
                "formVersion": INTAKE_FORM_VERSION,
            },
        )

        record_status_event(
            visit=visit,
            event_key=f"{StatusEventType.STATUS_CHANGE}:1:{VisitStatus.REGISTERED}",
            previous_status="",
            new_status=VisitStatus.REGISTERED,
            changed_by_id=actor_user_id,
            metadata={"source": "registration"},
        )

        service = find_consultation_service(
            tenant_id=tenant_id,
            facility_id=facility_id,
            visit_type=visit_type,
            service_id=consultation_service_id,
        )
        if service is None:
            raise ValidationError(f"No matching consultation service found for visit type {visit_type}")

        prepaid = consultation_payment_type in PREPAID_CONSULTATION_TYPES
        item, _ = BillingItem.objects.get_or_create(
            visit=visit,
            service=service,
            defaults={
                "tenant_id": tenant_id,
                "facility_id": facility_id,
                "patient_id": patient.id,
                "quantity": 1,
                "unit_price": service.price,
                "total_amount": service.price,
                "created_by_id": actor_user_id,
                "payment_status": ItemPaymentStatus.PAID if prepaid else ItemPaymentStatus.UNPAID,
                "payment_mode": consultation_payment_type if prepaid else "",
                "paid_at": now if prepaid else None,
            },
        )

        AuditService.log(
            event_code="visit.registered",
            entity_type="Visit",
            entity_id=visit.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            metadata={
                "patient_id": str(patient.id),
                "billing_item_id": str(item.id),
                "consultation_payment_type": consultation_payment_type,
                "warnings": [w["field"] for w in master.warnings],
            },
        )
        publish(
            VISIT_REGISTERED,
            {
                "tenant_id": str(tenant_id),
                "facility_id": str(facility_id),
                "visit_id": str(visit.id),
                "patient_id": str(patient.id),
                "actor_user_id": actor_user_id,
            },
        )
        log_domain_event(
            logger,
            "visit.registered",
            visit_id=str(visit.id),
            patient_id=str(patient.id),
            visit_type=visit_type,
            warnings=len(master.warnings),
        )

        return {
            "patient_id": patient.id,
            "visit_id": visit.id,
            "full_name": patient.full_name,
            "warnings": master.warnings,
        }
