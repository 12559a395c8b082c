# clinic_core/payers/services.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from clinic_core.common.logging import get_logger
from clinic_core.payers.models import Creditor, Insurer, Program

logger = get_logger(__name__)

_CHECKS = (
    ("program_id", Program, "Invalid or inactive program selected"),
    ("creditor_id", Creditor, "Invalid or inactive creditor selected"),
    ("insurer_id", Insurer, "Invalid or inactive insurer selected"),
)


@dataclass
class MasterDataCheck:
    program_id: Optional[UUID] = None
    creditor_id: Optional[UUID] = None
    insurer_id: Optional[UUID] = None
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.warnings


def validate_payment_master_data(
    *,
    tenant_id: UUID,
    program_id: UUID | None = None,
    creditor_id: UUID | None = None,
    insurer_id: UUID | None = None,
) -> MasterDataCheck:
    """
    Ids that are unknown or inactive for the tenant are dropped and reported
    as warnings; registration proceeds without them.
    """
    given = {"program_id": program_id, "creditor_id": creditor_id, "insurer_id": insurer_id}
    result = MasterDataCheck()

    for name, model, message in _CHECKS:
        value = given[name]
        if value is None:
            continue

        if model.objects.filter(id=value, tenant_id=tenant_id, is_active=True).exists():
            setattr(result, name, value)
        else:
            result.warnings.append({"field": name, "message": message})

    if result.warnings:
        logger.warning(
            "payment master data rejected",
            extra={"fields": [w["field"] for w in result.warnings]},
        )
    return result
