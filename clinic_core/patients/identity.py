# clinic_core/patients/identity.py
from __future__ import annotations

import re
import uuid

from rest_framework.exceptions import ValidationError

NATIONAL_ID_DIGITS = 16
_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_national_id(raw: str | None) -> str:
    """
    Fayida id -> "XXXX-XXXX-XXXX-XXXX".

    Separators and spaces are ignored. Blank input returns "". Anything that
    is not exactly 16 digits is rejected.
    """
    if raw is None or not str(raw).strip():
        return ""

    digits = _NON_DIGITS.sub("", str(raw))
    if len(digits) != NATIONAL_ID_DIGITS:
        raise ValidationError({"national_id": "National ID must be 16 digits"})

    return "-".join(digits[i:i + 4] for i in range(0, NATIONAL_ID_DIGITS, 4))


def build_full_name(first_name: str, middle_name: str = "", last_name: str = "") -> str:
    return " ".join(p.strip() for p in (first_name, middle_name, last_name) if p and p.strip())


def generate_mrn() -> str:
    return f"MRN-{uuid.uuid4().hex[:10].upper()}"
