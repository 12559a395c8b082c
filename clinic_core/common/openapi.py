# clinic_core/common/openapi.py
from __future__ import annotations

from drf_spectacular.openapi import AutoSchema
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter

# views under these modules run before a clinic is chosen
UNSCOPED_MODULE_PREFIXES = ("clinic_core.iam.api.", "drf_spectacular.")


def _scope_header(name: str, what: str) -> OpenApiParameter:
    return OpenApiParameter(
        name=name,
        type=OpenApiTypes.UUID,
        location=OpenApiParameter.HEADER,
        required=True,
        description=f"{what} the request is scoped to.",
    )


SCOPE_HEADERS = (
    _scope_header("X-Tenant-Id", "Tenant"),
    _scope_header("X-Facility-Id", "Facility"),
)


class ClinicAutoSchema(AutoSchema):
    """Documents the scope headers on every journey, billing and order endpoint."""

    def get_override_parameters(self):
        params = list(super().get_override_parameters() or [])

        module = type(self.view).__module__ if getattr(self, "view", None) is not None else ""
        if module.startswith(UNSCOPED_MODULE_PREFIXES):
            return params

        declared = {p.name.lower() for p in params}
        params.extend(p for p in SCOPE_HEADERS if p.name.lower() not in declared)
        return params
