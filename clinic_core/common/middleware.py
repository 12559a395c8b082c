from __future__ import annotations

import time
import uuid
from typing import Optional

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from clinic_core.common.api.exceptions import build_error_envelope
from clinic_core.common.logging import bind_request_context, clear_request_context, get_logger
from clinic_core.common.scope import RequestScope, parse_uuid
from clinic_core.iam.scope import INVALID_SCOPE_MSG, MISSING_SCOPE_MSG

logger = get_logger(__name__)


class RequestContextMiddleware(MiddlewareMixin):
    """
    Assigns a request id (reusing X-Request-Id when the client sends one),
    binds it to the logging context and echoes it back on the response.
    """

    REQUEST_ID_META = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-Id"

    def process_request(self, request):
        clear_request_context()
        rid = request.META.get(self.REQUEST_ID_META) or uuid.uuid4().hex
        request.request_id = rid
        request._started_at = time.monotonic()
        bind_request_context(request_id=rid)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid:
            response[self.RESPONSE_HEADER] = rid

        started = getattr(request, "_started_at", None)
        if started is not None and request.path.startswith("/api/"):
            logger.info(
                "%s %s -> %s",
                request.method,
                request.path,
                response.status_code,
                extra={
                    "http_method": request.method,
                    "path": request.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                },
            )
        return response


class TenantFacilityScopeMiddleware(MiddlewareMixin):
    """
    Enforces tenant/facility scope for API requests.

      - Both headers required on scoped endpoints (400 if missing or not UUIDs).
      - /me/ accepts no headers; if given they must be valid.
      - Auth endpoints, docs, schema and admin never need scope.
      - Non-members get 403.
      - On success: request.scope, request.tenant_id, request.facility_id.

    Session-authenticated users are resolved here; JWT users are resolved by
    CookieOrHeaderJWTAuthentication, which applies the same rules.
    """

    TENANT_META_KEYS = ("HTTP_X_TENANT_ID",)
    FACILITY_META_KEYS = ("HTTP_X_FACILITY_ID",)

    ENFORCED_PREFIXES = ("/api/v1/",)

    PUBLIC_PATH_PREFIXES = (
        "/admin/",
        "/api/docs/",
        "/api/schema/",
    )

    AUTH_PATH_SUFFIXES = (
        "/auth/login/",
        "/auth/refresh/",
        "/auth/logout/",
    )

    ALLOW_NO_SCOPE_SUFFIXES = ("/me/",)

    def _get_meta_first(self, request, keys: tuple[str, ...]) -> Optional[str]:
        for k in keys:
            v = request.META.get(k)
            if v:
                return v
        return None

    def _json_error(self, request, *, status_code: int, code: str, message: str) -> JsonResponse:
        logger.warning("scope rejected: %s", message, extra={"status_code": status_code, "path": request.path})
        return JsonResponse(
            build_error_envelope(request=request, code=code, message=message, details=None),
            status=status_code,
        )

    def process_request(self, request):
        request.scope = None
        request.tenant_id = None
        request.facility_id = None

        path = getattr(request, "path", "") or ""

        if any(path.startswith(p) for p in self.PUBLIC_PATH_PREFIXES):
            return None
        if not any(path.startswith(p) for p in self.ENFORCED_PREFIXES):
            return None
        if path in self.ENFORCED_PREFIXES:
            return None
        if any(path.endswith(s) for s in self.AUTH_PATH_SUFFIXES):
            return None

        # JWT users are not known yet at this point; the auth class handles them.
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        tenant_raw = self._get_meta_first(request, self.TENANT_META_KEYS)
        facility_raw = self._get_meta_first(request, self.FACILITY_META_KEYS)

        if not tenant_raw and not facility_raw:
            if any(path.endswith(s) for s in self.ALLOW_NO_SCOPE_SUFFIXES):
                return None
            return self._json_error(request, status_code=400, code="validation_error", message=MISSING_SCOPE_MSG)

        if not tenant_raw or not facility_raw:
            return self._json_error(request, status_code=400, code="validation_error", message=MISSING_SCOPE_MSG)

        tenant_id = parse_uuid(tenant_raw)
        facility_id = parse_uuid(facility_raw)
        if not tenant_id or not facility_id:
            return self._json_error(request, status_code=400, code="validation_error", message=INVALID_SCOPE_MSG)

        from clinic_core.iam.services.membership import is_user_member_of_facility

        if not is_user_member_of_facility(user_id=user.id, tenant_id=tenant_id, facility_id=facility_id):
            return self._json_error(
                request,
                status_code=403,
                code="permission_denied",
                message="You do not have access to the selected facility.",
            )

        request.scope = RequestScope(tenant_id=tenant_id, facility_id=facility_id)
        request.tenant_id = tenant_id
        request.facility_id = facility_id
        bind_request_context(tenant_id=tenant_id, facility_id=facility_id, user_id=user.id)
        return None
