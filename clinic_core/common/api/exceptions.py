# clinic_core/common/api/exceptions.py

from __future__ import annotations

import uuid
from typing import Any

from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from clinic_core.common.logging import get_logger

logger = get_logger(__name__)


def ensure_request_id(request) -> str:
    """
    Returns request.request_id, assigning one if middleware did not.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error body, shared by middleware (JsonResponse) and DRF (Response).
    """
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": ensure_request_id(request),
        }
    }


class ConflictError(APIException):
    """
    409 for business-rule blocks (e.g. overpaying a payment, terminal visit).
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


_ERROR_CODES = (
    (ValidationError, "validation_error"),
    (NotAuthenticated, "not_authenticated"),
    (PermissionDenied, "permission_denied"),
    ((Http404, NotFound), "not_found"),
)


def _code_for(exc: Exception, http_status: int) -> str:
    for exc_types, code in _ERROR_CODES:
        if isinstance(exc, exc_types):
            return code
    if isinstance(exc, APIException):
        return exc.default_code or "api_error"
    return "server_error" if http_status >= 500 else "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    if isinstance(exc, ObjectDoesNotExist):
        exc = NotFound(str(exc) or "Not found.")

    response = drf_exception_handler(exc, context)

    if response is None:
        logger.exception(
            "unhandled API error",
            exc_info=exc,
            extra={"view": context.get("view").__class__.__name__ if context.get("view") else "-"},
        )
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    # {"detail": "..."}            -> message=detail, details=None
    # {"detail": "...", other...}  -> message=detail, details=other
    # anything else                -> message="Request failed.", details=data
    data = response.data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None
    elif isinstance(data, list) and len(data) == 1:
        message = str(data[0])
        details = None

    if http_status >= 400:
        logger.warning(
            "API request rejected: %s",
            code,
            extra={"status_code": http_status, "error_code": code},
        )

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
