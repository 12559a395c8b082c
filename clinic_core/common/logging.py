"""
Structured logging with PHI redaction.

Request context (request id, tenant, facility, user) is kept in context
variables set by RequestContextMiddleware and injected into every record by
RequestContextFilter. SanitizedJSONFormatter renders records as JSON lines and
redacts patient identifiers before they leave the process.
"""
from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_tenant_id: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)
_facility_id: ContextVar[Optional[str]] = ContextVar("facility_id", default=None)
_user_id: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


# Never logged in clear text.
SENSITIVE_FIELDS = {
    "password",
    "token",
    "access",
    "refresh",
    "secret",
    "first_name",
    "middle_name",
    "last_name",
    "full_name",
    "national_id",
    "fayida_id",
    "identifier_value",
    "phone",
    "email",
    "date_of_birth",
    "house_number",
    "kebele",
    "insurance_policy_number",
    "reason",
    "notes",
}

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName", "message",
}

REDACTED = "[REDACTED]"


def bind_request_context(
    *,
    request_id: Optional[str] = None,
    tenant_id: Any = None,
    facility_id: Any = None,
    user_id: Any = None,
) -> None:
    if request_id is not None:
        _request_id.set(request_id)
    if tenant_id is not None:
        _tenant_id.set(str(tenant_id))
    if facility_id is not None:
        _facility_id.set(str(facility_id))
    if user_id is not None:
        _user_id.set(str(user_id))


def clear_request_context() -> None:
    for var in (_request_id, _tenant_id, _facility_id, _user_id):
        var.set(None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


class RequestContextFilter(logging.Filter):
    """Injects request correlation fields into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get() or "-"
        record.tenant_id = _tenant_id.get() or "-"
        record.facility_id = _facility_id.get() or "-"
        record.user_id = _user_id.get() or "-"
        return True


def sanitize(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_FIELDS else sanitize(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize(v) for v in value]
    return value


class SanitizedJSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "tenant_id": getattr(record, "tenant_id", "-"),
            "facility_id": getattr(record, "facility_id", "-"),
            "user_id": getattr(record, "user_id", "-"),
        }

        for key, value in record.__dict__.items():
            if key in data or key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            data[key] = REDACTED if key.lower() in SENSITIVE_FIELDS else sanitize(value)

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestContextFilter) for f in logger.filters):
        logger.addFilter(RequestContextFilter())
    return logger


def log_domain_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    result: str = "success",
    **fields: Any,
) -> None:
    """
    Log a business event as a single structured record.

        log_domain_event(logger, "visit.stage_advanced", visit_id=str(v.id), new_stage="at_triage")
    """
    payload = {"event": event, "result": result}
    payload.update(sanitize({k: v for k, v in fields.items()}))
    logger.log(level, event, extra=payload)
