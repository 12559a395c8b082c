# clinic_core/common/events.py
from collections import defaultdict
from typing import Any, Callable, Dict, List

from clinic_core.common.logging import get_logger

Handler = Callable[[Dict[str, Any]], None]

logger = get_logger(__name__)

_registry: Dict[str, List[Handler]] = defaultdict(list)

# Event names published by the journey and payment services.
VISIT_REGISTERED = "visit.registered"
VISIT_STAGE_CHANGED = "visit.stage_changed"
VISIT_PAYMENT_ROUTED = "visit.payment_routed"
PAYMENT_ALLOCATED = "payment.allocated"
PAYMENT_SETTLED = "payment.settled"


def subscribe(event_name: str):
    """
    Decorator to register an in-process handler.

        @subscribe(VISIT_STAGE_CHANGED)
        def handler(payload): ...
    """
    def _decorator(fn: Handler) -> Handler:
        if fn not in _registry[event_name]:
            _registry[event_name].append(fn)
        return fn
    return _decorator


def publish(event_name: str, payload: Dict[str, Any]) -> None:
    """
    Synchronous, in the caller's transaction. Payloads carry ids as strings
    so subscribers never need to import the publisher's models.
    """
    handlers = _registry.get(event_name, [])
    logger.debug("publish %s to %d handler(s)", event_name, len(handlers))
    for handler in handlers:
        handler(payload)
