# clinic_core/visits/signals/payment_routing.py
from __future__ import annotations

from clinic_core.visits.routing import auto_update_visit_status_after_payment


def route_visit_after_payment(sender, instance, created: bool, raw: bool = False, **kwargs):
    """
    post_save receiver for orders and billing items.
    Fixture loading (raw) and fresh rows never route.
    """
    if raw or created:
        instance.remember_payment_status()
        return

    try:
        auto_update_visit_status_after_payment(instance)
    finally:
        instance.remember_payment_status()
