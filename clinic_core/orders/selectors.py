# clinic_core/orders/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from clinic_core.orders.models import ClinicalOrder
from clinic_core.orders.services import order_model


class OrderSelector:
    class NotFound(Exception):
        pass

    @staticmethod
    def get_order(*, tenant_id, facility_id, kind: str, order_id) -> ClinicalOrder:
        model = order_model(kind)
        try:
            return model.objects.select_related("visit").get(
                id=order_id,
                tenant_id=tenant_id,
                facility_id=facility_id,
            )
        except model.DoesNotExist:
            raise OrderSelector.NotFound()

    @staticmethod
    def list_orders(
        *,
        tenant_id,
        facility_id,
        kind: str,
        visit_id=None,
        status: str | None = None,
        payment_status: str | None = None,
    ) -> QuerySet[ClinicalOrder]:
        qs = (
            order_model(kind)
            .objects.filter(tenant_id=tenant_id, facility_id=facility_id)
            .order_by("-created_at")
        )
        if visit_id:
            qs = qs.filter(visit_id=visit_id)
        if status:
            qs = qs.filter(status=status)
        if payment_status:
            qs = qs.filter(payment_status=payment_status)
        return qs
