# clinic_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from clinic_core.audit.api.views import AuditEventViewSet
from clinic_core.billing.api.views import PaymentViewSet
from clinic_core.catalog.api.views import MedicalServiceViewSet
from clinic_core.iam.api.auth import LoginView, LogoutView, RefreshView
from clinic_core.iam.api.me import MeView
from clinic_core.orders.api.views import ImagingOrderViewSet, LabOrderViewSet, MedicationOrderViewSet
from clinic_core.patients.api.views import PatientViewSet
from clinic_core.payers.api.views import CreditorViewSet, InsurerViewSet, ProgramViewSet
from clinic_core.visits.api.views import VisitViewSet

router = DefaultRouter()

router.register(r"patients", PatientViewSet, basename="patients")
router.register(r"visits", VisitViewSet, basename="visits")
router.register(r"orders/lab", LabOrderViewSet, basename="lab-orders")
router.register(r"orders/imaging", ImagingOrderViewSet, basename="imaging-orders")
router.register(r"orders/medication", MedicationOrderViewSet, basename="medication-orders")
router.register(r"billing/payments", PaymentViewSet, basename="billing-payments")
router.register(r"catalog/services", MedicalServiceViewSet, basename="catalog-services")
router.register(r"payers/programs", ProgramViewSet, basename="payer-programs")
router.register(r"payers/creditors", CreditorViewSet, basename="payer-creditors")
router.register(r"payers/insurers", InsurerViewSet, basename="payer-insurers")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")

urlpatterns = [
    # Auth + /me
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),

    *router.urls,
]
