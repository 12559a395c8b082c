# clinic_core/iam/models.py
import uuid

from django.conf import settings
from django.db import models

from clinic_core.facilities.models import Facility
from clinic_core.tenants.models import Tenant


class RoleCode(models.TextChoices):
    SUPER_ADMIN = "super_admin", "Super Admin"
    ADMIN = "admin", "Administrator"
    RECEPTIONIST = "receptionist", "Receptionist"
    CASHIER = "cashier", "Cashier"
    FINANCE = "finance", "Finance"
    NURSE = "nurse", "Nurse"
    INPATIENT_NURSE = "inpatient_nurse", "Inpatient Nurse"
    DOCTOR = "doctor", "Doctor"
    LAB_TECHNICIAN = "lab_technician", "Lab Technician"
    IMAGING_TECHNICIAN = "imaging_technician", "Imaging Technician"
    PHARMACIST = "pharmacist", "Pharmacist"


class Role(models.Model):
    """
    Tenant-scoped role. `code` is one of RoleCode; journey rules key on it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="roles")

    name = models.CharField(max_length=128)
    code = models.SlugField(max_length=64, choices=RoleCode.choices)

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "iam_role"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "code"], name="uq_role_tenant_code"),
        ]
        indexes = [
            models.Index(fields=["tenant", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.code}"


class UserProfile(models.Model):
    """
    Staff profile anchored to AUTH_USER_MODEL; ties a login to a tenant.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="staff_profile")
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="user_profiles")
    default_facility = models.ForeignKey(
        Facility,
        on_delete=models.SET_NULL,
        related_name="default_for_profiles",
        null=True,
        blank=True,
    )

    full_name = models.CharField(max_length=255, blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "iam_user_profile"
        indexes = [
            models.Index(fields=["tenant", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.user.get_username()} ({self.tenant.code})"


class FacilityMembership(models.Model):
    """
    Assigns a staff member to a facility with one role.
    This is where "what role does this user have here" is answered.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="facility_memberships")
    facility = models.ForeignKey(Facility, on_delete=models.PROTECT, related_name="memberships")

    user_profile = models.ForeignKey(UserProfile, on_delete=models.CASCADE, related_name="memberships")
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name="memberships")

    is_primary = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "iam_facility_membership"
        constraints = [
            models.UniqueConstraint(
                fields=["facility", "user_profile"],
                name="uq_facility_user_profile_membership",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "facility"]),
        ]
