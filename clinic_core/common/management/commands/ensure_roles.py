# clinic_core/common/management/commands/ensure_roles.py

from django.core.management.base import BaseCommand, CommandError

from clinic_core.iam.models import Role, RoleCode
from clinic_core.tenants.models import Tenant


class Command(BaseCommand):
    help = "Ensure the role catalog exists for every tenant, or one tenant (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--tenant", help="Tenant code; defaults to all tenants.")

    def handle(self, *args, **options):
        tenants = Tenant.objects.all().order_by("code")
        if options.get("tenant"):
            tenants = tenants.filter(code=options["tenant"])
            if not tenants.exists():
                raise CommandError(f"Tenant {options['tenant']} not found")

        created = 0
        for tenant in tenants:
            for code, label in RoleCode.choices:
                _, was_created = Role.objects.get_or_create(
                    tenant=tenant,
                    code=code,
                    defaults={"name": label, "is_active": True},
                )
                created += 1 if was_created else 0

        self.stdout.write(self.style.SUCCESS(f"Roles ensured. Newly created: {created}"))
