"""Management command to create a test tenant, admin user and contract types."""
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.contracts.models import ContractType
from apps.tenants.models import Role, Tenant, User
from apps.tenants.signals import seed_default_roles

DEFAULT_CONTRACT_TYPES = [
    {
        "name": "Employment Agreement",
        "description": "Employment contracts and job agreements",
        "color": "#28a745",
        "icon": "user-tie",
        "default_duration_days": 365,
        "requires_approval": True,
        "supports_renewal": True,
        "default_reminder_days": 30,
    },
    {
        "name": "Service Agreement",
        "description": "Service contracts and vendor agreements",
        "color": "#007bff",
        "icon": "handshake",
        "default_duration_days": 365,
        "requires_approval": True,
        "supports_renewal": True,
        "default_reminder_days": 60,
    },
    {
        "name": "Non-Disclosure Agreement",
        "description": "Confidentiality and non-disclosure agreements",
        "color": "#ffc107",
        "icon": "eye-slash",
        "default_duration_days": 1095,
        "requires_approval": False,
        "supports_renewal": False,
        "default_reminder_days": 90,
    },
    {
        "name": "Lease Agreement",
        "description": "Property and equipment lease contracts",
        "color": "#17a2b8",
        "icon": "building",
        "default_duration_days": 365,
        "requires_approval": True,
        "supports_renewal": True,
        "default_reminder_days": 45,
    },
    {
        "name": "Purchase Agreement",
        "description": "Purchase orders and procurement contracts",
        "color": "#dc3545",
        "icon": "shopping-cart",
        "default_duration_days": 90,
        "requires_approval": True,
        "supports_renewal": False,
        "default_reminder_days": 15,
    },
]


class Command(BaseCommand):
    help = "Create a test tenant with admin user and default contract types for development"

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant-name",
            default="Test Company",
            help="Name of the test tenant",
        )
        parser.add_argument(
            "--contract-prefix",
            default="",
            help="Contract number prefix (derived from the tenant name when empty)",
        )
        parser.add_argument(
            "--admin-email",
            default="admin@test.local",
            help="Email for the admin user",
        )
        parser.add_argument(
            "--admin-password",
            default="admin123",
            help="Password for the admin user",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        tenant_name = options["tenant_name"]
        admin_email = options["admin_email"]
        admin_password = options["admin_password"]

        # Default roles are seeded by the tenant post_save signal
        tenant, created = Tenant.objects.get_or_create(
            name=tenant_name,
            defaults={
                "contract_prefix": options["contract_prefix"],
                "currency": "EUR",
                "is_active": True,
            },
        )
        if created:
            self.stdout.write(self.style.SUCCESS(f"Created tenant: {tenant.name}"))
        else:
            self.stdout.write(f"Tenant already exists: {tenant.name}")
            # Tenants created before a role was added to the defaults
            added = seed_default_roles(tenant)
            if added:
                self.stdout.write(self.style.SUCCESS(f"Added {added} missing default roles"))

        for sort_order, defaults in enumerate(DEFAULT_CONTRACT_TYPES, start=1):
            values = dict(defaults, sort_order=sort_order)
            name = values.pop("name")
            contract_type, created = ContractType.objects.get_or_create(
                tenant=tenant, name=name, defaults=values
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f"Created contract type: {contract_type.name}"))

        user, created = User.objects.get_or_create(
            email=admin_email,
            defaults={
                "tenant": tenant,
                "first_name": "Admin",
                "last_name": "User",
                "is_active": True,
                "is_staff": True,
                "is_admin": True,
            },
        )

        if created:
            user.set_password(admin_password)
            user.save()
            user.roles.set(Role.objects.filter(tenant=tenant, name="Admin"))
            self.stdout.write(self.style.SUCCESS(f"Created admin user: {admin_email}"))
        else:
            self.stdout.write(f"Admin user already exists: {admin_email}")

        # Summary
        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS("=" * 50))
        self.stdout.write(self.style.SUCCESS("Test data setup complete!"))
        self.stdout.write(self.style.SUCCESS("=" * 50))
        self.stdout.write(f"Tenant: {tenant.name} (contract prefix {tenant.number_prefix})")
        self.stdout.write(f"Admin Email: {admin_email}")
        self.stdout.write(f"Admin Password: {admin_password}")
        self.stdout.write("")
        self.stdout.write("Login with:")
        self.stdout.write(f'  mutation {{ login(email: "{admin_email}", password: "{admin_password}") {{ ... on AuthPayload {{ accessToken }} }} }}')
