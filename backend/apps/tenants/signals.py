"""Signals for the tenants app."""
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from apps.core.permissions import DEFAULT_ROLES

logger = logging.getLogger(__name__)

# Role given to users registered without an explicit role
DEFAULT_ROLE_NAME = "Editor"


def seed_default_roles(tenant) -> int:
    """Create any missing system roles for ``tenant``. Returns how many were created."""
    from apps.tenants.models import Role

    created_count = 0
    for role_name, permissions in DEFAULT_ROLES.items():
        _, created = Role.objects.get_or_create(
            tenant=tenant,
            name=role_name,
            defaults={
                "permissions": permissions,
                "is_system": True,
                "is_default": role_name == DEFAULT_ROLE_NAME,
            },
        )
        created_count += created
    return created_count


@receiver(post_save, sender="tenants.Tenant")
def create_default_roles(sender, instance, created, **kwargs):
    if created:
        count = seed_default_roles(instance)
        logger.info("Seeded %s default roles for tenant %s", count, instance.pk)
