"""Core models and mixins used across the application."""
from django.conf import settings
from django.db import models


class TimestampedModel(models.Model):
    """Abstract base model with created and modified timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class TenantQuerySet(models.QuerySet):
    """QuerySet with a tenant filter every tenant-owned lookup starts from."""

    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)


class TenantModel(TimestampedModel):
    """Abstract base model for multi-tenant models."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="%(class)s_set",
    )

    objects = TenantQuerySet.as_manager()

    class Meta:
        abstract = True


class ActorStampedModel(TenantModel):
    """Tenant model that also records which users created and last changed it."""

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        abstract = True
