"""Tenants, their roles and the users that belong to them."""
import re
from functools import cached_property

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models

from apps.core.models import TimestampedModel


class Tenant(TimestampedModel):
    """An organization. Its contracts, roles and audit trail are invisible to every other tenant."""

    name = models.CharField(max_length=255)
    domain = models.CharField(max_length=100, unique=True, null=True, blank=True)
    contract_prefix = models.CharField(
        max_length=10,
        blank=True,
        help_text="Short code used in contract numbers. Derived from the name when empty.",
    )
    currency = models.CharField(max_length=3, default="EUR")
    settings = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def number_prefix(self) -> str:
        """Configured prefix, else the first three alphanumerics of the name, else the global default."""
        if self.contract_prefix:
            return self.contract_prefix.upper()
        alnum = re.sub(r"[^A-Za-z0-9]", "", self.name or "")
        if len(alnum) < 3:
            return settings.CONTRACT_NUMBER_PREFIX
        return alnum[:3].upper()


class Role(TimestampedModel):
    """A named set of permissions within one tenant."""

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="roles")
    name = models.CharField(max_length=100)
    permissions = models.JSONField(default=dict, blank=True)
    # New users without explicit roles receive the default ones
    is_default = models.BooleanField(default=False)
    is_system = models.BooleanField(default=False)

    class Meta:
        ordering = ["tenant", "name"]
        constraints = [
            models.UniqueConstraint(fields=["tenant", "name"], name="unique_role_name_per_tenant"),
        ]

    def __str__(self):
        return f"{self.name} ({self.tenant.name})"

    def save(self, *args, **kwargs):
        from apps.core.permissions import normalize_permissions

        self.permissions = normalize_permissions(self.permissions or {})
        super().save(*args, **kwargs)


class UserManager(BaseUserManager):
    """Users log in with their email address."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Users must have an email address")
        user = self.model(email=self.normalize_email(email).lower(), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.update(is_staff=True, is_superuser=True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """A login belonging to at most one tenant."""

    username = None
    email = models.EmailField(unique=True)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="users",
        null=True,
        blank=True,
    )
    roles = models.ManyToManyField(Role, blank=True, related_name="users")
    is_admin = models.BooleanField(default=False)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        ordering = ["email"]

    def __str__(self):
        return self.email

    @cached_property
    def role_names(self) -> list[str]:
        return sorted(role.name for role in self.roles.all())

    @cached_property
    def effective_permissions(self) -> set[str]:
        """Union of the permissions granted by all roles of the user."""
        return {
            key
            for role in self.roles.all()
            for key, granted in (role.permissions or {}).items()
            if granted
        }

    def has_perm_check(self, resource: str, action: str) -> bool:
        return self.is_superuser or f"{resource}.{action}" in self.effective_permissions
