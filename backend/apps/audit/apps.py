"""Audit app configuration."""

from django.apps import AppConfig


class AuditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.audit"
    verbose_name = "Contract audit trail"

    def ready(self):
        """Connect the signal handlers and register the audited contract models."""
        from apps.audit.signals import register_audit_models

        register_audit_models()
