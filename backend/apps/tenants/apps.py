from django.apps import AppConfig


class TenantsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.tenants"
    verbose_name = "Tenants and users"

    def ready(self):
        # Seeds default roles for new tenants
        import apps.tenants.signals  # noqa: F401
