"""Tenant middleware for multi-tenant support."""
from django.utils.deprecation import MiddlewareMixin

from apps.core.context import TenantContext, get_user_from_request


class TenantMiddleware(MiddlewareMixin):
    """Middleware to set the current tenant and tenant context on the request."""

    def process_request(self, request):
        """Resolve the caller from a Bearer token, falling back to the session user."""
        user = get_user_from_request(request)
        if user is None and hasattr(request, "user") and request.user.is_authenticated:
            user = request.user

        request.tenant_user = user
        request.tenant = getattr(user, "tenant", None) if user is not None else None
        request.tenant_context = TenantContext.from_user(user)
