"""Middleware for audit logging."""

from apps.audit.services import acting_user
from apps.core.context import get_user_from_request


class AuditUserMiddleware:
    """Attribute audit log entries written during a request to the calling user."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # TenantMiddleware has usually resolved the caller already
        user = getattr(request, "tenant_user", None)
        if user is None:
            user = get_user_from_request(request)

        if user is None:
            return self.get_response(request)

        with acting_user(user):
            return self.get_response(request)
