"""Request context: tenant identity and the GraphQL context built from it."""
from dataclasses import dataclass, field

from django.http import HttpRequest

from apps.core.auth import get_user_from_token


@dataclass(frozen=True)
class TenantContext:
    """Identity of the caller, resolved once per request and trusted as given."""

    tenant_id: int | None
    user_id: int | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)
    is_authenticated: bool = False

    @classmethod
    def from_user(cls, user) -> "TenantContext":
        if user is None or not user.is_authenticated:
            return cls.anonymous()
        return cls(
            tenant_id=user.tenant_id,
            user_id=user.id,
            roles=tuple(user.role_names),
            is_authenticated=True,
        )

    @classmethod
    def anonymous(cls) -> "TenantContext":
        return cls(tenant_id=None)

    @classmethod
    def system(cls, tenant_id: int) -> "TenantContext":
        """Context for background jobs acting on behalf of a tenant."""
        return cls(tenant_id=tenant_id, roles=("system",), is_authenticated=True)


@dataclass
class Context:
    """GraphQL request context."""

    request: HttpRequest
    user: object | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def tenant_context(self) -> TenantContext:
        return TenantContext.from_user(self.user)


def get_user_from_request(request: HttpRequest):
    """Resolve the user from a Bearer token in the Authorization header."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return get_user_from_token(auth_header[7:])
    return None


def get_context(request: HttpRequest) -> Context:
    """Extract context from request, including authenticated user."""
    return Context(request=request, user=get_user_from_request(request))
