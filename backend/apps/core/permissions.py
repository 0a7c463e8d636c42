"""Role-based permissions and the GraphQL guards built on them.

Permissions are flat ``"resource.action"`` keys stored on roles. A user holds
the union of the permissions of their roles; superusers hold everything.
"""
from strawberry.types import Info

from apps.core.context import Context, TenantContext


# Grantable actions per resource
PERMISSION_REGISTRY = {
    "contracts": ["read", "write", "delete", "approve"],
    "users": ["read", "write"],
    "settings": ["read", "write"],
}

ALL_PERMISSIONS = frozenset(
    f"{resource}.{action}"
    for resource, actions in PERMISSION_REGISTRY.items()
    for action in actions
)


def _grant(*keys: str) -> dict:
    return {key: True for key in sorted(keys)}


# Roles seeded for every new tenant
DEFAULT_ROLES = {
    "Admin": _grant(*ALL_PERMISSIONS),
    "Manager": _grant(*(key for key in ALL_PERMISSIONS if key.startswith("contracts."))),
    "Editor": _grant("contracts.read", "contracts.write"),
    "Viewer": _grant("contracts.read"),
}


def normalize_permissions(raw: dict) -> dict:
    """Return ``raw`` as ``{"resource.action": True}`` for granted, known keys.

    Legacy entries of the form ``{"contracts": ["read"]}`` are expanded.
    """
    granted = set()
    for key, value in raw.items():
        if isinstance(value, list) and key in PERMISSION_REGISTRY:
            granted.update(f"{key}.{action}" for action in value)
        elif value and not isinstance(value, list):
            granted.add(key)
    return _grant(*(granted & ALL_PERMISSIONS))


class PermissionError(Exception):
    """Raised when the caller is not allowed to do something."""


def get_current_user(info: Info[Context, None]):
    if not info.context.is_authenticated:
        raise PermissionError("Authentication required")
    return info.context.user


def get_tenant_context(info: Info[Context, None]) -> TenantContext:
    """Tenant context of the authenticated caller."""
    if get_current_user(info).tenant_id is None:
        raise PermissionError("User has no tenant assigned")
    return info.context.tenant_context


def require_perm(info: Info[Context, None], resource: str, action: str):
    """Return the caller, raising ``PermissionError`` unless they hold ``resource.action``.

    Queries use this; the error surfaces in the GraphQL ``errors`` list.
    """
    user = get_current_user(info)
    if user.has_perm_check(resource, action):
        return user
    raise PermissionError(f"Permission denied: {resource}.{action}")


def check_perm(info: Info[Context, None], resource: str, action: str):
    """Non-raising variant for mutations: ``(user, None)`` or ``(None, message)``."""
    try:
        user = get_current_user(info)
    except PermissionError as e:
        return None, str(e)
    if not user.has_perm_check(resource, action):
        return None, "Permission denied"
    if user.tenant_id is None:
        return None, "No tenant assigned"
    return user, None
