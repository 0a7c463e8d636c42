"""Core GraphQL schema for authentication."""
from typing import Annotated, Union

import strawberry
from django.contrib.auth import authenticate
from strawberry.types import Info

from apps.core.auth import create_access_token, create_refresh_token, get_user_from_token
from apps.core.context import Context


@strawberry.type
class AuthPayload:
    """Authentication response with tokens."""

    access_token: str
    refresh_token: str
    user_id: int
    email: str
    tenant_id: int | None
    roles: list[str]


@strawberry.type
class AuthError:
    """Authentication error."""

    message: str


AuthResult = Annotated[Union[AuthPayload, AuthError], strawberry.union("AuthResult")]


@strawberry.type
class DeleteResult:
    """Result of delete operations."""

    success: bool = False
    error: str | None = None
    error_code: str | None = None
    outcome: str | None = None


@strawberry.type
class CurrentUser:
    """Current authenticated user info."""

    id: int
    email: str
    first_name: str
    last_name: str
    tenant_id: int | None
    tenant_name: str | None
    is_admin: bool
    roles: list[str] | None = None
    permissions: list[str] | None = None


def _auth_payload(user) -> AuthPayload:
    return AuthPayload(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        user_id=user.id,
        email=user.email,
        tenant_id=user.tenant_id,
        roles=user.role_names,
    )


@strawberry.type
class CoreQuery:
    """Core queries including auth status."""

    @strawberry.field
    def me(self, info: Info[Context, None]) -> CurrentUser | None:
        """Get current authenticated user."""
        user = info.context.user
        if user is None:
            return None

        return CurrentUser(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            tenant_id=user.tenant_id,
            tenant_name=user.tenant.name if user.tenant else None,
            is_admin=user.is_admin or user.is_superuser,
            roles=user.role_names,
            permissions=sorted(user.effective_permissions),
        )


@strawberry.type
class AuthMutation:
    """Authentication mutations."""

    @strawberry.mutation
    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate user and return tokens."""
        user = authenticate(username=email.lower().strip(), password=password)

        if user is None or not user.is_active:
            return AuthError(message="Invalid email or password")

        if user.tenant is None:
            return AuthError(message="No tenant assigned")

        if not user.tenant.is_active:
            return AuthError(message="Tenant is inactive")

        return _auth_payload(user)

    @strawberry.mutation
    def refresh_token(self, refresh_token: str) -> AuthResult:
        """Get new access token using refresh token."""
        user = get_user_from_token(refresh_token, token_type="refresh")

        if user is None:
            return AuthError(message="Invalid or expired refresh token")

        return _auth_payload(user)
