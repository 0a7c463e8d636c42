"""GraphQL schema for tenants."""
import strawberry
from strawberry import auto
import strawberry_django
from strawberry.types import Info

from django.contrib.auth.hashers import check_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError

from apps.core.context import Context
from apps.core.permissions import check_perm, get_current_user, require_perm
from .models import Role, Tenant, User


@strawberry_django.type(Tenant)
class TenantType:
    id: auto
    name: auto
    domain: auto
    currency: auto
    is_active: auto

    @strawberry.field
    def contract_prefix(self) -> str:
        """Prefix used for this tenant's contract numbers."""
        return self.number_prefix


@strawberry_django.type(User)
class UserType:
    id: auto
    email: auto
    first_name: auto
    last_name: auto
    is_active: auto
    is_admin: auto
    last_login: auto

    @strawberry.field
    def full_name(self) -> str:
        """Return the user's full name."""
        if self.first_name or self.last_name:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return self.email

    @strawberry.field
    def role_names(self) -> list[str]:
        """Return list of assigned role names."""
        return [r.name for r in self.roles.all()]


@strawberry.type
class OperationResult:
    """Generic result for mutations."""
    success: bool
    error: str | None = None


@strawberry.type
class UserResult:
    """Result of registering a user."""
    success: bool
    error: str | None = None
    user: UserType | None = None


@strawberry.type
class TenantQuery:
    @strawberry.field
    def current_user(self, info: Info[Context, None]) -> UserType | None:
        if info.context.is_authenticated:
            return info.context.user
        return None

    @strawberry.field
    def current_tenant(self, info: Info[Context, None]) -> TenantType | None:
        if not info.context.is_authenticated:
            return None
        return info.context.user.tenant

    @strawberry.field
    def users(self, info: Info[Context, None]) -> list[UserType]:
        """List all users in the current tenant. Requires users.read."""
        user = require_perm(info, "users", "read")
        if not user.tenant_id:
            return []
        return list(User.objects.prefetch_related("roles").filter(tenant_id=user.tenant_id))


@strawberry.type
class TenantMutation:
    @strawberry.mutation
    def register_user(
        self,
        info: Info[Context, None],
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        role_names: list[str] | None = None,
    ) -> UserResult:
        """Register a user in the current tenant. Requires users.write."""
        admin, err = check_perm(info, "users", "write")
        if err:
            return UserResult(success=False, error=err)

        email = email.lower().strip()
        if User.objects.filter(email=email).exists():
            return UserResult(success=False, error="Email is already in use")

        try:
            validate_password(password)
        except ValidationError as e:
            return UserResult(success=False, error=" ".join(e.messages))

        roles = list(Role.objects.filter(tenant_id=admin.tenant_id, name__in=role_names or []))
        if role_names and len(roles) != len(set(role_names)):
            return UserResult(success=False, error="Unknown role")
        if not roles:
            roles = list(Role.objects.filter(tenant_id=admin.tenant_id, is_default=True))

        user = User.objects.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            tenant_id=admin.tenant_id,
        )
        user.roles.set(roles)
        return UserResult(success=True, user=user)

    @strawberry.mutation
    def change_password(
        self,
        info: Info[Context, None],
        current_password: str,
        new_password: str,
    ) -> OperationResult:
        """Change the current user's password."""
        user = get_current_user(info)

        if not check_password(current_password, user.password):
            return OperationResult(success=False, error="Current password is incorrect")

        try:
            validate_password(new_password, user=user)
        except ValidationError as e:
            return OperationResult(success=False, error=" ".join(e.messages))

        user.set_password(new_password)
        user.save()
        return OperationResult(success=True)
