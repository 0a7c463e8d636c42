"""JWT Authentication utilities."""
from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings

from apps.tenants.models import User


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token for a user, scoped to the user's tenant."""
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.JWT_ACCESS_TOKEN_HOURS)

    expire = datetime.now(timezone.utc) + expires_delta
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "tenant_id": user.tenant_id,
        "roles": user.role_names,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def create_refresh_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a JWT refresh token for a user."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.JWT_REFRESH_TOKEN_DAYS)

    expire = datetime.now(timezone.utc) + expires_delta
    payload = {
        "sub": str(user.id),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "refresh",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def decode_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def get_user_from_token(token: str, token_type: str = "access") -> User | None:
    """Get the active user of a valid JWT token of the given type."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != token_type:
        return None

    try:
        user_id = payload.get("sub")
        if user_id is None:
            return None
        user = User.objects.select_related("tenant").get(id=int(user_id), is_active=True)
    except (User.DoesNotExist, ValueError):
        return None

    # Tokens never outlive their tenant
    if token_type == "access" and payload.get("tenant_id") != user.tenant_id:
        return None
    if user.tenant is not None and not user.tenant.is_active:
        return None
    return user
