"""Test settings."""
from .base import *  # noqa: F401, F403

DEBUG = False

SECRET_KEY = "test-secret-key"

# In-memory SQLite unless TEST_DATABASE_URL points at PostgreSQL
DATABASES = {"default": env.db("TEST_DATABASE_URL", default="sqlite://:memory:")}  # noqa: F405

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable audit log in tests (unless explicitly needed)
AUDITLOG_INCLUDE_ALL_MODELS = False

# Use in-memory cache for tests (no Redis dependency)
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Run Celery tasks inline
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Let caplog see application log records
LOGGING["loggers"]["apps"]["propagate"] = True  # noqa: F405
