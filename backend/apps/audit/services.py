"""Audit logging service.

Audited models are registered once at startup. Signal handlers hand every
save and delete of a registered model to ``AuditLogService.record``, which
serializes the field values and writes an ``AuditLog`` row in the record's
tenant.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from django.db import models

from apps.audit.models import AuditLog


# Thread-local storage for the user behind the current request
_thread_locals = threading.local()


def set_current_user(user):
    """Set the current user for audit logging in this thread."""
    _thread_locals.user = user


def get_current_user():
    """Get the current user for audit logging from this thread."""
    return getattr(_thread_locals, "user", None)


def clear_current_user():
    """Clear the current user from thread-local storage."""
    if hasattr(_thread_locals, "user"):
        del _thread_locals.user


@contextmanager
def acting_user(user):
    """Attribute every change made inside the block to ``user``."""
    previous = get_current_user()
    set_current_user(user)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user()
        else:
            set_current_user(previous)


@dataclass(frozen=True)
class AuditedModel:
    entity_type: str
    parent_field: str | None = None
    parent_type: str | None = None


class AuditLogService:
    """Turns model saves and deletes into audit log entries."""

    REGISTRY: dict[type, AuditedModel] = {}

    # Bookkeeping fields that never show up in a diff
    EXCLUDED_FIELDS = {"created_at", "updated_at", "id", "tenant", "tenant_id"}

    @classmethod
    def register_model(cls, model_class, entity_type: str, parent_field: str = None, parent_type: str = None):
        """Audit ``model_class`` as ``entity_type``.

        ``parent_field`` names a foreign key whose target is recorded as the
        parent entity, so a contract's history can include its parties.
        """
        cls.REGISTRY[model_class] = AuditedModel(entity_type, parent_field, parent_type)

    @classmethod
    def is_audited(cls, model_class) -> bool:
        return model_class in cls.REGISTRY

    @classmethod
    def get_entity_type(cls, model_class) -> str | None:
        entry = cls.REGISTRY.get(model_class)
        return entry.entity_type if entry else None

    @classmethod
    def serialize_value(cls, value: Any) -> Any:
        """Serialize a field value for JSON storage."""
        if value is None:
            return None
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, models.Model):
            return value.pk
        if hasattr(value, "__iter__") and not isinstance(value, (str, bytes, dict)):
            return [cls.serialize_value(v) for v in value]
        return value

    @classmethod
    def get_model_fields(cls, instance: models.Model) -> dict[str, Any]:
        """Concrete field values of ``instance``; foreign keys are stored as ids."""
        fields = {}
        for field in instance._meta.concrete_fields:
            if field.name in cls.EXCLUDED_FIELDS:
                continue
            attribute = field.attname if field.is_relation else field.name
            fields[field.name] = cls.serialize_value(getattr(instance, attribute, None))
        return fields

    @classmethod
    def compute_diff(cls, old_values: dict, new_values: dict) -> dict[str, dict]:
        """Map each changed field to ``{"old": value, "new": value}``."""
        return {
            field: {"old": old_values.get(field), "new": new_values.get(field)}
            for field in set(old_values) | set(new_values)
            if old_values.get(field) != new_values.get(field)
        }

    @classmethod
    def get_entity_repr(cls, instance: models.Model) -> str:
        """Contract number, else name, else ``str(instance)``."""
        for attribute in ("contract_number", "name"):
            value = getattr(instance, attribute, None)
            if value:
                return str(value)[:255]
        return str(instance)[:255]

    @classmethod
    def get_actor_id(cls, instance: models.Model) -> int | None:
        """The request user, or the actor stamped on the record for non-request work."""
        user = get_current_user()
        if user is not None:
            return user.pk
        return getattr(instance, "updated_by_id", None)

    @classmethod
    def record(cls, instance: models.Model, action: str, old_values: dict | None = None) -> AuditLog | None:
        """Write one audit entry for ``instance``.

        Creates log every field as new, deletes log every field as old, and
        updates log only the fields that differ from ``old_values``. An
        update that changed nothing is not logged.
        """
        entry = cls.REGISTRY.get(type(instance))
        if entry is None:
            return None

        fields = cls.get_model_fields(instance)
        if action == AuditLog.Action.CREATE:
            changes = {field: {"old": None, "new": value} for field, value in fields.items()}
        elif action == AuditLog.Action.DELETE:
            changes = {field: {"old": value, "new": None} for field, value in fields.items()}
        else:
            changes = cls.compute_diff(old_values or {}, fields)
            if not changes:
                return None

        parent_id = None
        if entry.parent_field:
            parent_id = getattr(instance, f"{entry.parent_field}_id", None)

        return AuditLog.objects.create(
            tenant_id=instance.tenant_id,
            action=action,
            entity_type=entry.entity_type,
            entity_id=instance.pk,
            entity_repr=cls.get_entity_repr(instance),
            user_id=cls.get_actor_id(instance),
            changes=changes,
            parent_entity_type=entry.parent_type if parent_id is not None else None,
            parent_entity_id=parent_id,
        )
