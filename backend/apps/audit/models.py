"""Audit log models."""

from django.db import models

from apps.core.models import TenantModel, TenantQuerySet


class AuditLogQuerySet(TenantQuerySet):
    def for_entity(self, entity_type: str, entity_id: int, include_related: bool = False):
        """Entries for one entity, plus entries of its child records when ``include_related``."""
        condition = models.Q(entity_type=entity_type, entity_id=entity_id)
        if include_related:
            condition |= models.Q(parent_entity_type=entity_type, parent_entity_id=entity_id)
        return self.filter(condition)

    def newest_first(self):
        return self.order_by("-timestamp", "-id")

    def oldest_first(self):
        return self.order_by("timestamp", "id")


class AuditLog(TenantModel):
    """One recorded create, update or delete of an audited record."""

    class Action(models.TextChoices):
        """Action types for audit log entries."""

        CREATE = "create", "Create"
        UPDATE = "update", "Update"
        DELETE = "delete", "Delete"

    action = models.CharField(
        max_length=10,
        choices=Action.choices,
        help_text="The type of action performed",
    )
    entity_type = models.CharField(
        max_length=100,
        help_text="The type of entity that was changed (e.g., 'contract', 'contract_party')",
    )
    entity_id = models.IntegerField(
        help_text="The ID of the entity that was changed",
    )
    entity_repr = models.CharField(
        max_length=255,
        help_text="Human-readable representation of the entity at the time of change",
    )
    user = models.ForeignKey(
        "tenants.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
        help_text="The user who made the change (null for system changes)",
    )
    changes = models.JSONField(
        default=dict,
        help_text="JSON object containing field changes with old/new values",
    )
    timestamp = models.DateTimeField(
        auto_now_add=True,
        help_text="When the change occurred",
    )
    # For tracking related entities (e.g., contract_id for contract parties)
    parent_entity_type = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Parent entity type for related entities",
    )
    parent_entity_id = models.IntegerField(
        null=True,
        blank=True,
        help_text="Parent entity ID for related entities",
    )

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_audit_entity__0b5f8e_idx"),
            models.Index(fields=["entity_type"], name="audit_audit_entity__4c1d2a_idx"),
            models.Index(fields=["user"], name="audit_audit_user_id_7e3a91_idx"),
            models.Index(fields=["timestamp"], name="audit_audit_timesta_2f6b0c_idx"),
            models.Index(fields=["tenant", "timestamp"], name="audit_audit_tenant__9a8d4e_idx"),
            models.Index(fields=["parent_entity_type", "parent_entity_id"], name="audit_audit_parent__5d7c13_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id} by {self.user or 'system'}"
