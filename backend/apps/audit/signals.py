"""Signal handlers feeding model changes into the audit log."""

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from apps.audit.models import AuditLog
from apps.audit.services import AuditLogService

# Attribute holding the pre-save field values of an instance being updated
SNAPSHOT_ATTR = "_audit_snapshot"


@receiver(pre_save)
def audit_pre_save(sender, instance, **kwargs):
    """Snapshot the stored row so the update can be diffed against it."""
    if not AuditLogService.is_audited(sender) or instance.pk is None:
        return

    stored = sender._default_manager.filter(pk=instance.pk).first()
    if stored is not None:
        setattr(instance, SNAPSHOT_ATTR, AuditLogService.get_model_fields(stored))


@receiver(post_save)
def audit_post_save(sender, instance, created, **kwargs):
    if not AuditLogService.is_audited(sender):
        return

    if created:
        AuditLogService.record(instance, AuditLog.Action.CREATE)
    else:
        old_values = instance.__dict__.pop(SNAPSHOT_ATTR, {})
        AuditLogService.record(instance, AuditLog.Action.UPDATE, old_values)


@receiver(post_delete)
def audit_post_delete(sender, instance, **kwargs):
    AuditLogService.record(instance, AuditLog.Action.DELETE)


def register_audit_models():
    """Register the contract models for auditing."""
    from apps.contracts.models import Contract, ContractParty, ContractType

    AuditLogService.register_model(Contract, "contract")
    AuditLogService.register_model(
        ContractParty,
        "contract_party",
        parent_field="contract",
        parent_type="contract",
    )
    AuditLogService.register_model(ContractType, "contract_type")
