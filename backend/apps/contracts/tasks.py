"""Celery tasks for contract housekeeping.

Each task walks the active tenants and acts through the lifecycle service
under a system tenant context, so the usual validation and transition
rules apply.
"""

import logging

from celery import shared_task
from django.utils import timezone

from apps.core.context import TenantContext
from apps.tenants.models import Tenant

from .exceptions import ContractError
from .services import ContractLifecycleService
from .status import RENEWABLE_STATUSES, ContractStatus

logger = logging.getLogger(__name__)


def _active_tenant_ids(tenant_id: int | None = None) -> list[int]:
    tenants = Tenant.objects.filter(is_active=True)
    if tenant_id is not None:
        tenants = tenants.filter(pk=tenant_id)
    return list(tenants.values_list("pk", flat=True))


@shared_task
def expire_overdue_contracts(tenant_id: int | None = None) -> int:
    """
    Move Active contracts past their end date to Expired.

    Contracts with auto-renewal are left to ``auto_renew_contracts``.

    Returns:
        Number of contracts expired
    """
    today = timezone.localdate()
    expired = 0
    for current_tenant_id in _active_tenant_ids(tenant_id):
        service = ContractLifecycleService(TenantContext.system(current_tenant_id))
        for contract in service.store.overdue(today, [ContractStatus.ACTIVE], auto_renewal=False):
            try:
                service.change_status(contract.pk, ContractStatus.EXPIRED, reason="Contract end date passed")
            except ContractError as e:
                logger.error("Could not expire contract %s for tenant %s: %s", contract.pk, current_tenant_id, e)
                continue
            expired += 1

    logger.info("Expired %s overdue contracts", expired)
    return expired


@shared_task
def auto_renew_contracts(tenant_id: int | None = None) -> int:
    """
    Renew auto-renewal contracts whose end date has passed.

    The renewal lasts ``auto_renewal_duration_days`` when set, otherwise as
    long as the original term.

    Returns:
        Number of contracts renewed
    """
    today = timezone.localdate()
    renewed = 0
    for current_tenant_id in _active_tenant_ids(tenant_id):
        service = ContractLifecycleService(TenantContext.system(current_tenant_id))
        for contract in service.store.overdue(today, RENEWABLE_STATUSES, auto_renewal=True):
            try:
                renewal = service.renew(contract.pk, duration_days=contract.auto_renewal_duration_days)
            except ContractError as e:
                logger.error("Could not auto-renew contract %s for tenant %s: %s", contract.pk, current_tenant_id, e)
                continue
            logger.info("Auto-renewed contract %s as %s", contract.contract_number, renewal.contract_number)
            renewed += 1

    return renewed


@shared_task
def notify_expiring_contracts(tenant_id: int | None = None, days_ahead: int | None = None) -> int:
    """
    Log an expiration warning for each Active contract nearing its end date.

    Returns:
        Number of warnings issued
    """
    warnings = 0
    for current_tenant_id in _active_tenant_ids(tenant_id):
        service = ContractLifecycleService(TenantContext.system(current_tenant_id))
        for contract in service.expiring_contracts(days_ahead):
            logger.warning(
                "Contract %s (%s) for tenant %s expires on %s (%s days left)",
                contract.contract_number,
                contract.title,
                current_tenant_id,
                contract.end_date,
                contract.days_until_expiration,
            )
            warnings += 1

    return warnings
