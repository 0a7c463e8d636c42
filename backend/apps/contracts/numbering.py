"""Contract number generation service."""
import logging
from datetime import date

from django.conf import settings
from django.db import IntegrityError, transaction

from apps.tenants.models import Tenant

from .exceptions import ConflictError, InfrastructureError
from .store import ContractStore

logger = logging.getLogger(__name__)


class ContractNumberService:
    """Generates tenant-scoped, year-bucketed contract numbers like ``ACM-2025-0007``.

    The next sequence is derived from the highest number already stored for
    the tenant, prefix and year. Two concurrent creations can compute the
    same number; the ``(tenant, contract_number)`` unique constraint rejects
    the loser, which then retries with a fresh sequence.
    """

    def __init__(self, tenant: Tenant, store: ContractStore | None = None):
        self.tenant = tenant
        self.store = store or ContractStore(tenant.id)
        self.max_attempts = getattr(settings, "CONTRACT_NUMBER_MAX_ATTEMPTS", 5)

    @property
    def prefix(self) -> str:
        return self.tenant.number_prefix

    def next_number(self, on_date: date | None = None) -> str:
        """Compute the next unused number for the year of ``on_date``."""
        on_date = on_date or date.today()
        stem = self._stem(on_date)

        highest = 0
        for number in self.store.numbers_with_prefix(stem):
            suffix = number[len(stem):]
            # Compare numerically so 10000 sorts after 9999
            if suffix.isdigit():
                highest = max(highest, int(suffix))

        return self._format_number(on_date, highest + 1)

    def preview_next_number(self, on_date: date | None = None) -> str:
        """Preview the next contract number without reserving it."""
        return self.next_number(on_date)

    def save_with_number(self, contract, persist, on_date: date | None = None) -> str:
        """Assign a number to ``contract`` and run ``persist(contract)`` in a savepoint.

        A duplicate-number ``IntegrityError`` rolls back the savepoint and
        retries with a recomputed number, up to ``max_attempts`` times.
        Any other integrity failure is raised as ``InfrastructureError``.
        """
        for attempt in range(1, self.max_attempts + 1):
            number = self.next_number(on_date)
            contract.contract_number = number
            try:
                with transaction.atomic():
                    persist(contract)
                return number
            except IntegrityError as exc:
                contract.pk = None
                contract._state.adding = True
                if not self.store.number_taken(number):
                    raise InfrastructureError("Failed to save contract.") from exc
                logger.warning(
                    "Contract number %s already taken for tenant %s (attempt %s/%s)",
                    number, self.tenant.id, attempt, self.max_attempts,
                )

        logger.error(
            "Could not assign a unique contract number for tenant %s after %s attempts",
            self.tenant.id, self.max_attempts,
        )
        raise ConflictError("Could not assign a unique contract number. Please try again.")

    def _stem(self, on_date: date) -> str:
        return f"{self.prefix}-{on_date.year}-"

    def _format_number(self, on_date: date, sequence: int) -> str:
        return f"{self._stem(on_date)}{sequence:04d}"
