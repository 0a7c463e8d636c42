"""Tenant-scoped persistence for contracts, their parties, and contract types.

Every queryset handed out here starts from ``filter(tenant_id=...)``, so
callers cannot forget the tenant filter.
"""
from dataclasses import dataclass
from datetime import date, timedelta

from django.db import transaction
from django.db.models import Prefetch, Q

from .models import Contract, ContractParty, ContractType
from .status import ContractStatus


@dataclass
class ContractPage:
    """One page of a contract listing."""

    items: list
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next_page(self) -> bool:
        return self.page * self.page_size < self.total_count

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1


class ContractStore:
    """Data access for one tenant's contracts."""

    def __init__(self, tenant_id: int):
        if tenant_id is None:
            raise ValueError("ContractStore requires a tenant id")
        self.tenant_id = tenant_id

    # --- querysets -----------------------------------------------------------

    def contracts(self):
        return Contract.objects.for_tenant(self.tenant_id)

    def contract_types(self):
        return ContractType.objects.for_tenant(self.tenant_id)

    def parties(self):
        return ContractParty.objects.for_tenant(self.tenant_id)

    def _with_relations(self, queryset):
        return queryset.select_related("contract_type", "parent_contract").prefetch_related(
            Prefetch("parties", queryset=self.parties().order_by("sort_order", "id")),
        )

    # --- reads ---------------------------------------------------------------

    def get(self, contract_id, *, lock: bool = False) -> Contract | None:
        """Fetch one contract. ``lock`` takes a row lock for the enclosing transaction."""
        queryset = self.contracts()
        if lock:
            queryset = queryset.select_for_update()
            return queryset.filter(pk=contract_id).first()
        return self._with_relations(queryset).filter(pk=contract_id).first()

    def exists(self, contract_id) -> bool:
        return self.contracts().filter(pk=contract_id).exists()

    def has_children(self, contract_id) -> bool:
        return self.contracts().filter(parent_contract_id=contract_id).exists()

    def child_ids(self, contract_id) -> list[int]:
        return list(
            self.contracts().filter(parent_contract_id=contract_id).values_list("pk", flat=True)
        )

    def get_party(self, contract_id, party_id) -> ContractParty | None:
        return self.parties().filter(contract_id=contract_id, pk=party_id).first()

    def get_active_type(self, contract_type_id) -> ContractType | None:
        return self.contract_types().filter(pk=contract_type_id, is_active=True).first()

    def active_types(self):
        return self.contract_types().filter(is_active=True)

    def numbers_with_prefix(self, prefix: str) -> list[str]:
        return list(
            self.contracts()
            .filter(contract_number__startswith=prefix)
            .values_list("contract_number", flat=True)
        )

    def number_taken(self, contract_number: str) -> bool:
        return self.contracts().filter(contract_number=contract_number).exists()

    # --- projections ---------------------------------------------------------

    def page(
        self,
        search: str | None = None,
        status: str | None = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> ContractPage:
        queryset = self.contracts()
        if not include_deleted:
            queryset = queryset.filter(is_deleted=False)

        if search:
            queryset = queryset.filter(
                Q(title__icontains=search)
                | Q(contract_number__icontains=search)
                | Q(description__icontains=search)
                | Q(department__icontains=search)
                | Q(project_code__icontains=search)
                | Q(tags__icontains=search)
            )

        if status:
            queryset = queryset.filter(status=status)

        page = max(page, 1)
        page_size = max(page_size, 1)
        total_count = queryset.count()
        offset = (page - 1) * page_size
        items = list(self._with_relations(queryset.order_by("-created_at", "-id"))[offset : offset + page_size])
        return ContractPage(items=items, total_count=total_count, page=page, page_size=page_size)

    def by_type(self, contract_type_id) -> list[Contract]:
        queryset = self.contracts().filter(contract_type_id=contract_type_id, is_deleted=False)
        return list(self._with_relations(queryset.order_by("-created_at", "-id")))

    def active(self) -> list[Contract]:
        queryset = self.contracts().filter(status=ContractStatus.ACTIVE, is_deleted=False)
        return list(self._with_relations(queryset.order_by("-created_at", "-id")))

    def expiring(self, days_ahead: int, today: date | None = None) -> list[Contract]:
        """Active contracts with notifications on whose end date falls within ``days_ahead``."""
        today = today or date.today()
        cutoff = today + timedelta(days=days_ahead)
        queryset = self.contracts().filter(
            status=ContractStatus.ACTIVE,
            is_deleted=False,
            end_date__isnull=False,
            end_date__lte=cutoff,
            notifications_enabled=True,
        )
        return list(self._with_relations(queryset.order_by("end_date", "id")))

    def overdue(self, today: date, statuses, auto_renewal: bool) -> list[Contract]:
        """Contracts in ``statuses`` whose end date has passed."""
        queryset = self.contracts().filter(
            status__in=list(statuses),
            is_deleted=False,
            end_date__lt=today,
            auto_renewal=auto_renewal,
        )
        return list(queryset.order_by("end_date", "id"))

    # --- writes --------------------------------------------------------------

    def add(self, contract: Contract, parties: list[ContractParty]) -> Contract:
        """Insert a contract and its parties together."""
        contract.tenant_id = self.tenant_id
        with transaction.atomic():
            contract.save()
            self.replace_parties(contract, parties)
        return contract

    def replace_parties(self, contract: Contract, parties: list[ContractParty]) -> None:
        with transaction.atomic():
            self.parties().filter(contract=contract).delete()
            for index, party in enumerate(parties):
                party.tenant_id = self.tenant_id
                party.contract = contract
                party.sort_order = index
                party.save()

    def save(self, instance, update_fields=None) -> None:
        if instance.tenant_id != self.tenant_id:
            raise ValueError("Refusing to write a record of another tenant")
        if update_fields is not None:
            update_fields = sorted(set(update_fields) | {"updated_at"})
        instance.save(update_fields=update_fields)

    def remove(self, contract: Contract) -> None:
        """Hard-delete a contract; its parties cascade."""
        if contract.tenant_id != self.tenant_id:
            raise ValueError("Refusing to delete a record of another tenant")
        contract.delete()
