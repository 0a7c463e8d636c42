"""GraphQL schema for contracts."""

from datetime import date
from decimal import Decimal
from typing import List

import strawberry
from strawberry import auto, UNSET
import strawberry_django
from strawberry.types import Info

from apps.core.context import Context
from apps.core.permissions import check_perm, get_tenant_context, require_perm
from apps.core.schema import DeleteResult
from .exceptions import ContractError, InvalidArgumentError
from .models import Contract, ContractParty, ContractType
from .services import ContractLifecycleService
from .status import ContractStatus, is_active as is_active_status, parse_status, valid_next_statuses


@strawberry_django.type(ContractType)
class ContractTypeNode:
    """A tenant-defined contract category."""

    id: auto
    name: auto
    description: auto
    color: auto
    icon: auto
    is_active: auto
    default_duration_days: auto
    requires_approval: auto
    supports_renewal: auto
    default_reminder_days: auto
    sort_order: auto


@strawberry_django.type(ContractParty)
class ContractPartyNode:
    """A party to a contract."""

    id: auto
    name: auto
    legal_name: auto
    contact_person_name: auto
    contact_person_title: auto
    email: auto
    phone: auto
    address_line1: auto
    address_line2: auto
    city: auto
    state: auto
    postal_code: auto
    country: auto
    tax_id: auto
    registration_number: auto
    website: auto
    requires_signature: auto
    signed_date: auto
    signed_by_name: auto
    signed_by_title: auto
    notes: auto
    sort_order: auto

    @strawberry.field
    def party_type(self) -> str:
        return self.party_type

    @strawberry.field
    def is_signed(self) -> bool:
        return self.is_signed

    @strawberry.field
    def display_name(self) -> str:
        return self.display_name

    @strawberry.field
    def formatted_address(self) -> str:
        return self.formatted_address


@strawberry_django.type(Contract)
class ContractNode:
    """A contract and its lifecycle state."""

    id: auto
    contract_number: auto
    title: auto
    description: auto
    start_date: auto
    end_date: auto
    signed_date: auto
    value: auto
    currency: auto
    auto_renewal: auto
    renewal_reminder_days: auto
    auto_renewal_duration_days: auto
    terms: auto
    internal_notes: auto
    tags: auto
    department: auto
    project_code: auto
    notifications_enabled: auto
    approved_date: auto
    approval_notes: auto
    last_status_change_date: auto
    status_change_reason: auto
    is_deleted: auto
    deleted_at: auto
    created_at: auto
    updated_at: auto

    @strawberry.field
    def status(self) -> str:
        return self.status

    @strawberry.field
    def status_display(self) -> str:
        return self.get_status_display()

    @strawberry.field
    def priority(self) -> int:
        return self.priority

    @strawberry.field
    def billing_frequency(self) -> str:
        return self.billing_frequency

    @strawberry.field
    def contract_type(self) -> ContractTypeNode:
        return self.contract_type

    @strawberry.field
    def parties(self) -> List[ContractPartyNode]:
        """Parties in the order they were submitted."""
        return list(self.parties.all())

    @strawberry.field
    def parent_contract_id(self) -> int | None:
        return self.parent_contract_id

    @strawberry.field
    def child_contract_ids(self) -> List[int]:
        return list(self.child_contracts.values_list("id", flat=True))

    @strawberry.field
    def owner_id(self) -> int | None:
        return self.owner_id

    @strawberry.field
    def is_expired(self) -> bool:
        return self.is_expired

    @strawberry.field
    def is_expiring_soon(self) -> bool:
        return self.is_expiring_soon

    @strawberry.field
    def days_until_expiration(self) -> int | None:
        return self.days_until_expiration

    @strawberry.field
    def is_fully_signed(self) -> bool:
        return self.is_fully_signed

    @strawberry.field
    def is_active(self) -> bool:
        return is_active_status(self.status)

    @strawberry.field
    def counterparty(self) -> ContractPartyNode | None:
        """The first external party."""
        return self.primary_counterparty

    @strawberry.field
    def tags_list(self) -> List[str]:
        return self.tags_list

    @strawberry.field
    def valid_next_statuses(self) -> List[str]:
        """Statuses this contract may move to next."""
        return [status.value for status in valid_next_statuses(self.status)]


@strawberry.type
class ContractConnection:
    """Paginated contract list."""

    items: List[ContractNode]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


@strawberry.type
class StatusInfo:
    value: str
    display: str
    color: str


@strawberry.type
class ContractStatusOptions:
    """Current status and the statuses reachable from it."""

    current: StatusInfo
    next: List[StatusInfo]


@strawberry.type
class ContractDashboardType:
    total_contracts: int
    active_contracts: int
    expiring_in_30_days: int
    expiring_in_7_days: int
    draft_contracts: int


# Input types for mutations
@strawberry.input
class ContractPartyInput:
    party_type: str
    name: str
    legal_name: str | None = None
    contact_person_name: str | None = None
    contact_person_title: str | None = None
    email: str | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    tax_id: str | None = None
    registration_number: str | None = None
    website: str | None = None
    requires_signature: bool = True
    notes: str | None = None


@strawberry.input
class CreateContractInput:
    title: str
    contract_type_id: strawberry.ID
    start_date: date
    end_date: date | None = None
    description: str | None = None
    priority: int | None = None
    value: Decimal | None = None
    currency: str | None = None
    billing_frequency: str | None = None
    auto_renewal: bool = False
    renewal_reminder_days: int | None = None
    auto_renewal_duration_days: int | None = None
    terms: str | None = None
    internal_notes: str | None = None
    tags: str | None = None
    department: str | None = None
    project_code: str | None = None
    owner_id: strawberry.ID | None = None
    notifications_enabled: bool = True
    parent_contract_id: strawberry.ID | None = None
    parties: List[ContractPartyInput] | None = None


@strawberry.input
class UpdateContractInput:
    id: strawberry.ID
    title: str | None = UNSET
    contract_type_id: strawberry.ID | None = UNSET
    start_date: date | None = UNSET
    end_date: date | None = UNSET
    description: str | None = UNSET
    priority: int | None = UNSET
    value: Decimal | None = UNSET
    currency: str | None = UNSET
    billing_frequency: str | None = UNSET
    auto_renewal: bool | None = UNSET
    renewal_reminder_days: int | None = UNSET
    auto_renewal_duration_days: int | None = UNSET
    terms: str | None = UNSET
    internal_notes: str | None = UNSET
    tags: str | None = UNSET
    department: str | None = UNSET
    project_code: str | None = UNSET
    owner_id: strawberry.ID | None = UNSET
    notifications_enabled: bool | None = UNSET
    parties: List[ContractPartyInput] | None = UNSET


@strawberry.input
class RenewContractInput:
    """Overrides for the successor contract. Omitted fields are copied from the original."""

    title: str | None = UNSET
    start_date: date | None = UNSET
    end_date: date | None = UNSET
    description: str | None = UNSET
    value: Decimal | None = UNSET
    currency: str | None = UNSET
    billing_frequency: str | None = UNSET
    auto_renewal: bool | None = UNSET
    auto_renewal_duration_days: int | None = UNSET
    terms: str | None = UNSET
    parties: List[ContractPartyInput] | None = UNSET


# Result types for mutations
@strawberry.type
class ContractResult:
    contract: ContractNode | None = None
    success: bool = False
    error: str | None = None
    error_code: str | None = None


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Invalid id: {value}")


def _input_to_dict(input) -> dict:
    """Plain dict of the fields the client actually sent."""
    data = {}
    for name, value in vars(input).items():
        if value is UNSET:
            continue
        if name == "parties" and value is not None:
            value = [vars(party).copy() for party in value]
        elif name.endswith("_id") and name != "id" and value is not None:
            value = _to_int(value)
        data[name] = value
    return data


def _service_for(info: Info[Context, None], action: str):
    """Return (service, None) or (None, error_string)."""
    _, err = check_perm(info, "contracts", action)
    if err:
        return None, err
    return ContractLifecycleService(info.context.tenant_context), None


def _error_result(error: ContractError) -> ContractResult:
    return ContractResult(error=error.message, error_code=error.code)


def _read_service(info: Info[Context, None]) -> ContractLifecycleService:
    require_perm(info, "contracts", "read")
    return ContractLifecycleService(get_tenant_context(info))


@strawberry.type
class ContractQuery:
    @strawberry.field
    def contracts(
        self,
        info: Info[Context, None],
        search: str | None = None,
        status: str | None = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> ContractConnection:
        """Get paginated list of contracts with search and status filter."""
        service = _read_service(info)
        result = service.list_contracts(
            search=search,
            status=status,
            include_deleted=include_deleted,
            page=page,
            page_size=page_size,
        )
        return ContractConnection(
            items=result.items,
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
            has_next_page=result.has_next_page,
            has_previous_page=result.has_previous_page,
        )

    @strawberry.field
    def contract(self, info: Info[Context, None], id: strawberry.ID) -> ContractNode | None:
        """Get a single contract by ID."""
        service = _read_service(info)
        try:
            return service.get(_to_int(id))
        except ContractError:
            return None

    @strawberry.field
    def contracts_by_type(self, info: Info[Context, None], contract_type_id: strawberry.ID) -> List[ContractNode]:
        return _read_service(info).contracts_by_type(_to_int(contract_type_id))

    @strawberry.field
    def active_contracts(self, info: Info[Context, None]) -> List[ContractNode]:
        return _read_service(info).active_contracts()

    @strawberry.field
    def expiring_contracts(self, info: Info[Context, None], days_ahead: int = 30) -> List[ContractNode]:
        """Active contracts ending within the next ``days_ahead`` days."""
        return _read_service(info).expiring_contracts(days_ahead)

    @strawberry.field
    def contract_dashboard(self, info: Info[Context, None]) -> ContractDashboardType:
        stats = _read_service(info).dashboard_stats()
        return ContractDashboardType(
            total_contracts=stats.total_contracts,
            active_contracts=stats.active_contracts,
            expiring_in_30_days=stats.expiring_in_30_days,
            expiring_in_7_days=stats.expiring_in_7_days,
            draft_contracts=stats.draft_contracts,
        )

    @strawberry.field
    def contract_status_options(self, info: Info[Context, None], id: strawberry.ID) -> ContractStatusOptions | None:
        """Display data for a contract's status and its legal next statuses."""
        service = _read_service(info)
        try:
            options = service.status_options(_to_int(id))
        except ContractError:
            return None
        return ContractStatusOptions(
            current=StatusInfo(**options["current"]),
            next=[StatusInfo(**option) for option in options["next"]],
        )

    @strawberry.field
    def contract_types(self, info: Info[Context, None]) -> List[ContractTypeNode]:
        """Active contract types of the current tenant."""
        return _read_service(info).contract_types()

    @strawberry.field
    def preview_contract_number(self, info: Info[Context, None]) -> str:
        """The number the next created contract would get."""
        return _read_service(info).preview_next_number()


@strawberry.type
class ContractMutation:
    @strawberry.mutation
    def create_contract(
        self, info: Info[Context, None], input: CreateContractInput
    ) -> ContractResult:
        """Create a new Draft contract with its parties."""
        service, err = _service_for(info, "write")
        if err:
            return ContractResult(error=err, error_code="permission_denied")

        try:
            contract = service.create(_input_to_dict(input))
        except ContractError as e:
            return _error_result(e)
        return ContractResult(contract=contract, success=True)

    @strawberry.mutation
    def update_contract(
        self, info: Info[Context, None], input: UpdateContractInput
    ) -> ContractResult:
        """Update a contract in Draft or Under Review."""
        service, err = _service_for(info, "write")
        if err:
            return ContractResult(error=err, error_code="permission_denied")

        try:
            patch = _input_to_dict(input)
            contract = service.update(_to_int(patch.pop("id")), patch)
        except ContractError as e:
            return _error_result(e)
        return ContractResult(contract=contract, success=True)

    @strawberry.mutation
    def change_contract_status(
        self,
        info: Info[Context, None],
        id: strawberry.ID,
        status: str,
        reason: str | None = None,
        notes: str | None = None,
    ) -> ContractResult:
        """Move a contract to another status. Approving requires contracts.approve."""
        service, err = _service_for(info, "write")
        if err:
            return ContractResult(error=err, error_code="permission_denied")

        try:
            target = parse_status(status)
            if target == ContractStatus.APPROVED:
                _, err = check_perm(info, "contracts", "approve")
                if err:
                    return ContractResult(error=err, error_code="permission_denied")
            contract = service.change_status(_to_int(id), target, reason=reason, notes=notes)
        except ContractError as e:
            return _error_result(e)
        return ContractResult(contract=contract, success=True)

    @strawberry.mutation
    def delete_contract(self, info: Info[Context, None], id: strawberry.ID) -> DeleteResult:
        """Delete a Draft contract or cancel any other non-finalized one."""
        service, err = _service_for(info, "delete")
        if err:
            return DeleteResult(error=err, error_code="permission_denied")

        try:
            outcome = service.delete(_to_int(id))
        except ContractError as e:
            return DeleteResult(error=e.message, error_code=e.code)
        return DeleteResult(success=True, outcome=outcome)

    @strawberry.mutation
    def renew_contract(
        self,
        info: Info[Context, None],
        id: strawberry.ID,
        input: RenewContractInput | None = None,
        duration_days: int | None = None,
    ) -> ContractResult:
        """Create a successor contract and mark the original Renewed."""
        service, err = _service_for(info, "write")
        if err:
            return ContractResult(error=err, error_code="permission_denied")

        try:
            data = _input_to_dict(input) if input is not None else {}
            contract = service.renew(_to_int(id), data, duration_days=duration_days)
        except ContractError as e:
            return _error_result(e)
        return ContractResult(contract=contract, success=True)

    @strawberry.mutation
    def sign_contract_party(
        self,
        info: Info[Context, None],
        contract_id: strawberry.ID,
        party_id: strawberry.ID,
        signed_by_name: str | None = None,
        signed_by_title: str | None = None,
    ) -> ContractResult:
        """Record a party's signature."""
        service, err = _service_for(info, "write")
        if err:
            return ContractResult(error=err, error_code="permission_denied")

        try:
            contract = service.sign_party(
                _to_int(contract_id),
                _to_int(party_id),
                signed_by_name=signed_by_name,
                signed_by_title=signed_by_title,
            )
        except ContractError as e:
            return _error_result(e)
        return ContractResult(contract=contract, success=True)
