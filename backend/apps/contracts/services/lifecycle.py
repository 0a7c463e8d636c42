"""Contract lifecycle service.

All contract mutations go through ``ContractLifecycleService``. It is bound
to one tenant context, validates input before touching the database, and
runs each operation in a single transaction.
"""
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, timedelta

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.context import TenantContext
from apps.tenants.models import Tenant, User

from ..exceptions import (
    InfrastructureError,
    InvalidArgumentError,
    InvalidReferenceError,
    InvalidStateError,
    NotFoundError,
)
from ..models import Contract, ContractParty, ContractType
from ..numbering import ContractNumberService
from ..status import (
    RENEWABLE_STATUSES,
    ContractStatus,
    apply_transition,
    assert_transition,
    is_editable,
    is_finalized,
    parse_status,
    status_options,
)
from ..store import ContractPage, ContractStore

logger = logging.getLogger(__name__)

# Fields a caller may set on create and update.
CONTRACT_FIELDS = (
    "title",
    "description",
    "contract_type_id",
    "priority",
    "start_date",
    "end_date",
    "value",
    "currency",
    "billing_frequency",
    "auto_renewal",
    "renewal_reminder_days",
    "auto_renewal_duration_days",
    "terms",
    "internal_notes",
    "tags",
    "department",
    "project_code",
    "owner_id",
    "notifications_enabled",
)

TEXT_FIELDS = {
    "description",
    "currency",
    "billing_frequency",
    "terms",
    "internal_notes",
    "tags",
    "department",
    "project_code",
}

PARTY_FIELDS = (
    "party_type",
    "name",
    "legal_name",
    "contact_person_name",
    "contact_person_title",
    "email",
    "phone",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "postal_code",
    "country",
    "tax_id",
    "registration_number",
    "website",
    "requires_signature",
    "notes",
)

# Written by change_status, delete and renew.
STATUS_FIELDS = [
    "status",
    "last_status_change_date",
    "last_status_changed_by",
    "status_change_reason",
    "updated_by",
    "signed_date",
    "approved_by",
    "approved_date",
    "approval_notes",
]

_PARTY_TYPES = {
    value.replace("_", ""): value for value in ContractParty.PartyType.values
}

CURRENCY_CODE = re.compile(r"[A-Z]{3}")

# Inclusive bounds for day counts a caller may set
REMINDER_DAYS_RANGE = (1, 365)
RENEWAL_DURATION_RANGE = (1, 3650)


@dataclass
class ContractDashboard:
    """Headline counts for a tenant's contracts."""

    total_contracts: int
    active_contracts: int
    expiring_in_30_days: int
    expiring_in_7_days: int
    draft_contracts: int


class ContractLifecycleService:
    """Creates, edits, transitions, deletes and renews one tenant's contracts."""

    def __init__(self, tenant_context: TenantContext):
        self.context = tenant_context
        self.tenant_id = tenant_context.tenant_id
        self.actor_id = tenant_context.user_id
        self.store = ContractStore(self.tenant_id)
        self._tenant = None

    @property
    def tenant(self) -> Tenant:
        if self._tenant is None:
            self._tenant = Tenant.objects.get(pk=self.tenant_id)
        return self._tenant

    @property
    def numbering(self) -> ContractNumberService:
        return ContractNumberService(self.tenant, store=self.store)

    @contextmanager
    def _unit_of_work(self, action: str):
        """Run the block in one transaction and surface database failures as InfrastructureError."""
        try:
            with transaction.atomic():
                yield
        except DatabaseError as exc:
            logger.error("Database error while trying to %s for tenant %s: %s", action, self.tenant_id, exc)
            raise InfrastructureError(f"Failed to {action}.") from exc

    # --- commands ------------------------------------------------------------

    def create(self, data: dict) -> Contract:
        """Create a Draft contract with its parties. At least one party must be external."""
        with self._unit_of_work("create contract"):
            contract = self._create(data, require_counterparty=True)

        logger.info(
            "Created contract %s (%s) for tenant %s",
            contract.pk, contract.contract_number, self.tenant_id,
        )
        return self.get(contract.pk)

    def update(self, contract_id, patch: dict) -> Contract:
        """Apply ``patch`` to an editable contract.

        Status, number, signature, approval and deletion fields are never
        touched. A ``parties`` key replaces the whole party list.
        """
        with self._unit_of_work("update contract"):
            contract = self._get_for_update(contract_id)
            if not is_editable(contract.status):
                raise InvalidStateError("Contract can only be edited in Draft or Under Review status.")

            values = self._clean_fields(patch)
            contract_type_id = values.get("contract_type_id", contract.contract_type_id)
            start_date = values.get("start_date", contract.start_date)
            end_date = values["end_date"] if "end_date" in values else contract.end_date
            auto_renewal = values.get("auto_renewal", contract.auto_renewal)

            self._resolve_contract_type(contract_type_id)
            self._validate_dates(start_date, end_date)
            self._validate_auto_renewal(auto_renewal, end_date)

            parties = None
            if patch.get("parties") is not None:
                if self.store.parties().filter(contract=contract, signed_date__isnull=False).exists():
                    raise InvalidStateError("Parties cannot be replaced after a party has signed.")
                parties = self._clean_parties(patch["parties"])

            for field, value in values.items():
                setattr(contract, field, value)
            contract.updated_by_id = self.actor_id
            self.store.save(contract)

            if parties is not None:
                self.store.replace_parties(contract, self._build_parties(parties))

        logger.info("Updated contract %s for tenant %s", contract.pk, self.tenant_id)
        return self.get(contract.pk)

    def change_status(self, contract_id, new_status, reason: str | None = None, notes: str | None = None) -> Contract:
        """Move a contract to ``new_status`` if the transition table allows it."""
        with self._unit_of_work("change contract status"):
            # Row lock so the status checked is the status overwritten
            contract = self._get_for_update(contract_id)
            target = parse_status(new_status)
            assert_transition(contract.status, target)
            previous = apply_transition(contract, target, actor_id=self.actor_id, reason=reason, notes=notes)
            self.store.save(contract, update_fields=STATUS_FIELDS)

        logger.info(
            "Contract %s status changed from %s to %s for tenant %s",
            contract.pk, previous, target, self.tenant_id,
        )
        return self.get(contract.pk)

    def delete(self, contract_id) -> str:
        """Delete a contract.

        Drafts are removed outright. Other non-finalized contracts are
        cancelled and flagged deleted but stay retrievable. Contracts with
        child contracts are never deleted.

        Returns ``"deleted"`` or ``"cancelled"``.
        """
        with self._unit_of_work("delete contract"):
            contract = self._get_for_update(contract_id)
            if self.store.has_children(contract.pk):
                raise InvalidStateError("Contract has dependent contracts and cannot be deleted.")

            if contract.status == ContractStatus.DRAFT:
                self.store.remove(contract)
                outcome = "deleted"
            elif is_finalized(contract.status):
                raise InvalidStateError("Finalized contracts cannot be deleted.")
            else:
                now = timezone.now()
                apply_transition(
                    contract, ContractStatus.CANCELLED,
                    actor_id=self.actor_id, reason="Contract deleted", now=now,
                )
                contract.is_deleted = True
                contract.deleted_at = now
                contract.deleted_by_id = self.actor_id
                self.store.save(contract, update_fields=STATUS_FIELDS + ["is_deleted", "deleted_at", "deleted_by"])
                outcome = "cancelled"

        logger.info("Contract %s %s for tenant %s", contract_id, outcome, self.tenant_id)
        return outcome

    def renew(self, contract_id, data: dict | None = None, duration_days: int | None = None) -> Contract:
        """Create a successor Draft contract and mark the original Renewed.

        Fields missing from ``data`` are taken from the original. The new
        term starts the day after the original ends and lasts
        ``duration_days`` or, failing that, as long as the original did.
        """
        data = dict(data or {})
        if duration_days is not None:
            self._validate_range("Renewal duration", duration_days, RENEWAL_DURATION_RANGE)
        with self._unit_of_work("renew contract"):
            original = self._get_for_update(contract_id)
            if original.status not in RENEWABLE_STATUSES:
                raise InvalidStateError("Only active or expired contracts can be renewed.")
            if not original.contract_type.supports_renewal:
                raise InvalidStateError("Contracts of this type cannot be renewed.")

            draft = self._renewal_defaults(original, data, duration_days)
            draft["parent_contract_id"] = original.pk
            renewal = self._create(draft)

            assert_transition(original.status, ContractStatus.RENEWED)
            apply_transition(
                original, ContractStatus.RENEWED,
                actor_id=self.actor_id, reason=f"Renewed by {renewal.contract_number}",
            )
            self.store.save(original, update_fields=STATUS_FIELDS)

        logger.info(
            "Contract %s renewed as %s (%s) for tenant %s",
            original.pk, renewal.pk, renewal.contract_number, self.tenant_id,
        )
        return self.get(renewal.pk)

    def sign_party(
        self,
        contract_id,
        party_id,
        signed_by_name: str | None = None,
        signed_by_title: str | None = None,
    ) -> Contract:
        """Record a party's signature. A signature is written once and never changed."""
        with self._unit_of_work("sign contract party"):
            contract = self._get_for_update(contract_id)
            if is_finalized(contract.status):
                raise InvalidStateError("Parties of a finalized contract cannot sign.")

            party = self.store.get_party(contract.pk, party_id)
            if party is None:
                raise NotFoundError("Party not found.")
            if party.is_signed:
                raise InvalidStateError("Party has already signed.")

            party.signed_date = timezone.now()
            party.signed_by_name = signed_by_name or party.contact_person_name or party.display_name
            party.signed_by_title = signed_by_title or party.contact_person_title
            party.updated_by_id = self.actor_id
            self.store.save(party, update_fields=["signed_date", "signed_by_name", "signed_by_title", "updated_by"])

        logger.info("Party %s signed contract %s for tenant %s", party.pk, contract.pk, self.tenant_id)
        return self.get(contract.pk)

    # --- queries -------------------------------------------------------------

    def get(self, contract_id) -> Contract:
        contract = self.store.get(contract_id)
        if contract is None:
            raise NotFoundError("Contract not found.")
        return contract

    def list_contracts(
        self,
        search: str | None = None,
        status: str | None = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> ContractPage:
        status = parse_status(status) if status else None
        return self.store.page(
            search=search.strip() if search else None,
            status=status,
            include_deleted=include_deleted,
            page=page,
            page_size=page_size,
        )

    def contracts_by_type(self, contract_type_id) -> list[Contract]:
        return self.store.by_type(contract_type_id)

    def active_contracts(self) -> list[Contract]:
        return self.store.active()

    def expiring_contracts(self, days_ahead: int | None = None) -> list[Contract]:
        if days_ahead is None:
            days_ahead = settings.CONTRACT_EXPIRING_DAYS_AHEAD
        if days_ahead < 0:
            raise InvalidArgumentError("Days ahead must not be negative.")
        return self.store.expiring(days_ahead, today=timezone.localdate())

    def dashboard_stats(self) -> ContractDashboard:
        today = timezone.localdate()
        live = self.store.contracts().filter(is_deleted=False)
        active = live.filter(status=ContractStatus.ACTIVE)
        expiring = active.filter(end_date__isnull=False, end_date__gte=today)
        return ContractDashboard(
            total_contracts=live.count(),
            active_contracts=active.count(),
            expiring_in_30_days=expiring.filter(end_date__lte=today + timedelta(days=30)).count(),
            expiring_in_7_days=expiring.filter(end_date__lte=today + timedelta(days=7)).count(),
            draft_contracts=live.filter(status=ContractStatus.DRAFT).count(),
        )

    def status_options(self, contract_id) -> dict:
        """Current status of a contract plus the statuses it may move to."""
        return status_options(self.get(contract_id).status)

    def contract_types(self) -> list[ContractType]:
        return list(self.store.active_types())

    def preview_next_number(self) -> str:
        return self.numbering.preview_next_number(timezone.localdate())

    # --- helpers -------------------------------------------------------------

    def _get_for_update(self, contract_id) -> Contract:
        contract = self.store.get(contract_id, lock=True)
        if contract is None:
            raise NotFoundError("Contract not found.")
        return contract

    def _create(self, data: dict, require_counterparty: bool = False) -> Contract:
        values = self._clean_fields(data)
        if not values.get("title"):
            raise InvalidArgumentError("Title is required.")
        if values.get("start_date") is None:
            raise InvalidArgumentError("Start date is required.")

        contract_type = self._resolve_contract_type(values.get("contract_type_id"))
        end_date = values.get("end_date")
        self._validate_dates(values["start_date"], end_date)
        self._validate_auto_renewal(values.get("auto_renewal", False), end_date)

        parent_id = data.get("parent_contract_id")
        if parent_id is not None and not self.store.exists(parent_id):
            raise InvalidReferenceError("Parent contract not found.")

        parties = self._clean_parties(data.get("parties") or [])
        if require_counterparty and not any(
            party["party_type"] == ContractParty.PartyType.EXTERNAL for party in parties
        ):
            raise InvalidArgumentError("Contract must have at least one external party.")

        now = timezone.now()
        contract = Contract(
            tenant_id=self.tenant_id,
            status=ContractStatus.DRAFT,
            parent_contract_id=parent_id,
            last_status_change_date=now,
            last_status_changed_by_id=self.actor_id,
            created_by_id=self.actor_id,
            updated_by_id=self.actor_id,
        )
        for field, value in values.items():
            setattr(contract, field, value)
        contract.contract_type = contract_type
        if not contract.renewal_reminder_days:
            contract.renewal_reminder_days = contract_type.default_reminder_days
        if not contract.currency and contract.value is not None:
            contract.currency = self.tenant.currency

        self.numbering.save_with_number(
            contract,
            lambda c: self.store.add(c, self._build_parties(parties)),
            on_date=timezone.localdate(),
        )
        return contract

    def _clean_fields(self, data: dict) -> dict:
        values = {}
        for field in CONTRACT_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if value is None and field in TEXT_FIELDS:
                value = ""
            values[field] = value

        if "title" in values:
            values["title"] = (values["title"] or "").strip()
            if not values["title"]:
                raise InvalidArgumentError("Title is required.")
        if "start_date" in values and values["start_date"] is None:
            raise InvalidArgumentError("Start date is required.")
        if values.get("priority") is not None and values["priority"] not in Contract.Priority.values:
            raise InvalidArgumentError("Invalid priority.")
        if values.get("priority", 0) is None:
            values.pop("priority")
        if values.get("billing_frequency") and values["billing_frequency"] not in Contract.BillingFrequency.values:
            raise InvalidArgumentError("Invalid billing frequency.")
        if values.get("value") is not None and values["value"] < 0:
            raise InvalidArgumentError("Contract value must not be negative.")
        for field in ("auto_renewal", "notifications_enabled"):
            if field in values:
                if values[field] is None:
                    del values[field]
                else:
                    values[field] = bool(values[field])
        # 0 or None means "use the contract type default"
        if values.get("renewal_reminder_days"):
            self._validate_range("Renewal reminder", values["renewal_reminder_days"], REMINDER_DAYS_RANGE)
        if values.get("auto_renewal_duration_days") is not None:
            self._validate_range(
                "Auto-renewal duration", values["auto_renewal_duration_days"], RENEWAL_DURATION_RANGE
            )
        if values.get("currency"):
            values["currency"] = values["currency"].strip().upper()
            if not CURRENCY_CODE.fullmatch(values["currency"]):
                raise InvalidArgumentError("Currency must be a three-letter ISO code.")
        if values.get("owner_id") is not None:
            if not User.objects.filter(pk=values["owner_id"], tenant_id=self.tenant_id).exists():
                raise InvalidReferenceError("Owner not found.")
        return values

    def _resolve_contract_type(self, contract_type_id) -> ContractType:
        contract_type = None
        if contract_type_id is not None:
            contract_type = self.store.get_active_type(contract_type_id)
        if contract_type is None:
            raise InvalidReferenceError("Contract type not found or inactive.")
        return contract_type

    @staticmethod
    def _validate_dates(start_date: date, end_date: date | None) -> None:
        if end_date is not None and end_date <= start_date:
            raise InvalidArgumentError("End date must be after start date.")

    @staticmethod
    def _validate_range(label: str, value: int, bounds: tuple[int, int]) -> None:
        low, high = bounds
        if not low <= value <= high:
            raise InvalidArgumentError(f"{label} must be between {low} and {high} days.")

    @staticmethod
    def _validate_auto_renewal(auto_renewal: bool, end_date: date | None) -> None:
        if auto_renewal and end_date is None:
            raise InvalidArgumentError("Auto-renewal requires an end date.")

    @staticmethod
    def _clean_parties(parties: list[dict]) -> list[dict]:
        cleaned = []
        for party in parties:
            values = {field: party[field] for field in PARTY_FIELDS if party.get(field) is not None}
            raw_type = str(values.get("party_type", ""))
            party_type = _PARTY_TYPES.get("".join(ch for ch in raw_type.lower() if ch not in "_- "))
            if party_type is None:
                raise InvalidArgumentError(f"Invalid party type: {raw_type or 'missing'}.")
            values["party_type"] = party_type
            values["name"] = str(values.get("name", "")).strip()
            if not values["name"]:
                raise InvalidArgumentError("Party name is required.")
            cleaned.append(values)
        return cleaned

    def _build_parties(self, parties: list[dict]) -> list[ContractParty]:
        return [
            ContractParty(created_by_id=self.actor_id, updated_by_id=self.actor_id, **values)
            for values in parties
        ]

    @staticmethod
    def _renewal_defaults(original: Contract, data: dict, duration_days: int | None) -> dict:
        """Merge ``data`` over a draft copied from ``original``."""
        start_date = (original.end_date or timezone.localdate()) + timedelta(days=1)
        duration = duration_days or original.duration_days

        draft = {
            "title": original.title,
            "description": original.description,
            "contract_type_id": original.contract_type_id,
            "priority": original.priority,
            "start_date": start_date,
            "value": original.value,
            "currency": original.currency,
            "billing_frequency": original.billing_frequency,
            "auto_renewal": original.auto_renewal,
            "renewal_reminder_days": original.renewal_reminder_days,
            "auto_renewal_duration_days": original.auto_renewal_duration_days,
            "terms": original.terms,
            "tags": original.tags,
            "department": original.department,
            "project_code": original.project_code,
            "owner_id": original.owner_id,
            "notifications_enabled": original.notifications_enabled,
            "parties": [
                {field: getattr(party, field) for field in PARTY_FIELDS}
                for party in original.parties.all()
            ],
        }
        draft.update(data)

        if "end_date" not in data:
            draft["end_date"] = draft["start_date"] + timedelta(days=duration) if duration else None
        if draft["end_date"] is None:
            draft["auto_renewal"] = False
        return draft
