"""Tests for ContractLifecycleService create, update, delete, renew and signing."""
import re
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.utils import timezone

from apps.contracts.exceptions import (
    InfrastructureError,
    InvalidArgumentError,
    InvalidReferenceError,
    InvalidStateError,
    NotFoundError,
)
from apps.contracts.models import Contract, ContractParty, ContractType
from apps.contracts.store import ContractStore


class TestCreateContract:
    def test_create_returns_draft_with_number_and_ordered_parties(self, service, contract_data):
        created = service.create(contract_data)
        contract = service.get(created.pk)

        assert contract.status == Contract.Status.DRAFT
        year = timezone.localdate().year
        assert re.fullmatch(rf"TES-{year}-\d{{4}}", contract.contract_number)
        assert [p.name for p in contract.parties.all()] == ["Test Company", "Globex"]
        assert [p.sort_order for p in contract.parties.all()] == [0, 1]

    def test_create_stamps_audit_fields(self, service, contract_data, user):
        contract = service.create(contract_data)

        assert contract.tenant_id == user.tenant_id
        assert contract.created_by_id == user.pk
        assert contract.updated_by_id == user.pk
        assert contract.last_status_change_date is not None
        assert contract.is_deleted is False

    def test_end_date_equal_to_start_date_is_rejected(self, service, contract_data):
        contract_data.update(start_date=date(2025, 1, 1), end_date=date(2025, 1, 1))

        with pytest.raises(InvalidArgumentError, match="End date must be after start date"):
            service.create(contract_data)
        assert Contract.objects.count() == 0

    def test_end_date_after_start_date_is_accepted(self, service, contract_data):
        contract_data.update(start_date=date(2025, 1, 1), end_date=date(2025, 6, 1))

        contract = service.create(contract_data)

        assert contract.end_date == date(2025, 6, 1)

    def test_open_ended_contract(self, service, contract_data):
        contract_data["end_date"] = None

        contract = service.create(contract_data)

        assert contract.end_date is None
        assert contract.is_expired is False

    def test_auto_renewal_requires_end_date(self, service, contract_data):
        contract_data.update(end_date=None, auto_renewal=True)

        with pytest.raises(InvalidArgumentError, match="Auto-renewal requires an end date"):
            service.create(contract_data)

    def test_reminder_days_copied_from_contract_type(self, service, contract_data):
        contract = service.create(contract_data)
        assert contract.renewal_reminder_days == 45

    def test_zero_reminder_days_copied_from_contract_type(self, service, contract_data):
        contract_data["renewal_reminder_days"] = 0
        contract = service.create(contract_data)
        assert contract.renewal_reminder_days == 45

    def test_explicit_reminder_days_kept(self, service, contract_data):
        contract_data["renewal_reminder_days"] = 10
        contract = service.create(contract_data)
        assert contract.renewal_reminder_days == 10

    def test_currency_defaults_to_tenant_currency_when_value_given(self, service, contract_data):
        contract_data["value"] = Decimal("1200.00")
        contract = service.create(contract_data)
        assert contract.currency == "EUR"

    def test_missing_title_is_rejected(self, service, contract_data):
        contract_data["title"] = "   "
        with pytest.raises(InvalidArgumentError, match="Title is required"):
            service.create(contract_data)

    def test_inactive_contract_type_is_invalid_reference(self, service, contract_data, contract_type):
        contract_type.is_active = False
        contract_type.save()

        with pytest.raises(InvalidReferenceError):
            service.create(contract_data)

    def test_other_tenants_contract_type_is_invalid_reference(self, service, contract_data, other_tenant):
        foreign_type = ContractType.objects.create(tenant=other_tenant, name="Lease")
        contract_data["contract_type_id"] = foreign_type.pk

        with pytest.raises(InvalidReferenceError):
            service.create(contract_data)

    def test_missing_parent_is_invalid_reference(self, service, contract_data):
        contract_data["parent_contract_id"] = 999999

        with pytest.raises(InvalidReferenceError, match="Parent contract not found"):
            service.create(contract_data)

    def test_parent_link(self, service, contract_data, contract):
        contract_data["parent_contract_id"] = contract.pk

        child = service.create(contract_data)

        assert child.parent_contract_id == contract.pk
        assert ContractStore(contract.tenant_id).child_ids(contract.pk) == [child.pk]

    def test_invalid_party_type_is_rejected(self, service, contract_data):
        contract_data["parties"].append({"party_type": "sponsor", "name": "Initech"})

        with pytest.raises(InvalidArgumentError, match="Invalid party type"):
            service.create(contract_data)
        assert ContractParty.objects.count() == 0

    def test_party_type_spelling_is_lenient(self, service, contract_data):
        contract_data["parties"] = [
            {"party_type": "EXTERNAL", "name": "Globex"},
            {"party_type": "LegalRepresentative", "name": "Counsel LLP"},
        ]

        contract = service.create(contract_data)

        assert [p.party_type for p in contract.parties.all()] == [
            ContractParty.PartyType.EXTERNAL,
            ContractParty.PartyType.LEGAL_REPRESENTATIVE,
        ]

    @pytest.mark.parametrize(
        "parties",
        [
            [],
            [{"party_type": "internal", "name": "Test Company"}],
            [{"party_type": "witness", "name": "Jane Roe"}, {"party_type": "legal_representative", "name": "Counsel LLP"}],
        ],
    )
    def test_external_party_is_required(self, service, contract_data, parties):
        contract_data["parties"] = parties

        with pytest.raises(InvalidArgumentError, match="at least one external party"):
            service.create(contract_data)
        assert Contract.objects.count() == 0

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("renewal_reminder_days", -5, "Renewal reminder must be between 1 and 365 days"),
            ("renewal_reminder_days", 366, "Renewal reminder must be between 1 and 365 days"),
            ("auto_renewal_duration_days", -1, "Auto-renewal duration must be between 1 and 3650 days"),
            ("auto_renewal_duration_days", 0, "Auto-renewal duration must be between 1 and 3650 days"),
            ("auto_renewal_duration_days", 3651, "Auto-renewal duration must be between 1 and 3650 days"),
        ],
    )
    def test_day_counts_out_of_range_are_rejected(self, service, contract_data, field, value, message):
        contract_data[field] = value

        with pytest.raises(InvalidArgumentError, match=message):
            service.create(contract_data)
        assert Contract.objects.count() == 0

    def test_day_count_bounds_are_accepted(self, service, contract_data):
        contract_data.update(renewal_reminder_days=365, auto_renewal_duration_days=3650)

        contract = service.create(contract_data)

        assert contract.renewal_reminder_days == 365
        assert contract.auto_renewal_duration_days == 3650

    def test_currency_is_normalized(self, service, contract_data):
        contract_data.update(value=Decimal("100.00"), currency=" usd ")

        contract = service.create(contract_data)

        assert contract.currency == "USD"

    @pytest.mark.parametrize("currency", ["EURO", "E1", "US1"])
    def test_invalid_currency_is_rejected(self, service, contract_data, currency):
        contract_data.update(value=Decimal("100.00"), currency=currency)

        with pytest.raises(InvalidArgumentError, match="three-letter ISO code"):
            service.create(contract_data)

    def test_failed_party_insert_leaves_no_contract(self, service, contract_data):
        with patch.object(ContractStore, "replace_parties", side_effect=DatabaseError("disk full")):
            with pytest.raises(InfrastructureError) as exc_info:
                service.create(contract_data)

        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert Contract.objects.count() == 0
        assert ContractParty.objects.count() == 0


class TestUpdateContract:
    def test_update_draft(self, service, contract):
        updated = service.update(contract.pk, {"title": "Window cleaning", "department": "Facilities"})

        assert updated.title == "Window cleaning"
        assert updated.department == "Facilities"

    def test_update_under_review(self, service, contract, set_status):
        set_status(contract, Contract.Status.UNDER_REVIEW)
        updated = service.update(contract.pk, {"description": "Revised scope"})
        assert updated.description == "Revised scope"

    def test_update_active_contract_fails_and_leaves_it_unchanged(self, service, active_contract):
        before = Contract.objects.get(pk=active_contract.pk)

        with pytest.raises(InvalidStateError):
            service.update(active_contract.pk, {"title": "Changed"})

        after = Contract.objects.get(pk=active_contract.pk)
        assert after.title == before.title
        assert after.updated_at == before.updated_at

    def test_update_validates_dates_against_current_values(self, service, contract):
        with pytest.raises(InvalidArgumentError):
            service.update(contract.pk, {"end_date": contract.start_date - timedelta(days=1)})

    def test_update_ignores_protected_fields(self, service, contract):
        updated = service.update(
            contract.pk,
            {
                "title": "New title",
                "status": "active",
                "contract_number": "HACK-0001",
                "is_deleted": True,
                "signed_date": timezone.now(),
            },
        )

        assert updated.title == "New title"
        assert updated.status == Contract.Status.DRAFT
        assert updated.contract_number == contract.contract_number
        assert updated.is_deleted is False
        assert updated.signed_date is None

    def test_update_to_inactive_type_is_invalid_reference(self, service, contract, tenant):
        retired = ContractType.objects.create(tenant=tenant, name="Retired", is_active=False)

        with pytest.raises(InvalidReferenceError):
            service.update(contract.pk, {"contract_type_id": retired.pk})

    @pytest.mark.parametrize(
        "patch",
        [{"auto_renewal_duration_days": -1}, {"renewal_reminder_days": -5}, {"currency": "dollars"}],
    )
    def test_update_rejects_invalid_values(self, service, contract, patch):
        with pytest.raises(InvalidArgumentError):
            service.update(contract.pk, patch)

        stored = service.get(contract.pk)
        assert stored.auto_renewal_duration_days is None
        assert stored.renewal_reminder_days == 45

    def test_update_ignores_null_flags(self, service, contract):
        service.update(contract.pk, {"auto_renewal": True})

        updated = service.update(contract.pk, {"auto_renewal": None, "notifications_enabled": None})

        assert updated.auto_renewal is True
        assert updated.notifications_enabled is True

    def test_update_replaces_parties(self, service, contract):
        updated = service.update(contract.pk, {"parties": [{"party_type": "witness", "name": "Jane Roe"}]})

        assert [p.name for p in updated.parties.all()] == ["Jane Roe"]

    def test_update_cannot_replace_signed_parties(self, service, contract):
        party = contract.parties.first()
        service.sign_party(contract.pk, party.pk)

        with pytest.raises(InvalidStateError):
            service.update(contract.pk, {"parties": []})
        assert contract.parties.count() == 2

    def test_update_missing_contract(self, service):
        with pytest.raises(NotFoundError):
            service.update(424242, {"title": "Nope"})


class TestDeleteContract:
    def test_delete_draft_removes_contract_and_parties(self, service, contract):
        assert service.delete(contract.pk) == "deleted"

        with pytest.raises(NotFoundError):
            service.get(contract.pk)
        assert ContractParty.objects.filter(contract_id=contract.pk).count() == 0

    def test_delete_active_cancels_and_keeps_row(self, service, active_contract, user):
        assert service.delete(active_contract.pk) == "cancelled"

        contract = service.get(active_contract.pk)
        assert contract.status == Contract.Status.CANCELLED
        assert contract.status_change_reason == "Contract deleted"
        assert contract.is_deleted is True
        assert contract.deleted_at is not None
        assert contract.deleted_by_id == user.pk

    def test_cancelled_contract_hidden_from_listing_unless_requested(self, service, active_contract):
        service.delete(active_contract.pk)

        assert service.list_contracts().total_count == 0
        assert service.list_contracts(include_deleted=True).total_count == 1

    @pytest.mark.parametrize("status", [Contract.Status.DRAFT, Contract.Status.ACTIVE, Contract.Status.SUSPENDED])
    def test_delete_with_child_contract_fails(self, service, contract, contract_data, set_status, status):
        service.create(dict(contract_data, parent_contract_id=contract.pk))
        set_status(contract, status)

        with pytest.raises(InvalidStateError, match="dependent"):
            service.delete(contract.pk)
        assert Contract.objects.get(pk=contract.pk).status == status

    @pytest.mark.parametrize(
        "status",
        [Contract.Status.TERMINATED, Contract.Status.EXPIRED, Contract.Status.RENEWED, Contract.Status.CANCELLED],
    )
    def test_delete_finalized_fails(self, service, contract, set_status, status):
        set_status(contract, status)

        with pytest.raises(InvalidStateError):
            service.delete(contract.pk)

    def test_delete_missing_contract(self, service):
        with pytest.raises(NotFoundError):
            service.delete(424242)


class TestRenewContract:
    def test_renew_active_contract(self, service, active_contract):
        renewal = service.renew(active_contract.pk)

        assert renewal.status == Contract.Status.DRAFT
        assert renewal.parent_contract_id == active_contract.pk
        assert renewal.contract_number != active_contract.contract_number
        assert renewal.start_date == date(2026, 1, 1)
        assert renewal.end_date == date(2026, 1, 1) + timedelta(days=364)
        assert renewal.title == active_contract.title
        assert [p.name for p in renewal.parties.all()] == ["Test Company", "Globex"]

        original = service.get(active_contract.pk)
        assert original.status == Contract.Status.RENEWED
        assert original.status_change_reason == f"Renewed by {renewal.contract_number}"

    def test_renew_with_overrides(self, service, active_contract):
        renewal = service.renew(
            active_contract.pk,
            {"title": "Cleaning services 2026", "value": Decimal("5000.00")},
            duration_days=180,
        )

        assert renewal.title == "Cleaning services 2026"
        assert renewal.value == Decimal("5000.00")
        assert renewal.end_date == renewal.start_date + timedelta(days=180)

    def test_renew_expired_contract(self, service, contract, set_status):
        set_status(contract, Contract.Status.EXPIRED)

        renewal = service.renew(contract.pk)

        assert renewal.parent_contract_id == contract.pk
        assert service.get(contract.pk).status == Contract.Status.RENEWED

    @pytest.mark.parametrize("duration_days", [-30, 0, 3651])
    def test_renew_rejects_out_of_range_duration(self, service, active_contract, duration_days):
        with pytest.raises(InvalidArgumentError, match="Renewal duration must be between 1 and 3650 days"):
            service.renew(active_contract.pk, duration_days=duration_days)

        assert service.get(active_contract.pk).status == Contract.Status.ACTIVE
        assert Contract.objects.count() == 1

    def test_failed_renewal_leaves_original_active(self, service, active_contract):
        with pytest.raises(InvalidArgumentError):
            service.renew(active_contract.pk, {"end_date": date(2025, 6, 1)})

        assert service.get(active_contract.pk).status == Contract.Status.ACTIVE
        assert Contract.objects.count() == 1

    @pytest.mark.parametrize("status", [Contract.Status.DRAFT, Contract.Status.SUSPENDED, Contract.Status.RENEWED])
    def test_renew_requires_active_or_expired(self, service, contract, set_status, status):
        set_status(contract, status)

        with pytest.raises(InvalidStateError):
            service.renew(contract.pk)

    def test_renew_requires_renewable_type(self, service, active_contract, contract_type):
        contract_type.supports_renewal = False
        contract_type.save()

        with pytest.raises(InvalidStateError):
            service.renew(active_contract.pk)
        assert service.get(active_contract.pk).status == Contract.Status.ACTIVE

    def test_renewed_contract_cannot_be_deleted(self, service, active_contract):
        service.renew(active_contract.pk)

        with pytest.raises(InvalidStateError):
            service.delete(active_contract.pk)


class TestSignParty:
    def test_sign_party(self, service, contract):
        party = contract.parties.get(name="Globex")

        signed = service.sign_party(contract.pk, party.pk, signed_by_name="Hank Scorpio", signed_by_title="CEO")

        party = signed.parties.get(pk=party.pk)
        assert party.is_signed
        assert party.signed_by_name == "Hank Scorpio"
        assert party.signed_by_title == "CEO"

    def test_signature_cannot_be_recorded_twice(self, service, contract):
        party = contract.parties.first()
        service.sign_party(contract.pk, party.pk, signed_by_name="First")

        with pytest.raises(InvalidStateError):
            service.sign_party(contract.pk, party.pk, signed_by_name="Second")
        party.refresh_from_db()
        assert party.signed_by_name == "First"

    def test_fully_signed_when_all_required_parties_signed(self, service, contract):
        for party in contract.parties.all():
            service.sign_party(contract.pk, party.pk)

        assert service.get(contract.pk).is_fully_signed

    def test_finalized_contract_cannot_be_signed(self, service, contract, set_status):
        set_status(contract, Contract.Status.TERMINATED)

        with pytest.raises(InvalidStateError):
            service.sign_party(contract.pk, contract.parties.first().pk)

    def test_unknown_party(self, service, contract):
        with pytest.raises(NotFoundError, match="Party not found"):
            service.sign_party(contract.pk, 999999)


class TestTenantIsolation:
    def test_other_tenant_cannot_see_contract(self, other_service, contract):
        with pytest.raises(NotFoundError):
            other_service.get(contract.pk)
        assert other_service.list_contracts().total_count == 0

    @pytest.mark.parametrize(
        "operation",
        [
            lambda s, pk: s.update(pk, {"title": "Hijacked"}),
            lambda s, pk: s.change_status(pk, "under_review"),
            lambda s, pk: s.delete(pk),
            lambda s, pk: s.renew(pk),
            lambda s, pk: s.sign_party(pk, 1),
        ],
        ids=["update", "change_status", "delete", "renew", "sign_party"],
    )
    def test_other_tenant_cannot_mutate_contract(self, other_service, contract, operation):
        with pytest.raises(NotFoundError):
            operation(other_service, contract.pk)

        contract.refresh_from_db()
        assert contract.title == "Cleaning services"
        assert contract.status == Contract.Status.DRAFT

    def test_numbers_are_per_tenant(self, service, other_service, contract_data, other_tenant):
        foreign_type = ContractType.objects.create(tenant=other_tenant, name="Service Agreement")
        first = service.create(contract_data)
        second = other_service.create(dict(contract_data, contract_type_id=foreign_type.pk))

        assert first.contract_number.endswith("-0001")
        assert second.contract_number.startswith("OTH-")
        assert second.contract_number.endswith("-0001")


class TestQueries:
    def test_list_search_and_status_filter(self, service, contract_data, set_status):
        first = service.create(contract_data)
        service.create(dict(contract_data, title="Catering", tags="food,events"))
        set_status(first, Contract.Status.ACTIVE)

        assert service.list_contracts(search="cater").total_count == 1
        assert service.list_contracts(search="events").total_count == 1
        assert service.list_contracts(status="Active").items == [first]

    def test_list_unknown_status_is_invalid_argument(self, service):
        with pytest.raises(InvalidArgumentError):
            service.list_contracts(status="archived")

    def test_list_pagination(self, service, contract_data):
        for index in range(5):
            service.create(dict(contract_data, title=f"Contract {index}"))

        page = service.list_contracts(page=2, page_size=2)

        assert page.total_count == 5
        assert page.total_pages == 3
        assert len(page.items) == 2
        assert page.has_next_page
        assert page.has_previous_page

    def test_contracts_by_type(self, service, contract, contract_type, tenant):
        other_type = ContractType.objects.create(tenant=tenant, name="Lease")

        assert service.contracts_by_type(contract_type.pk) == [contract]
        assert service.contracts_by_type(other_type.pk) == []

    def test_active_contracts(self, service, active_contract, contract_data):
        service.create(dict(contract_data, title="Still a draft"))

        assert service.active_contracts() == [active_contract]

    def test_expiring_contracts(self, service, contract_data, set_status):
        today = timezone.localdate()
        soon = service.create(dict(contract_data, start_date=today - timedelta(days=300), end_date=today + timedelta(days=10)))
        later = service.create(dict(contract_data, start_date=today, end_date=today + timedelta(days=200)))
        muted = service.create(
            dict(
                contract_data,
                start_date=today - timedelta(days=300),
                end_date=today + timedelta(days=5),
                notifications_enabled=False,
            )
        )
        for contract in (soon, later, muted):
            set_status(contract, Contract.Status.ACTIVE)

        assert service.expiring_contracts(30) == [soon]
        assert service.expiring_contracts(365) == [soon, later]

    def test_dashboard_stats(self, service, contract_data, set_status):
        today = timezone.localdate()
        service.create(contract_data)
        expiring = service.create(dict(contract_data, start_date=today - timedelta(days=30), end_date=today + timedelta(days=3)))
        set_status(expiring, Contract.Status.ACTIVE)

        stats = service.dashboard_stats()

        assert stats.total_contracts == 2
        assert stats.active_contracts == 1
        assert stats.expiring_in_30_days == 1
        assert stats.expiring_in_7_days == 1
        assert stats.draft_contracts == 1

    def test_status_options(self, service, contract):
        options = service.status_options(contract.pk)

        assert options["current"]["value"] == "draft"
        assert [o["value"] for o in options["next"]] == ["under_review", "cancelled"]
