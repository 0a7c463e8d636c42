"""Tests for the contract status workflow."""
import pytest

from apps.contracts.exceptions import InvalidArgumentError, InvalidTransitionError
from apps.contracts.models import Contract
from apps.contracts.status import (
    TRANSITIONS,
    ContractStatus,
    can_transition,
    is_active,
    is_editable,
    is_finalized,
    parse_status,
    status_options,
    valid_next_statuses,
)


ALL_STATUSES = list(ContractStatus)


class TestParseStatus:
    @pytest.mark.parametrize(
        "raw",
        ["under_review", "UnderReview", "UNDER_REVIEW", "Under Review", "under-review"],
    )
    def test_lenient_spellings(self, raw):
        assert parse_status(raw) == ContractStatus.UNDER_REVIEW

    @pytest.mark.parametrize("raw", ["", "archived", None, 3])
    def test_unknown_value_is_invalid_argument(self, raw):
        with pytest.raises(InvalidArgumentError):
            parse_status(raw)


class TestStatusPredicates:
    def test_editable_statuses(self):
        assert {s for s in ALL_STATUSES if is_editable(s)} == {
            ContractStatus.DRAFT,
            ContractStatus.UNDER_REVIEW,
        }

    def test_finalized_statuses(self):
        assert {s for s in ALL_STATUSES if is_finalized(s)} == {
            ContractStatus.EXPIRED,
            ContractStatus.TERMINATED,
            ContractStatus.CANCELLED,
            ContractStatus.RENEWED,
        }

    def test_only_active_is_active(self):
        assert [s for s in ALL_STATUSES if is_active(s)] == [ContractStatus.ACTIVE]

    def test_terminal_statuses_have_no_successors(self):
        for status in (ContractStatus.TERMINATED, ContractStatus.RENEWED, ContractStatus.CANCELLED):
            assert valid_next_statuses(status) == []

    def test_active_cannot_be_cancelled_directly(self):
        assert not can_transition(ContractStatus.ACTIVE, ContractStatus.CANCELLED)

    def test_status_options_lists_next_statuses_with_display_data(self):
        options = status_options(ContractStatus.APPROVED)

        assert options["current"] == {"value": "approved", "display": "Approved", "color": "#20c997"}
        assert [option["value"] for option in options["next"]] == ["active", "cancelled"]


@pytest.mark.parametrize("from_status", ALL_STATUSES)
@pytest.mark.parametrize("to_status", ALL_STATUSES)
def test_change_status_follows_transition_table(service, contract, set_status, from_status, to_status):
    """ChangeStatus succeeds exactly for the pairs in the transition table."""
    set_status(contract, from_status)
    before = Contract.objects.get(pk=contract.pk)

    if to_status in TRANSITIONS[from_status]:
        updated = service.change_status(contract.pk, to_status, reason="workflow")
        assert updated.status == to_status
        assert updated.status_change_reason == "workflow"
        assert updated.last_status_change_date >= before.last_status_change_date
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            service.change_status(contract.pk, to_status, reason="workflow")
        assert exc_info.value.from_status == from_status
        assert exc_info.value.to_status == to_status

        after = Contract.objects.get(pk=contract.pk)
        assert after.status == before.status
        assert after.last_status_change_date == before.last_status_change_date
        assert after.status_change_reason == before.status_change_reason
        assert after.updated_at == before.updated_at


class TestChangeStatusSideEffects:
    def _walk_to_active(self, service, contract):
        for status in ("under_review", "pending_approval", "approved", "active"):
            contract = service.change_status(contract.pk, status)
        return contract

    def test_activation_sets_signed_date_once(self, service, contract):
        """A second Active -> Suspended -> Active cycle keeps the first signed date."""
        assert contract.signed_date is None

        contract = self._walk_to_active(service, contract)
        first_signed = contract.signed_date
        assert first_signed is not None

        service.change_status(contract.pk, "suspended", reason="payment overdue")
        contract = service.change_status(contract.pk, "active")

        assert contract.signed_date == first_signed

    def test_approval_records_approver_and_notes(self, service, contract, user):
        service.change_status(contract.pk, "under_review")
        service.change_status(contract.pk, "pending_approval")
        contract = service.change_status(contract.pk, "approved", notes="Looks good")

        assert contract.approved_by_id == user.pk
        assert contract.approved_date is not None
        assert contract.approval_notes == "Looks good"

    def test_transition_records_actor(self, service, contract, user):
        contract = service.change_status(contract.pk, "under_review", reason="Ready")

        assert contract.last_status_changed_by_id == user.pk
        assert contract.updated_by_id == user.pk
        assert contract.status_change_reason == "Ready"

    def test_lenient_status_name(self, service, contract):
        contract = service.change_status(contract.pk, "UnderReview")
        assert contract.status == ContractStatus.UNDER_REVIEW

    def test_unparseable_status_is_invalid_argument(self, service, contract):
        with pytest.raises(InvalidArgumentError):
            service.change_status(contract.pk, "archived")

        contract.refresh_from_db()
        assert contract.status == ContractStatus.DRAFT

    def test_transition_error_message(self, service, contract):
        with pytest.raises(InvalidTransitionError, match="Cannot change status from draft to active"):
            service.change_status(contract.pk, "active")
