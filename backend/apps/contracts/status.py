"""Contract status policy.

The transition table below is the only place that decides which status
changes are legal. Callers ask ``assert_transition`` and then let
``apply_transition`` stamp the bookkeeping fields and side effects.
"""
from django.db import models
from django.utils import timezone

from .exceptions import InvalidArgumentError, InvalidTransitionError


class ContractStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    UNDER_REVIEW = "under_review", "Under Review"
    PENDING_APPROVAL = "pending_approval", "Pending Approval"
    APPROVED = "approved", "Approved"
    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"
    EXPIRED = "expired", "Expired"
    TERMINATED = "terminated", "Terminated"
    RENEWED = "renewed", "Renewed"
    CANCELLED = "cancelled", "Cancelled"


TRANSITIONS: dict[str, frozenset[str]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.UNDER_REVIEW, ContractStatus.CANCELLED}),
    ContractStatus.UNDER_REVIEW: frozenset(
        {ContractStatus.DRAFT, ContractStatus.PENDING_APPROVAL, ContractStatus.CANCELLED}
    ),
    ContractStatus.PENDING_APPROVAL: frozenset(
        {ContractStatus.UNDER_REVIEW, ContractStatus.APPROVED, ContractStatus.CANCELLED}
    ),
    ContractStatus.APPROVED: frozenset({ContractStatus.ACTIVE, ContractStatus.CANCELLED}),
    ContractStatus.ACTIVE: frozenset(
        {
            ContractStatus.SUSPENDED,
            ContractStatus.EXPIRED,
            ContractStatus.TERMINATED,
            ContractStatus.RENEWED,
        }
    ),
    ContractStatus.SUSPENDED: frozenset(
        {ContractStatus.ACTIVE, ContractStatus.TERMINATED, ContractStatus.CANCELLED}
    ),
    ContractStatus.EXPIRED: frozenset({ContractStatus.RENEWED}),
    ContractStatus.TERMINATED: frozenset(),
    ContractStatus.RENEWED: frozenset(),
    ContractStatus.CANCELLED: frozenset(),
}

EDITABLE_STATUSES = frozenset({ContractStatus.DRAFT, ContractStatus.UNDER_REVIEW})

FINALIZED_STATUSES = frozenset(
    {
        ContractStatus.EXPIRED,
        ContractStatus.TERMINATED,
        ContractStatus.CANCELLED,
        ContractStatus.RENEWED,
    }
)

RENEWABLE_STATUSES = frozenset({ContractStatus.ACTIVE, ContractStatus.EXPIRED})

STATUS_COLORS = {
    ContractStatus.DRAFT: "#6c757d",
    ContractStatus.UNDER_REVIEW: "#fd7e14",
    ContractStatus.PENDING_APPROVAL: "#ffc107",
    ContractStatus.APPROVED: "#20c997",
    ContractStatus.ACTIVE: "#28a745",
    ContractStatus.SUSPENDED: "#6f42c1",
    ContractStatus.EXPIRED: "#dc3545",
    ContractStatus.TERMINATED: "#dc3545",
    ContractStatus.RENEWED: "#17a2b8",
    ContractStatus.CANCELLED: "#6c757d",
}


def _normalize(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch not in "_- ")


_LOOKUP = {_normalize(status.value): status for status in ContractStatus}


def parse_status(value) -> ContractStatus:
    """Parse a status name leniently ("UnderReview", "under_review", "Under Review")."""
    if isinstance(value, ContractStatus):
        return value
    if isinstance(value, str):
        status = _LOOKUP.get(_normalize(value))
        if status is not None:
            return status
    raise InvalidArgumentError("Invalid status value.")


def valid_next_statuses(status) -> list[ContractStatus]:
    """Legal targets from ``status``, in declaration order."""
    allowed = TRANSITIONS.get(status, frozenset())
    return [candidate for candidate in ContractStatus if candidate in allowed]


def can_transition(from_status, to_status) -> bool:
    return to_status in TRANSITIONS.get(from_status, frozenset())


def assert_transition(from_status, to_status) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(str(from_status), str(to_status))


def is_editable(status) -> bool:
    return status in EDITABLE_STATUSES


def is_finalized(status) -> bool:
    return status in FINALIZED_STATUSES


def is_active(status) -> bool:
    return status == ContractStatus.ACTIVE


def apply_transition(contract, new_status, actor_id=None, reason=None, notes=None, now=None):
    """Move ``contract`` to ``new_status`` in memory and return the previous status.

    The transition must already be known to be legal. Every transition stamps
    the change date, actor, and reason. Entering Active sets the signed date
    once; entering Approved records the approver.
    """
    now = now or timezone.now()
    previous = contract.status

    contract.status = new_status
    contract.last_status_change_date = now
    contract.last_status_changed_by_id = actor_id
    contract.status_change_reason = reason
    contract.updated_by_id = actor_id

    if new_status == ContractStatus.ACTIVE:
        if contract.signed_date is None:
            contract.signed_date = now
    elif new_status == ContractStatus.APPROVED:
        contract.approved_by_id = actor_id
        contract.approved_date = now
        contract.approval_notes = notes

    return previous


def status_info(status) -> dict:
    status = ContractStatus(status)
    return {"value": status.value, "display": status.label, "color": STATUS_COLORS[status]}


def status_options(status) -> dict:
    """The current status and the legal next statuses with display data."""
    return {
        "current": status_info(status),
        "next": [status_info(candidate) for candidate in valid_next_statuses(status)],
    }
