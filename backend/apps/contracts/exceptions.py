"""Errors raised by the contract lifecycle."""


class ContractError(Exception):
    """Base class for contract lifecycle errors. ``code`` names the error kind."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ContractError):
    """Entity absent or not visible to the tenant."""

    code = "not_found"


class InvalidArgumentError(ContractError):
    """Malformed input such as bad date ordering or an unparseable status."""

    code = "invalid_argument"


class InvalidReferenceError(ContractError):
    """A referenced contract type or parent contract is missing or inactive."""

    code = "invalid_reference"


class InvalidTransitionError(ContractError):
    """Status change not permitted by the transition table."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Cannot change status from {from_status} to {to_status}.")
        self.from_status = from_status
        self.to_status = to_status


class InvalidStateError(ContractError):
    """Operation not allowed in the contract's current lifecycle state."""

    code = "invalid_state"


class ConflictError(ContractError):
    """Uniqueness violation that could not be resolved."""

    code = "conflict"


class InfrastructureError(ContractError):
    """The store failed. The original exception is chained as ``__cause__``."""

    code = "infrastructure"
