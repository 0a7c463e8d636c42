"""Contract services."""

from .lifecycle import (
    ContractDashboard,
    ContractLifecycleService,
)

__all__ = [
    "ContractDashboard",
    "ContractLifecycleService",
]
