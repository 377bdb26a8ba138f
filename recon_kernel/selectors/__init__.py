"""Read-only selectors for the reconciliation kernel."""

from recon_kernel.selectors.base import BaseSelector
from recon_kernel.selectors.reconciliation_selector import (
    ReconciliationSelector,
    ReconciliationStatusCounts,
)

__all__ = [
    "BaseSelector",
    "ReconciliationSelector",
    "ReconciliationStatusCounts",
]
