"""ORM models for the reconciliation kernel."""

from recon_kernel.models.movement import ExternalMovement, MovementState
from recon_kernel.models.obligation import (
    Obligation,
    ObligationDirection,
    ObligationState,
)
from recon_kernel.models.posting import LedgerPosting, PostingLine, PostingSource

__all__ = [
    "ExternalMovement",
    "MovementState",
    "Obligation",
    "ObligationDirection",
    "ObligationState",
    "LedgerPosting",
    "PostingLine",
    "PostingSource",
]
