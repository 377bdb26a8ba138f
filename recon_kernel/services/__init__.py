"""Kernel write services. Each flushes within the caller's transaction."""

from recon_kernel.services.base import BaseService
from recon_kernel.services.ledger_posting_service import LedgerPostingService
from recon_kernel.services.movement_intake_service import (
    IntakeResult,
    MovementIntakeService,
)
from recon_kernel.services.obligation_service import ObligationService

__all__ = [
    "BaseService",
    "IntakeResult",
    "LedgerPostingService",
    "MovementIntakeService",
    "ObligationService",
]
