"""Pure domain layer: values, DTOs, the ledger validator and the clock."""

from recon_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from recon_kernel.domain.dtos import (
    AmountRule,
    CashFlow,
    CommitResult,
    MatchCandidate,
    MovementSnapshot,
    NormalizedMovement,
    PostingLineSpec,
    ScoringTarget,
    TargetKind,
)
from recon_kernel.domain.ledger_validator import LedgerInvariantValidator
from recon_kernel.domain.values import Money, enum_value, normalize_currency, to_amount

__all__ = [
    "AmountRule",
    "CashFlow",
    "Clock",
    "CommitResult",
    "DeterministicClock",
    "LedgerInvariantValidator",
    "MatchCandidate",
    "Money",
    "MovementSnapshot",
    "NormalizedMovement",
    "PostingLineSpec",
    "ScoringTarget",
    "SystemClock",
    "TargetKind",
    "enum_value",
    "normalize_currency",
    "to_amount",
]
