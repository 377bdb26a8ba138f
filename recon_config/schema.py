"""
Configuration schema (``recon_config.schema``).

Responsibility:
    Typed, frozen configuration for the reconciliation engine: scoring
    weights and gates, settlement account codes, and the default currency.

Architecture position:
    Config layer.  Pure dataclasses, no I/O.  Imported by recon_engines (the
    scorer consumes MatchScoringConfig) and recon_services.  The kernel never
    imports it; services pass plain values down.

Invariants enforced:
    - Weights are non-negative Decimals; thresholds lie in [0, 1].
    - Temporal gate bounds are non-negative and max_days_after > 0.
    - Validation happens in ``__post_init__`` and raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# A candidate is suggested only at or above this score.
HIGH_CONFIDENCE_THRESHOLD = Decimal("0.7")

SIMILARITY_MODES = ("edit_distance", "containment")


@dataclass(frozen=True)
class MatchScoringConfig:
    """
    Weights, tolerances and gates used by MatchScorer.

    Contract:
        Defaults reproduce the production scoring rules: a movement may
        precede its target by at most 2 days and follow it by at most 60;
        amounts within 10 units are exact.
    """

    max_days_before: int = 2
    max_days_after: int = 60
    exact_amount_tolerance: Decimal = Decimal("10")
    counterparty_weight: Decimal = Decimal("0.4")
    exact_amount_weight: Decimal = Decimal("0.5")
    partial_amount_weight: Decimal = Decimal("0.3")
    proximity_weight: Decimal = Decimal("0.1")
    text_similarity_threshold: float = 0.6
    high_confidence_threshold: Decimal = HIGH_CONFIDENCE_THRESHOLD
    similarity_mode: str = "edit_distance"

    def __post_init__(self) -> None:
        if self.max_days_before < 0:
            raise ValueError("max_days_before cannot be negative")
        if self.max_days_after <= 0:
            raise ValueError("max_days_after must be positive")
        if self.exact_amount_tolerance < 0:
            raise ValueError("exact_amount_tolerance cannot be negative")
        for name in (
            "counterparty_weight",
            "exact_amount_weight",
            "partial_amount_weight",
            "proximity_weight",
        ):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ValueError(f"{name} must be a Decimal")
            if value < 0:
                raise ValueError(f"{name} cannot be negative")
        if not 0 <= self.text_similarity_threshold <= 1:
            raise ValueError("text_similarity_threshold must be within [0, 1]")
        if not Decimal("0") <= self.high_confidence_threshold <= Decimal("1"):
            raise ValueError("high_confidence_threshold must be within [0, 1]")
        if self.similarity_mode not in SIMILARITY_MODES:
            raise ValueError(
                f"similarity_mode must be one of {SIMILARITY_MODES}, "
                f"got {self.similarity_mode!r}"
            )


@dataclass(frozen=True)
class SettlementAccounts:
    """Chart-of-accounts codes used for synthesized settlement postings."""

    bank: str = "110201"
    receivable: str = "110401"
    payable: str = "210201"

    def __post_init__(self) -> None:
        for name in ("bank", "receivable", "payable"):
            if not getattr(self, name):
                raise ValueError(f"settlement account '{name}' is required")
        if self.bank in (self.receivable, self.payable):
            raise ValueError("bank account must differ from receivable/payable accounts")


@dataclass(frozen=True)
class ReconciliationConfig:
    """Complete engine configuration."""

    scoring: MatchScoringConfig = field(default_factory=MatchScoringConfig)
    settlement_accounts: SettlementAccounts = field(default_factory=SettlementAccounts)
    default_currency: str = "CLP"
    config_id: str = "default"
    version: int = 1
    checksum: str = ""

    def __post_init__(self) -> None:
        code = self.default_currency
        if not (isinstance(code, str) and len(code) == 3 and code.isalpha() and code.isupper()):
            raise ValueError(f"default_currency must be an uppercase ISO 4217 code, got {code!r}")
        if self.version < 1:
            raise ValueError("version must be >= 1")
