"""
recon_engines.scoring -- Movement-to-target match scoring.

Responsibility:
    Score one (movement, target) pair in [0, 1] from four signals: a
    temporal gate, a counterparty bonus, an amount rule and date proximity.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes the kernel's
    MovementSnapshot / ScoringTarget DTOs and a MatchScoringConfig.

Invariants enforced:
    - Outside the temporal gate the score is exactly 0.
    - A different currency scores exactly 0.
    - A zero-amount movement scores exactly 0.
    - Without an exact amount, a partial amount needs corroboration
      (counterparty match or similar description); otherwise 0.
    - All arithmetic is Decimal; the result is clamped to 1.

Scoring rules (defaults):

    daysDiff = movement_date - target_date
    gate      -2 <= daysDiff <= 60                    else 0
    +0.4      extracted counterparty == target counterparty
    +0.5      |movement| - magnitude within 10        (exact)
    +0.3      |movement| <= magnitude and corroborated (partial)
              otherwise 0
    +0.1 * max(0, 1 - |daysDiff| / 60)                (proximity)
    min(score, 1)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from recon_config.schema import HIGH_CONFIDENCE_THRESHOLD, MatchScoringConfig
from recon_engines.counterparty import extract_counterparty_id, normalize_counterparty_id
from recon_engines.similarity import SimilarityScorer
from recon_kernel.domain.dtos import AmountRule, MovementSnapshot, ScoringTarget

_ZERO = Decimal("0")
_ONE = Decimal("1")

__all__ = [
    "HIGH_CONFIDENCE_THRESHOLD",
    "MatchScorer",
    "RejectReason",
    "ScoreBreakdown",
]


class RejectReason:
    CURRENCY = "currency_mismatch"
    TEMPORAL = "outside_temporal_window"
    AMOUNT = "amount_not_corroborated"


@dataclass(frozen=True)
class ScoreBreakdown:
    """
    Result of evaluating one pair.

    Guarantees:
        - score == 0 whenever rejected_reason is set.
        - amount_rule is None only for rejected pairs.
    """

    score: Decimal
    days_diff: int | None
    counterparty_matched: bool
    amount_rule: AmountRule | None
    similarity: float | None = None
    rejected_reason: str | None = None

    @property
    def is_rejected(self) -> bool:
        return self.rejected_reason is not None

    @classmethod
    def rejected(cls, reason: str, days_diff: int | None = None,
                 counterparty_matched: bool = False,
                 similarity: float | None = None) -> ScoreBreakdown:
        return cls(
            score=_ZERO,
            days_diff=days_diff,
            counterparty_matched=counterparty_matched,
            amount_rule=None,
            similarity=similarity,
            rejected_reason=reason,
        )


class MatchScorer:
    """
    Pure pair scorer.

    Contract:
        ``score`` and ``evaluate`` are deterministic functions of their
        arguments and the config.  They never raise on well-formed DTOs.
    """

    def __init__(self, config: MatchScoringConfig | None = None):
        self.config = config or MatchScoringConfig()
        self._similarity = SimilarityScorer(self.config.similarity_mode)

    def score(self, movement: MovementSnapshot, target: ScoringTarget) -> Decimal:
        return self.evaluate(movement, target).score

    def evaluate(self, movement: MovementSnapshot, target: ScoringTarget) -> ScoreBreakdown:
        cfg = self.config

        if movement.currency != target.currency:
            return ScoreBreakdown.rejected(RejectReason.CURRENCY)

        days_diff = (movement.movement_date - target.target_date).days
        if days_diff < -cfg.max_days_before or days_diff > cfg.max_days_after:
            return ScoreBreakdown.rejected(RejectReason.TEMPORAL, days_diff=days_diff)

        extracted = extract_counterparty_id(movement.description)
        counterparty_matched = (
            extracted is not None
            and extracted == normalize_counterparty_id(target.counterparty_id)
        )

        score = cfg.counterparty_weight if counterparty_matched else _ZERO

        tx_amount = movement.magnitude
        candidate_amount = target.magnitude
        similarity: float | None = None

        if tx_amount == _ZERO:
            return ScoreBreakdown.rejected(
                RejectReason.AMOUNT,
                days_diff=days_diff,
                counterparty_matched=counterparty_matched,
            )

        if abs(tx_amount - candidate_amount) < cfg.exact_amount_tolerance:
            amount_rule = AmountRule.EXACT
            score += cfg.exact_amount_weight
        elif tx_amount <= candidate_amount:
            corroborated = counterparty_matched
            if not corroborated:
                # Similarity is only computed when it can change the outcome.
                similarity = self._similarity.score(movement.description, target.description)
                corroborated = similarity > cfg.text_similarity_threshold
            if not corroborated:
                return ScoreBreakdown.rejected(
                    RejectReason.AMOUNT,
                    days_diff=days_diff,
                    counterparty_matched=counterparty_matched,
                    similarity=similarity,
                )
            amount_rule = AmountRule.PARTIAL
            score += cfg.partial_amount_weight
        else:
            return ScoreBreakdown.rejected(
                RejectReason.AMOUNT,
                days_diff=days_diff,
                counterparty_matched=counterparty_matched,
            )

        decay = _ONE - Decimal(abs(days_diff)) / Decimal(cfg.max_days_after)
        if decay > _ZERO:
            score += cfg.proximity_weight * decay

        return ScoreBreakdown(
            score=min(score, _ONE),
            days_diff=days_diff,
            counterparty_matched=counterparty_matched,
            amount_rule=amount_rule,
            similarity=similarity,
        )
