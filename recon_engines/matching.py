"""
recon_engines.matching -- Best-match selection for movements.

Responsibility:
    Given one movement and the tenant's open targets, pick the single best
    target whose score reaches the high-confidence threshold, and explain
    the choice in a human readable rationale.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The service layer
    (ReconciliationMatcher) loads targets through the selector and calls
    ``select_best`` once per unreconciled movement.

Invariants enforced:
    - At most one candidate per movement, with score >= threshold.
    - Ties resolve to the earliest target in the order supplied (the
      selector's canonical order).
    - An obligation is only eligible for a movement whose sign matches its
      direction: inflows against receivables, outflows against payables.
    - Pruning by magnitude never changes the result: a target whose
      magnitude is below |amount| - tolerance can satisfy neither the exact
      nor the partial amount rule and would score 0.

Audit relevance:
    Every ``select_best`` call is traced via ``@traced_engine`` with a
    fingerprint of the movement.
"""

from __future__ import annotations

import time
from bisect import bisect_left
from collections.abc import Sequence
from decimal import Decimal

from recon_config.schema import MatchScoringConfig
from recon_engines.scoring import MatchScorer, ScoreBreakdown
from recon_engines.tracer import traced_engine
from recon_kernel.domain.dtos import (
    AmountRule,
    MatchCandidate,
    MovementSnapshot,
    ScoringTarget,
    TargetKind,
)
from recon_kernel.logging_config import get_logger

logger = get_logger("engines.matching")

_TARGET_LABELS = {
    TargetKind.LEDGER_POSTING: "posting",
    TargetKind.OBLIGATION: "obligation",
}


class TargetIndex:
    """
    Open targets sorted by magnitude for range pruning.

    Contract:
        ``candidates_for(amount)`` returns every target whose magnitude is
        >= |amount| - tolerance, in their input (canonical) order.
    """

    def __init__(self, targets: Sequence[ScoringTarget], tolerance: Decimal):
        self._targets = list(targets)
        self._tolerance = tolerance
        order = sorted(range(len(self._targets)), key=lambda i: self._targets[i].magnitude)
        self._positions = order
        self._magnitudes = [self._targets[i].magnitude for i in order]

    def __len__(self) -> int:
        return len(self._targets)

    def candidates_for(self, amount: Decimal) -> list[ScoringTarget]:
        floor = abs(amount) - self._tolerance
        start = bisect_left(self._magnitudes, floor)
        positions = sorted(self._positions[start:])
        return [self._targets[i] for i in positions]


def build_rationale(
    movement: MovementSnapshot,
    target: ScoringTarget,
    breakdown: ScoreBreakdown,
) -> str:
    """Render e.g. ``Score: 0.99. Bank 119000 vs posting 119000. Days diff: 2. Counterparty match. Exact amount.``"""
    parts = [
        f"Score: {breakdown.score:.2f}.",
        f"Bank {movement.magnitude.normalize():f} vs "
        f"{_TARGET_LABELS[target.target_kind]} {target.magnitude.normalize():f}.",
        f"Days diff: {breakdown.days_diff}.",
        "Counterparty match." if breakdown.counterparty_matched else "No counterparty match.",
    ]
    if breakdown.amount_rule is AmountRule.EXACT:
        parts.append("Exact amount.")
    else:
        parts.append("Partial amount.")
        if breakdown.similarity is not None:
            parts.append(f"Description similarity: {breakdown.similarity:.2f}.")
    return " ".join(parts)


class MatchingEngine:
    """
    Pure best-match selector.

    Contract:
        No I/O, no database access, no clock.

    Guarantees:
        - ``select_best`` returns None when no target reaches the threshold.
        - The result does not depend on whether an index is supplied.

    Non-goals:
        - Does not exclude targets claimed by other movements in the same
          run; suggestions are independent, commit arbitrates.
    """

    def __init__(self, config: MatchScoringConfig | None = None):
        self.config = config or MatchScoringConfig()
        self.scorer = MatchScorer(self.config)

    def build_index(self, targets: Sequence[ScoringTarget]) -> TargetIndex:
        return TargetIndex(targets, self.config.exact_amount_tolerance)

    @traced_engine("best_match", "1.0", fingerprint_fields=("movement",))
    def select_best(
        self,
        movement: MovementSnapshot,
        targets: Sequence[ScoringTarget] | TargetIndex,
    ) -> MatchCandidate | None:
        """
        Best high-confidence target for ``movement``, or None.

        Args:
            movement: The movement to match.
            targets: Open targets in canonical order, or a prebuilt index.
        """
        t0 = time.monotonic()
        if isinstance(targets, TargetIndex):
            pool = targets.candidates_for(movement.amount)
            total = len(targets)
        else:
            pool = list(targets)
            total = len(pool)

        best_target: ScoringTarget | None = None
        best: ScoreBreakdown | None = None
        for target in pool:
            if not target.accepts(movement):
                continue
            breakdown = self.scorer.evaluate(movement, target)
            if breakdown.is_rejected:
                continue
            # Strictly greater keeps the earliest target on ties.
            if best is None or breakdown.score > best.score:
                best_target, best = target, breakdown

        candidate: MatchCandidate | None = None
        if best is not None and best.score >= self.config.high_confidence_threshold:
            candidate = MatchCandidate(
                movement_id=movement.movement_id,
                target_id=best_target.target_id,
                target_kind=best_target.target_kind,
                score=best.score,
                rationale=build_rationale(movement, best_target, best),
                days_diff=best.days_diff,
                counterparty_matched=best.counterparty_matched,
                amount_rule=best.amount_rule,
            )

        logger.debug(
            "movement_match_evaluated",
            extra={
                "movement_id": str(movement.movement_id),
                "targets_total": total,
                "targets_scored": len(pool),
                "top_score": str(best.score) if best is not None else "0",
                "matched": candidate is not None,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return candidate
