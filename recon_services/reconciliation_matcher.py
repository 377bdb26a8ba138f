"""
recon_services.reconciliation_matcher -- High-confidence match suggestions.

Responsibility:
    For every unreconciled movement of a tenant, find the single best open
    target (unlinked ledger posting or open obligation) and return it when
    its score reaches the high-confidence threshold.

Architecture position:
    Services -- orchestration over the pure MatchingEngine and the kernel's
    ReconciliationSelector.

Invariants enforced:
    - Read-only: never adds, flushes or commits.
    - Tenant isolation: only the tenant's movements and targets are read.

Failure modes:
    - NotFoundError from ``find_match_for_movement`` when the movement does
      not exist for the tenant.  Absence of a match is not an error.
"""

from __future__ import annotations

import time
from uuid import UUID

from sqlalchemy.orm import Session

from recon_config.schema import MatchScoringConfig
from recon_engines.matching import MatchingEngine
from recon_kernel.domain.dtos import MatchCandidate, MovementSnapshot
from recon_kernel.exceptions import NotFoundError
from recon_kernel.logging_config import get_logger
from recon_kernel.selectors.reconciliation_selector import ReconciliationSelector

logger = get_logger("services.reconciliation_matcher")


class ReconciliationMatcher:
    """
    Produces at most one MatchCandidate per unreconciled movement.

    Contract:
        Results are ordered like the movements (date, then id).

    Non-goals:
        - Global assignment.  Two movements may be suggested the same
          target; the commit service decides who gets it.
    """

    def __init__(self, session: Session, config: MatchScoringConfig | None = None):
        self.session = session
        self.config = config or MatchScoringConfig()
        self._selector = ReconciliationSelector(session)
        self._engine = MatchingEngine(self.config)

    def find_matches(self, tenant_id: UUID) -> list[MatchCandidate]:
        t0 = time.monotonic()
        movements = self._selector.unreconciled_movements(tenant_id)
        targets = self._selector.open_targets(tenant_id)

        logger.info(
            "match_search_started",
            extra={
                "tenant_id": str(tenant_id),
                "movement_count": len(movements),
                "target_count": len(targets),
            },
        )

        matches: list[MatchCandidate] = []
        if movements and targets:
            index = self._engine.build_index(targets)
            for movement in movements:
                candidate = self._engine.select_best(movement, index)
                if candidate is not None:
                    matches.append(candidate)

        logger.info(
            "match_search_completed",
            extra={
                "tenant_id": str(tenant_id),
                "movements_evaluated": len(movements),
                "matches_found": len(matches),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return matches

    def find_match_for_movement(self, tenant_id: UUID, movement_id: UUID) -> MatchCandidate | None:
        """Best suggestion for a single movement, or None.

        A reconciled movement has no suggestion.
        """
        movement = self._selector.movement(tenant_id, movement_id)
        if movement is None:
            raise NotFoundError("ExternalMovement", str(movement_id), str(tenant_id))
        if movement.is_reconciled:
            return None
        targets = self._selector.open_targets(tenant_id)
        return self._engine.select_best(MovementSnapshot.from_model(movement), targets)
