"""
recon_services.workbench -- External surface of the reconciliation engine.

Responsibility:
    Expose the reconciliation operations (matches, commit, undo) plus the
    dashboard and status summary as plain dict payloads suitable for a
    transport layer.  Every call binds ``tenant_id`` and a fresh
    ``correlation_id`` into LogContext.

Architecture position:
    Services -- thin facade over ReconciliationMatcher,
    ReconciliationCommitService and ReconciliationSelector.  Holds no
    business rules of its own.

Failure modes:
    - Errors from the underlying services propagate unchanged
      (ReconKernelError subclasses carry a machine-readable ``code``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from recon_config import get_active_config
from recon_config.schema import ReconciliationConfig
from recon_kernel.domain.clock import Clock
from recon_kernel.domain.dtos import MatchCandidate, TargetKind
from recon_kernel.logging_config import LogContext, get_logger
from recon_kernel.selectors.reconciliation_selector import ReconciliationSelector
from recon_services.commit_service import ReconciliationCommitService
from recon_services.reconciliation_matcher import ReconciliationMatcher

logger = get_logger("services.workbench")


def _score_value(score: Decimal) -> float:
    return round(float(score), 4)


def match_payload(candidate: MatchCandidate) -> dict[str, Any]:
    return {
        "movementId": str(candidate.movement_id),
        "targetId": str(candidate.target_id),
        "targetKind": candidate.target_kind.value,
        "score": _score_value(candidate.score),
        "rationale": candidate.rationale,
    }


class ReconciliationWorkbench:
    """
    Per-session facade used by the bookkeeping UI.

    Contract:
        Receives the session, configuration and clock via constructor
        injection.  Commit and undo own their transaction; the read
        operations never write.
    """

    def __init__(
        self,
        session: Session,
        config: ReconciliationConfig | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.config = config or get_active_config()
        self._selector = ReconciliationSelector(session)
        self._matcher = ReconciliationMatcher(session, self.config.scoring)
        self._commits = ReconciliationCommitService(session, self.config, clock)

    def matches(self, tenant_id: UUID) -> list[dict[str, Any]]:
        """High-confidence suggestions, one per matchable movement."""
        with self._request(tenant_id, "matches"):
            return [match_payload(c) for c in self._matcher.find_matches(tenant_id)]

    def commit(
        self,
        tenant_id: UUID,
        movement_id: UUID,
        target_id: UUID,
        target_kind: TargetKind | str,
    ) -> dict[str, Any]:
        """Reconcile; the payload carries newPostingId only in settlement mode."""
        with self._request(tenant_id, "commit"):
            result = self._commits.commit(tenant_id, movement_id, target_id, target_kind)
            payload: dict[str, Any] = {"linkedPostingId": str(result.linked_posting_id)}
            if result.new_posting_id is not None:
                payload["newPostingId"] = str(result.new_posting_id)
            return payload

    def undo(self, tenant_id: UUID, movement_id: UUID) -> dict[str, Any]:
        with self._request(tenant_id, "undo"):
            self._commits.undo(tenant_id, movement_id)
            return {"ok": True}

    def dashboard(self, tenant_id: UUID) -> dict[str, Any]:
        """Pending work for a tenant: open items plus current suggestions."""
        with self._request(tenant_id, "dashboard"):
            movements = self._selector.unreconciled_movements(tenant_id)
            obligations = self._selector.open_obligations(tenant_id)
            suggestions = self._matcher.find_matches(tenant_id)
            return {
                "unreconciledMovements": [
                    {
                        "id": str(m.movement_id),
                        "date": m.movement_date.isoformat(),
                        "description": m.description,
                        "amount": str(m.amount),
                        "currency": m.currency,
                    }
                    for m in movements
                ],
                "openObligations": [
                    {
                        "id": str(o.target_id),
                        "date": o.target_date.isoformat(),
                        "counterpartyId": o.counterparty_id,
                        "description": o.description,
                        "outstanding": str(o.magnitude),
                        "currency": o.currency,
                    }
                    for o in obligations
                ],
                "suggestions": [match_payload(c) for c in suggestions],
            }

    def status_summary(self, tenant_id: UUID) -> dict[str, int]:
        with self._request(tenant_id, "status_summary"):
            counts = self._selector.status_counts(tenant_id)
            return {
                "totalMovements": counts.total_movements,
                "reconciledMovements": counts.reconciled_movements,
                "unreconciledMovements": counts.unreconciled_movements,
                "openObligations": counts.open_obligations,
                "settledObligations": counts.settled_obligations,
            }

    def _request(self, tenant_id: UUID, operation: str):
        correlation_id = str(uuid4())
        logger.debug(
            "workbench_request",
            extra={"operation": operation, "correlation_id": correlation_id},
        )
        return LogContext.bind(
            tenant_id=str(tenant_id),
            correlation_id=correlation_id,
        )
