"""
Module: recon_kernel.selectors.reconciliation_selector
Responsibility: Read-only queries feeding the matcher and the workbench:
    unreconciled movements, open scoring targets, tenant-scoped lookups and
    status counts.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every query is filtered by tenant_id; another tenant's rows are never
      returned.
    - Canonical target order: ledger postings first, then obligations, each
      sorted by date then id.  The matcher's tie-break relies on it.

Failure modes:
    - Returns None or an empty list on absence (never raises).
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import and_, exists, func, select

from recon_kernel.domain.dtos import MovementSnapshot, ScoringTarget
from recon_kernel.domain.values import enum_value
from recon_kernel.models.movement import ExternalMovement, MovementState
from recon_kernel.models.obligation import Obligation, ObligationState
from recon_kernel.models.posting import LedgerPosting
from recon_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ReconciliationStatusCounts:
    """Per-tenant reconciliation progress."""

    reconciled_movements: int
    unreconciled_movements: int
    open_obligations: int
    settled_obligations: int

    @property
    def total_movements(self) -> int:
        return self.reconciled_movements + self.unreconciled_movements


class ReconciliationSelector(BaseSelector):
    """
    Query interface over movements, postings and obligations.

    Non-goals:
        - Locking.  The commit service takes its own row locks.
    """

    def unreconciled_movements(self, tenant_id: UUID) -> list[MovementSnapshot]:
        """Unreconciled movements of a tenant, ordered by date then id."""
        stmt = (
            select(ExternalMovement)
            .where(
                ExternalMovement.tenant_id == tenant_id,
                ExternalMovement.state == MovementState.UNRECONCILED.value,
            )
            .order_by(ExternalMovement.movement_date, ExternalMovement.id)
        )
        return [MovementSnapshot.from_model(m) for m in self.session.scalars(stmt)]

    def movement(self, tenant_id: UUID, movement_id: UUID) -> ExternalMovement | None:
        stmt = select(ExternalMovement).where(
            ExternalMovement.id == movement_id,
            ExternalMovement.tenant_id == tenant_id,
        )
        return self.session.scalars(stmt).one_or_none()

    def posting(self, tenant_id: UUID, posting_id: UUID) -> LedgerPosting | None:
        stmt = select(LedgerPosting).where(
            LedgerPosting.id == posting_id,
            LedgerPosting.tenant_id == tenant_id,
        )
        return self.session.scalars(stmt).one_or_none()

    def obligation(self, tenant_id: UUID, obligation_id: UUID) -> Obligation | None:
        stmt = select(Obligation).where(
            Obligation.id == obligation_id,
            Obligation.tenant_id == tenant_id,
        )
        return self.session.scalars(stmt).one_or_none()

    def is_posting_linked(
        self,
        tenant_id: UUID,
        posting_id: UUID,
        exclude_movement_id: UUID | None = None,
    ) -> bool:
        """True if a reconciled movement of the tenant links to the posting."""
        conditions = [
            ExternalMovement.tenant_id == tenant_id,
            ExternalMovement.reconciled_posting_id == posting_id,
            ExternalMovement.state == MovementState.RECONCILED.value,
        ]
        if exclude_movement_id is not None:
            conditions.append(ExternalMovement.id != exclude_movement_id)
        stmt = select(exists().where(and_(*conditions)))
        return bool(self.session.scalar(stmt))

    def open_postings(self, tenant_id: UUID) -> list[ScoringTarget]:
        """Postings not linked by any reconciled movement, by date then id."""
        linked = exists().where(
            ExternalMovement.reconciled_posting_id == LedgerPosting.id,
            ExternalMovement.state == MovementState.RECONCILED.value,
        )
        stmt = (
            select(LedgerPosting)
            .where(LedgerPosting.tenant_id == tenant_id, ~linked)
            .order_by(LedgerPosting.entry_date, LedgerPosting.id)
        )
        return [ScoringTarget.from_posting(p) for p in self.session.scalars(stmt)]

    def open_obligations(self, tenant_id: UUID) -> list[ScoringTarget]:
        """Obligations in state open, by date then id."""
        stmt = (
            select(Obligation)
            .where(
                Obligation.tenant_id == tenant_id,
                Obligation.state == ObligationState.OPEN.value,
            )
            .order_by(Obligation.obligation_date, Obligation.id)
        )
        return [ScoringTarget.from_obligation(o) for o in self.session.scalars(stmt)]

    def open_targets(self, tenant_id: UUID) -> list[ScoringTarget]:
        """All open targets in canonical order."""
        return self.open_postings(tenant_id) + self.open_obligations(tenant_id)

    def status_counts(self, tenant_id: UUID) -> ReconciliationStatusCounts:
        movement_rows = self.session.execute(
            select(ExternalMovement.state, func.count())
            .where(ExternalMovement.tenant_id == tenant_id)
            .group_by(ExternalMovement.state)
        ).all()
        obligation_rows = self.session.execute(
            select(Obligation.state, func.count())
            .where(Obligation.tenant_id == tenant_id)
            .group_by(Obligation.state)
        ).all()
        movements = {enum_value(state): count for state, count in movement_rows}
        obligations = {enum_value(state): count for state, count in obligation_rows}

        return ReconciliationStatusCounts(
            reconciled_movements=movements.get(MovementState.RECONCILED.value, 0),
            unreconciled_movements=movements.get(MovementState.UNRECONCILED.value, 0),
            open_obligations=obligations.get(ObligationState.OPEN.value, 0),
            settled_obligations=obligations.get(ObligationState.SETTLED.value, 0),
        )
