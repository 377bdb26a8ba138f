"""
Module: recon_kernel.models.movement
Responsibility: ORM persistence for external movements -- bank statement lines
    observed outside the ledger and waiting to be reconciled.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - A movement is linked to at most one posting (single nullable FK).
    - state and reconciled_posting_id move together: reconciled iff linked.
    - version increments on every state transition; the commit service
      transitions rows only through a conditional UPDATE on (state, version).
    - (tenant_id, reference) is unique when a reference is present, which
      makes intake idempotent.

Failure modes:
    - IntegrityError on a duplicate (tenant_id, reference).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from recon_kernel.db.base import TrackedBase, UUIDString


class MovementState(str, Enum):
    """Reconciliation state of an external movement.

    Contract: UNRECONCILED -> RECONCILED on commit, RECONCILED -> UNRECONCILED
    on undo.  No other transitions exist.
    """

    UNRECONCILED = "unreconciled"
    RECONCILED = "reconciled"


class ExternalMovement(TrackedBase):
    """
    A cash movement reported by a bank statement.

    Contract:
        amount is signed: positive for inflows, negative for outflows.
        Created by MovementIntakeService; mutated only by
        ReconciliationCommitService; never deleted.

    Non-goals:
        - Statement parsing.  Rows arrive already normalized.
    """

    __tablename__ = "external_movements"

    __table_args__ = (
        UniqueConstraint("tenant_id", "reference", name="uq_movement_tenant_reference"),
        Index("idx_movement_tenant_state", "tenant_id", "state"),
        Index("idx_movement_tenant_date", "tenant_id", "movement_date"),
    )

    # Owning tenant
    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Value date printed on the statement
    movement_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Free-text statement description (may embed a tax identifier)
    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
    )

    # Signed amount: > 0 inflow, < 0 outflow
    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    # Bank-side reference (document number); the intake idempotency key
    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    state: Mapped[MovementState] = mapped_column(
        String(20),
        default=MovementState.UNRECONCILED,
        nullable=False,
    )

    # Posting this movement is reconciled against
    reconciled_posting_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_postings.id"),
        nullable=True,
    )

    reconciled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ExternalMovement {self.id} {self.amount} {self.state}>"

    @property
    def is_reconciled(self) -> bool:
        return self.state == MovementState.RECONCILED

    @property
    def absolute_amount(self) -> Decimal:
        """Magnitude of the movement, ignoring direction."""
        return abs(self.amount)
