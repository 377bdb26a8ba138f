"""
Module: recon_kernel.models.obligation
Responsibility: ORM persistence for obligations -- open receivables and
    payables that a movement can settle.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - 0 <= settled_amount; state is SETTLED iff settled_amount >= magnitude.
    - version increments on every settlement; transitions go through a
      conditional UPDATE on (state, version).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from recon_kernel.db.base import TrackedBase, UUIDString


class ObligationDirection(str, Enum):
    """RECEIVABLE is owed to the tenant; PAYABLE is owed by the tenant."""

    RECEIVABLE = "receivable"
    PAYABLE = "payable"


class ObligationState(str, Enum):
    """Contract: OPEN -> SETTLED, one way."""

    OPEN = "open"
    SETTLED = "settled"


class Obligation(TrackedBase):
    """
    An invoice-like amount owed to or by the tenant.

    Contract:
        magnitude > 0.  Settlements accumulate in settled_amount; the
        obligation closes once fully covered.

    Non-goals:
        - Invoice lifecycle (drafts, cancellation, credit notes).
    """

    __tablename__ = "obligations"

    __table_args__ = (
        Index("idx_obligation_tenant_state", "tenant_id", "state"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Issue date of the underlying document
    obligation_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Normalized tax identifier of the counterparty
    counterparty_id: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
    )

    # Total amount owed (always positive)
    magnitude: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    direction: Mapped[ObligationDirection] = mapped_column(
        String(20),
        nullable=False,
    )

    state: Mapped[ObligationState] = mapped_column(
        String(20),
        default=ObligationState.OPEN,
        nullable=False,
    )

    # Running total settled to date
    settled_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Obligation {self.id} {self.direction} {self.magnitude} {self.state}>"

    @property
    def is_open(self) -> bool:
        return self.state == ObligationState.OPEN

    @property
    def outstanding_amount(self) -> Decimal:
        """Amount still to be settled; never negative."""
        remaining = self.magnitude - (self.settled_amount or Decimal("0"))
        return remaining if remaining > 0 else Decimal("0")
