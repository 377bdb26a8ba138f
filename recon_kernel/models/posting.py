"""
Module: recon_kernel.models.posting
Responsibility: ORM persistence for ledger postings and their lines -- the
    double-entry record that movements are reconciled against.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Debits == credits (checked by LedgerInvariantValidator in the service
      and again by the before_insert listener in db/immutability.py;
      is_balanced is a read-side convenience).
    - Append-only: ORM listeners in db/immutability.py reject UPDATE and
      DELETE of postings and lines.

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE.
    - BalanceError on INSERT of an unbalanced posting.

Audit relevance:
    Settlement postings carry settles_obligation_id so every synthesized
    entry can be traced back to the obligation it paid.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recon_kernel.db.base import TrackedBase, UUIDString


class PostingSource(str, Enum):
    """How a posting came into existence."""

    EXTERNAL = "external"
    SETTLEMENT = "settlement"


class LedgerPosting(TrackedBase):
    """
    Balanced double-entry posting header.

    Contract:
        Has a non-empty ordered list of lines whose debits equal credits.
        Immutable once flushed.

    Guarantees:
        - magnitude == total_debits == total_credits for persisted postings.

    Non-goals:
        - Reversal.  Corrections are new postings recorded by the caller.
    """

    __tablename__ = "ledger_postings"

    __table_args__ = (
        Index("idx_posting_tenant_date", "tenant_id", "entry_date"),
        Index("idx_posting_settles", "settles_obligation_id"),
        Index("idx_posting_source_movement", "source_movement_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Accounting date
    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
    )

    # Normalized tax identifier of the counterparty, if known
    counterparty_id: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    source: Mapped[PostingSource] = mapped_column(
        String(20),
        default=PostingSource.EXTERNAL,
        nullable=False,
    )

    # Obligation paid by this posting (settlement postings only)
    settles_obligation_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("obligations.id"),
        nullable=True,
    )

    # Movement whose reconciliation synthesized this posting (no FK: the
    # movements table already references postings)
    source_movement_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    lines: Mapped[list["PostingLine"]] = relationship(
        back_populates="posting",
        cascade="save-update, merge",
        order_by="PostingLine.line_seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<LedgerPosting {self.id} {self.entry_date} {self.magnitude}>"

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        """Read-side check that debits equal credits."""
        return self.total_debits == self.total_credits

    @property
    def magnitude(self) -> Decimal:
        """Amount compared against movements when scoring."""
        return self.total_debits


class PostingLine(TrackedBase):
    """
    One debit or credit line within a posting.

    Contract:
        debit >= 0, credit >= 0, and exactly one of them is non-zero.
    """

    __tablename__ = "ledger_posting_lines"

    __table_args__ = (
        Index("idx_posting_line_posting", "posting_id"),
        Index("idx_posting_line_account", "account_code"),
    )

    posting_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_postings.id"),
        nullable=False,
    )

    # Position within the posting
    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Chart-of-accounts code, e.g. "110201"
    account_code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    debit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    credit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    memo: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    posting: Mapped["LedgerPosting"] = relationship(
        back_populates="lines",
    )

    def __repr__(self) -> str:
        return f"<PostingLine {self.account_code} Dr={self.debit} Cr={self.credit}>"
