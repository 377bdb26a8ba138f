"""
DTOs -- Pure data transfer objects for reconciliation.

Responsibility:
    Defines the immutable structures that flow between the selector, the pure
    scoring engines and the commit service: PostingLineSpec (posting input),
    NormalizedMovement (intake input), MovementSnapshot and ScoringTarget
    (scoring input), MatchCandidate (matcher output) and CommitResult
    (commit output).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model`` class methods are boundary converters invoked only from the
    selector/service layer.

Invariants enforced:
    - Engines accept DTOs, never ORM entities.
    - MatchCandidate.score is a Decimal in [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from recon_kernel.domain.values import ZERO, Money, enum_value, to_amount

if TYPE_CHECKING:
    from recon_kernel.models.movement import ExternalMovement
    from recon_kernel.models.obligation import Obligation
    from recon_kernel.models.posting import LedgerPosting


class TargetKind(str, Enum):
    """What a movement is reconciled against.

    LEDGER_POSTING selects direct-entry mode (link only); OBLIGATION selects
    settlement mode (a balanced posting is synthesized).
    """

    LEDGER_POSTING = "ledger_posting"
    OBLIGATION = "obligation"


class AmountRule(str, Enum):
    """Which amount rule admitted a candidate."""

    EXACT = "exact"
    PARTIAL = "partial"


class CashFlow(str, Enum):
    """Direction of cash a movement carries, or an obligation expects."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"

    @classmethod
    def of_amount(cls, amount: Decimal) -> CashFlow | None:
        if amount > ZERO:
            return cls.INFLOW
        if amount < ZERO:
            return cls.OUTFLOW
        return None

    @classmethod
    def for_direction(cls, direction) -> CashFlow:
        """Receivables are settled by inflows, payables by outflows."""
        return cls.INFLOW if enum_value(direction) == "receivable" else cls.OUTFLOW


@dataclass(frozen=True)
class PostingLineSpec:
    """
    Specification for one posting line.

    Contract:
        Carries an account code and a debit or a credit.  Structural checks
        (non-negative, exactly one side) are the LedgerInvariantValidator's
        job so that malformed input is reported with a typed error.
    """

    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    memo: str | None = None

    @classmethod
    def debit_line(cls, account_code: str, amount: Decimal | int | str, memo: str | None = None) -> PostingLineSpec:
        return cls(account_code=account_code, debit=to_amount(amount), memo=memo)

    @classmethod
    def credit_line(cls, account_code: str, amount: Decimal | int | str, memo: str | None = None) -> PostingLineSpec:
        return cls(account_code=account_code, credit=to_amount(amount), memo=memo)


@dataclass(frozen=True)
class NormalizedMovement:
    """
    One already-parsed statement line handed to intake.

    Contract:
        amount is signed and exact (Decimal/int/str, never float).
        currency falls back to the configured default when None.
    """

    movement_date: date
    description: str
    amount: Decimal
    reference: str | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_amount(self.amount))
        if not isinstance(self.movement_date, date):
            raise TypeError("movement_date must be a date")


@dataclass(frozen=True)
class MovementSnapshot:
    """Reduced view of an ExternalMovement used for scoring."""

    movement_id: UUID
    movement_date: date
    description: str
    amount: Decimal
    currency: str

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    @property
    def flow(self) -> CashFlow | None:
        return CashFlow.of_amount(self.amount)

    @classmethod
    def from_model(cls, model: ExternalMovement) -> MovementSnapshot:
        return cls(
            movement_id=model.id,
            movement_date=model.movement_date,
            description=model.description or "",
            amount=Decimal(model.amount),
            currency=model.currency,
        )


@dataclass(frozen=True)
class ScoringTarget:
    """
    Reduced view of a posting or obligation used for scoring.

    Guarantees:
        - magnitude is the posting's total debits, or the obligation's
          outstanding (unsettled) amount.
        - flow is set for obligations only; a posting accepts either sign.
    """

    target_id: UUID
    target_kind: TargetKind
    target_date: date
    counterparty_id: str | None
    magnitude: Decimal
    description: str
    currency: str
    flow: CashFlow | None = None

    def accepts(self, movement: MovementSnapshot) -> bool:
        """False when the movement's sign cannot settle this target."""
        return self.flow is None or movement.flow is self.flow

    @classmethod
    def from_posting(cls, posting: LedgerPosting) -> ScoringTarget:
        return cls(
            target_id=posting.id,
            target_kind=TargetKind.LEDGER_POSTING,
            target_date=posting.entry_date,
            counterparty_id=posting.counterparty_id,
            magnitude=posting.magnitude,
            description=posting.description or "",
            currency=posting.currency,
        )

    @classmethod
    def from_obligation(cls, obligation: Obligation) -> ScoringTarget:
        return cls(
            target_id=obligation.id,
            target_kind=TargetKind.OBLIGATION,
            target_date=obligation.obligation_date,
            counterparty_id=obligation.counterparty_id,
            magnitude=obligation.outstanding_amount,
            description=obligation.description or "",
            currency=obligation.currency,
            flow=CashFlow.for_direction(obligation.direction),
        )


@dataclass(frozen=True)
class MatchCandidate:
    """
    Best high-confidence suggestion for one movement.

    Contract:
        Ephemeral; never persisted.  At most one per movement.
    """

    movement_id: UUID
    target_id: UUID
    target_kind: TargetKind
    score: Decimal
    rationale: str
    days_diff: int
    counterparty_matched: bool
    amount_rule: AmountRule

    def __post_init__(self) -> None:
        if not (ZERO <= self.score <= Decimal("1")):
            raise ValueError(f"Score must be within [0, 1], got {self.score}")


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a successful commit.

    new_posting_id and settled are set only in settlement mode.
    resumed_settlement is True when a movement is re-committed to an
    obligation it already settled before an undo; the earlier settlement
    posting is re-linked and nothing new is written.
    """

    movement_id: UUID
    target_id: UUID
    target_kind: TargetKind
    linked_posting_id: UUID
    new_posting_id: UUID | None = None
    settled: Money | None = None
    obligation_closed: bool = False
    resumed_settlement: bool = False
