"""
LedgerInvariantValidator -- the double-entry gate.

Responsibility:
    Refuses any set of posting lines whose debits and credits differ, and any
    structurally malformed line, before a single row is written.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called
    unconditionally by LedgerPostingService.record_posting, which is the only
    path that persists postings (including synthesized settlement postings).

Invariants enforced:
    - Sum of debits == sum of credits, compared at full Decimal precision.
      No tolerance, no rounding.
    - Every line: debit >= 0, credit >= 0, exactly one side non-zero.
    - At least one line.

Failure modes:
    - BalanceError(debit_total, credit_total) on imbalance.
    - InvalidPostingLineError(line_index, reason) on malformed input.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from recon_kernel.domain.dtos import PostingLineSpec
from recon_kernel.exceptions import BalanceError, InvalidPostingLineError

_ZERO = Decimal("0")


class LedgerInvariantValidator:
    """
    Stateless validator for proposed posting lines.

    Contract:
        ``validate`` returns the (debit_total, credit_total) pair when the
        lines are acceptable and raises otherwise.  It never mutates input.
    """

    @staticmethod
    def validate(lines: Sequence[PostingLineSpec]) -> tuple[Decimal, Decimal]:
        if not lines:
            raise InvalidPostingLineError(None, "posting must have at least one line")

        debit_total = _ZERO
        credit_total = _ZERO

        for index, line in enumerate(lines):
            LedgerInvariantValidator._check_line(index, line)
            debit_total += line.debit
            credit_total += line.credit

        if debit_total != credit_total:
            raise BalanceError(str(debit_total), str(credit_total))

        return debit_total, credit_total

    @staticmethod
    def _check_line(index: int, line: PostingLineSpec) -> None:
        if not line.account_code:
            raise InvalidPostingLineError(index, "account code is required")
        for side in ("debit", "credit"):
            value = getattr(line, side)
            if not isinstance(value, Decimal) or isinstance(value, bool):
                raise InvalidPostingLineError(index, f"{side} must be a Decimal")
            if not value.is_finite():
                raise InvalidPostingLineError(index, f"{side} must be finite")
            if value < _ZERO:
                raise InvalidPostingLineError(index, f"{side} must not be negative")
        if line.debit != _ZERO and line.credit != _ZERO:
            raise InvalidPostingLineError(index, "line cannot carry both a debit and a credit")
        if line.debit == _ZERO and line.credit == _ZERO:
            raise InvalidPostingLineError(index, "line must carry a debit or a credit")
