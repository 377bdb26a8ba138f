"""
Tests for LedgerInvariantValidator.

Debits must equal credits to the last digit, and every line must carry
exactly one non-negative side.
"""

from decimal import Decimal

import pytest

from recon_kernel.domain.dtos import PostingLineSpec
from recon_kernel.domain.ledger_validator import LedgerInvariantValidator
from recon_kernel.exceptions import BalanceError, InvalidPostingLineError


@pytest.fixture
def validator():
    return LedgerInvariantValidator()


class TestBalance:
    def test_balanced_pair_returns_totals(self, validator, make_lines):
        debit, credit = validator.validate(make_lines("110201", "110401", Decimal("119000")))
        assert debit == credit == Decimal("119000")

    def test_multi_line_balanced(self, validator):
        lines = [
            PostingLineSpec.debit_line("110201", "60"),
            PostingLineSpec.debit_line("110202", "40"),
            PostingLineSpec.credit_line("110401", "100"),
        ]
        assert validator.validate(lines) == (Decimal("100"), Decimal("100"))

    def test_imbalance_raises_with_totals(self, validator):
        lines = [
            PostingLineSpec.debit_line("110201", "100"),
            PostingLineSpec.credit_line("110401", "99"),
        ]
        with pytest.raises(BalanceError) as exc_info:
            validator.validate(lines)
        assert exc_info.value.debit_total == "100"
        assert exc_info.value.credit_total == "99"
        assert exc_info.value.code == "UNBALANCED_POSTING"

    def test_imbalance_at_full_precision(self, validator):
        lines = [
            PostingLineSpec.debit_line("110201", "100.000000001"),
            PostingLineSpec.credit_line("110401", "100"),
        ]
        with pytest.raises(BalanceError):
            validator.validate(lines)


class TestLineShape:
    def test_empty_lines_rejected(self, validator):
        with pytest.raises(InvalidPostingLineError, match="at least one line"):
            validator.validate([])

    def test_negative_amount_rejected(self, validator):
        lines = [
            PostingLineSpec(account_code="110201", debit=Decimal("-5")),
            PostingLineSpec(account_code="110401", credit=Decimal("-5")),
        ]
        with pytest.raises(InvalidPostingLineError) as exc_info:
            validator.validate(lines)
        assert exc_info.value.line_index == 0

    def test_both_sides_rejected(self, validator):
        lines = [PostingLineSpec(account_code="110201", debit=Decimal("5"), credit=Decimal("5"))]
        with pytest.raises(InvalidPostingLineError, match="both"):
            validator.validate(lines)

    def test_zero_line_rejected(self, validator):
        lines = [
            PostingLineSpec.debit_line("110201", "5"),
            PostingLineSpec.credit_line("110401", "5"),
            PostingLineSpec(account_code="110999"),
        ]
        with pytest.raises(InvalidPostingLineError) as exc_info:
            validator.validate(lines)
        assert exc_info.value.line_index == 2

    def test_missing_account_code_rejected(self, validator):
        with pytest.raises(InvalidPostingLineError, match="account code"):
            validator.validate([PostingLineSpec(account_code="", debit=Decimal("1"))])

    def test_float_amount_rejected(self, validator):
        lines = [
            PostingLineSpec(account_code="110201", debit=1.0),
            PostingLineSpec(account_code="110401", credit=Decimal("1")),
        ]
        with pytest.raises(InvalidPostingLineError, match="Decimal"):
            validator.validate(lines)
