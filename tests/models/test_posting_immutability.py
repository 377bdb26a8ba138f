"""
Ledger postings and their lines are append-only once flushed, and must
balance on insert whichever path builds them.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from recon_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from recon_kernel.exceptions import BalanceError, ImmutabilityViolationError, InvalidPostingLineError
from recon_kernel.models.posting import LedgerPosting, PostingLine, PostingSource


class TestPostingImmutability:
    def test_posting_field_update_blocked(self, session, make_posting):
        posting = make_posting(100)
        posting.description = "rewritten"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "LedgerPosting"
        assert "description" in exc_info.value.reason
        session.rollback()

    def test_line_amount_update_blocked(self, session, make_posting):
        posting = make_posting(100)
        line = posting.lines[0]
        line.debit = Decimal("999")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "PostingLine"
        session.rollback()

    def test_posting_delete_blocked(self, session, make_posting):
        posting = make_posting(100)
        session.delete(posting)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_line_delete_blocked(self, session, make_posting):
        posting = make_posting(100)
        session.delete(posting.lines[1])

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "PostingLine"
        session.rollback()

    def test_violation_is_logged(self, session, make_posting, captured_logs):
        posting = make_posting(100)
        posting.currency = "USD"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        [record] = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert record["entity_id"] == str(posting.id)
        assert record["operation"] == "UPDATE"
        assert record["field"] == "currency"
        assert record["invariant"] == "posting_immutability"

    def test_unchanged_reflush_passes(self, session, make_posting):
        posting = make_posting(100)
        assert posting.is_balanced
        session.flush()


class TestListenerRegistration:
    def test_unregister_then_register_restores_enforcement(self, session, make_posting):
        posting = make_posting(100)
        unregister_immutability_listeners()
        try:
            posting.description = "allowed while unregistered"
            session.flush()
        finally:
            register_immutability_listeners()
        session.commit()

        posting.description = "blocked again"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        assert session.get(LedgerPosting, posting.id).description == "allowed while unregistered"

    def test_register_is_idempotent(self):
        register_immutability_listeners()
        register_immutability_listeners()


class TestPostingBalanceOnInsert:
    def _posting(self, tenant_id, *amounts):
        posting = LedgerPosting(
            tenant_id=tenant_id,
            entry_date=date(2025, 3, 8),
            description="direct",
            currency="CLP",
            source=PostingSource.EXTERNAL.value,
        )
        posting.lines = [
            PostingLine(line_seq=seq, account_code=account, debit=Decimal(debit), credit=Decimal(credit))
            for seq, (account, debit, credit) in enumerate(amounts)
        ]
        return posting

    def test_direct_unbalanced_posting_blocked(self, session, tenant_id, captured_logs):
        session.add(self._posting(tenant_id, ("110401", "100", "0")))

        with pytest.raises(BalanceError):
            session.flush()
        session.rollback()

        assert session.scalar(select(func.count()).select_from(LedgerPosting)) == 0
        [record] = [r for r in captured_logs() if r["message"] == "unbalanced_posting_blocked"]
        assert record["invariant"] == "double_entry_balance"

    def test_direct_balanced_posting_passes(self, session, tenant_id):
        posting = self._posting(tenant_id, ("110401", "100", "0"), ("410101", "0", "100"))
        session.add(posting)
        session.flush()

        assert posting.is_balanced
        assert session.scalar(select(func.count()).select_from(PostingLine)) == 2

    def test_direct_posting_without_lines_blocked(self, session, tenant_id):
        session.add(self._posting(tenant_id))

        with pytest.raises(InvalidPostingLineError):
            session.flush()
        session.rollback()
