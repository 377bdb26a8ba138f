"""
session_scope commits on success and rolls back on error.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from recon_kernel.db.engine import session_scope
from recon_kernel.models.obligation import Obligation, ObligationDirection
from recon_kernel.services.obligation_service import ObligationService


def _open(session, tenant_id):
    return ObligationService(session).open_obligation(
        tenant_id=tenant_id,
        obligation_date=date(2025, 3, 10),
        magnitude=Decimal("100"),
        direction=ObligationDirection.PAYABLE,
    )


def _count(tenant_id):
    with session_scope() as session:
        return session.scalar(
            select(func.count()).select_from(Obligation).where(Obligation.tenant_id == tenant_id)
        )


class TestSessionScope:
    def test_commits_on_success(self, db_engine, tenant_id):
        with session_scope() as session:
            _open(session, tenant_id)
        assert _count(tenant_id) == 1

    def test_rolls_back_on_error(self, db_engine, tenant_id, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                _open(session, tenant_id)
                session.flush()
                raise RuntimeError("boom")

        assert _count(tenant_id) == 0
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())
