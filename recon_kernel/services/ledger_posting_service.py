"""
LedgerPostingService -- the only write path for ledger postings.

Responsibility:
    Validates proposed lines with LedgerInvariantValidator and persists a
    LedgerPosting with its PostingLines.  Used both for postings recorded by
    the bookkeeping collaborator and for settlement postings synthesized by
    the commit service.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Invariants enforced:
    - Debits == credits (validated unconditionally before any add/flush).
    - Postings are append-only (see db/immutability.py).

Failure modes:
    - BalanceError / InvalidPostingLineError from the validator; nothing is
      added to the session in that case.
    - ValueError for an invalid currency code.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from recon_kernel.domain.dtos import PostingLineSpec
from recon_kernel.domain.ledger_validator import LedgerInvariantValidator
from recon_kernel.domain.values import normalize_currency
from recon_kernel.exceptions import BalanceError
from recon_kernel.invariants import KernelInvariant
from recon_kernel.logging_config import get_logger
from recon_kernel.models.posting import LedgerPosting, PostingLine, PostingSource
from recon_kernel.services.base import BaseService

logger = get_logger("services.ledger_posting")


class LedgerPostingService(BaseService):
    """
    Records balanced postings.

    Contract:
        ``record_posting`` returns the flushed LedgerPosting (id assigned).

    Guarantees:
        - No row is written for lines that fail validation.
    """

    def __init__(self, session: Session, validator: LedgerInvariantValidator | None = None):
        super().__init__(session)
        self._validator = validator or LedgerInvariantValidator()

    def record_posting(
        self,
        tenant_id: UUID,
        entry_date: date,
        description: str,
        lines: Sequence[PostingLineSpec],
        counterparty_id: str | None = None,
        currency: str = "CLP",
        source: PostingSource = PostingSource.EXTERNAL,
        settles_obligation_id: UUID | None = None,
        source_movement_id: UUID | None = None,
    ) -> LedgerPosting:
        t0 = time.monotonic()
        try:
            debit_total, credit_total = self._validator.validate(lines)
        except BalanceError as exc:
            logger.warning(
                "ledger_posting_rejected",
                extra={
                    "invariant": KernelInvariant.DOUBLE_ENTRY_BALANCE.value,
                    "tenant_id": str(tenant_id),
                    "debit_total": str(exc.debit_total),
                    "credit_total": str(exc.credit_total),
                },
            )
            raise

        posting = LedgerPosting(
            tenant_id=tenant_id,
            entry_date=entry_date,
            description=description or "",
            counterparty_id=counterparty_id,
            currency=normalize_currency(currency),
            source=PostingSource(source).value,
            settles_obligation_id=settles_obligation_id,
            source_movement_id=source_movement_id,
        )
        posting.lines = [
            PostingLine(
                line_seq=seq,
                account_code=spec.account_code,
                debit=spec.debit,
                credit=spec.credit,
                memo=spec.memo,
            )
            for seq, spec in enumerate(lines)
        ]
        self.session.add(posting)
        self.session.flush()

        logger.info(
            "ledger_posting_recorded",
            extra={
                "posting_id": str(posting.id),
                "tenant_id": str(tenant_id),
                "source": posting.source,
                "line_count": len(lines),
                "debit_total": str(debit_total),
                "credit_total": str(credit_total),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return posting
