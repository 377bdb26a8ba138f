"""
MovementIntakeService -- accepts normalized statement lines.

Responsibility:
    Persists NormalizedMovement records as unreconciled ExternalMovements.
    Statement parsing (headers, encodings, locale number formats) happens
    upstream; this service only sees exact, already-parsed values.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Invariants enforced:
    - Idempotent on (tenant_id, reference): a record whose reference is
      already known for the tenant, or repeated within the batch, is skipped.
    - Amounts are Decimal; floats are rejected at NormalizedMovement
      construction.
    - Amounts are non-zero; a batch holding a zero amount is rejected
      whole with InvalidMovementError before anything is added.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from recon_kernel.domain.dtos import NormalizedMovement
from recon_kernel.domain.values import ZERO, normalize_currency
from recon_kernel.exceptions import InvalidMovementError
from recon_kernel.logging_config import get_logger
from recon_kernel.models.movement import ExternalMovement, MovementState
from recon_kernel.services.base import BaseService

logger = get_logger("services.movement_intake")


@dataclass(frozen=True)
class IntakeResult:
    """Ids created and references skipped by one intake call."""

    created_ids: tuple[UUID, ...] = ()
    skipped_references: tuple[str, ...] = field(default_factory=tuple)

    @property
    def created_count(self) -> int:
        return len(self.created_ids)


class MovementIntakeService(BaseService):
    """
    Records movements for one tenant at a time.

    Contract:
        Records without a reference are always inserted.  Records with a
        reference are inserted at most once per tenant.
    """

    def __init__(self, session: Session, default_currency: str = "CLP"):
        super().__init__(session)
        self._default_currency = normalize_currency(default_currency)

    def record_movements(
        self,
        tenant_id: UUID,
        records: Iterable[NormalizedMovement],
    ) -> IntakeResult:
        records = list(records)
        for index, record in enumerate(records):
            if record.amount == ZERO:
                logger.warning(
                    "movement_intake_rejected",
                    extra={"tenant_id": str(tenant_id), "index": index, "reason": "zero amount"},
                )
                raise InvalidMovementError(index, "amount must be non-zero")

        references = {r.reference for r in records if r.reference}
        known: set[str] = set()
        if references:
            known = set(
                self.session.scalars(
                    select(ExternalMovement.reference).where(
                        ExternalMovement.tenant_id == tenant_id,
                        ExternalMovement.reference.in_(references),
                    )
                )
            )

        created: list[ExternalMovement] = []
        skipped: list[str] = []
        for record in records:
            if record.reference:
                if record.reference in known:
                    skipped.append(record.reference)
                    logger.info(
                        "movement_intake_duplicate_skipped",
                        extra={"tenant_id": str(tenant_id), "reference": record.reference},
                    )
                    continue
                known.add(record.reference)

            movement = ExternalMovement(
                tenant_id=tenant_id,
                movement_date=record.movement_date,
                description=record.description or "",
                amount=record.amount,
                currency=normalize_currency(record.currency or self._default_currency),
                reference=record.reference,
                state=MovementState.UNRECONCILED.value,
                version=0,
            )
            self.session.add(movement)
            created.append(movement)

        self.session.flush()

        logger.info(
            "movement_intake_completed",
            extra={
                "tenant_id": str(tenant_id),
                "received": len(records),
                "created_count": len(created),
                "skipped_count": len(skipped),
            },
        )
        return IntakeResult(
            created_ids=tuple(m.id for m in created),
            skipped_references=tuple(skipped),
        )
