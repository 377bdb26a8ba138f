"""
ObligationService -- records open receivables and payables.

Stands in for the invoicing collaborator: whatever issues invoices calls
``open_obligation`` so the matcher can see them.  Flushes, never commits.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from recon_kernel.domain.values import normalize_currency, to_amount
from recon_kernel.logging_config import get_logger
from recon_kernel.models.obligation import (
    Obligation,
    ObligationDirection,
    ObligationState,
)
from recon_kernel.services.base import BaseService

logger = get_logger("services.obligation")


class ObligationService(BaseService):
    """Creates obligations in state open."""

    def open_obligation(
        self,
        tenant_id: UUID,
        obligation_date: date,
        magnitude: Decimal | int | str,
        direction: ObligationDirection | str,
        counterparty_id: str | None = None,
        currency: str = "CLP",
        description: str = "",
    ) -> Obligation:
        """
        Record a new open obligation.

        Raises:
            ValueError: If magnitude is not positive, or direction/currency
                are invalid.
            TypeError: If magnitude is a float.
        """
        amount = to_amount(magnitude)
        if amount <= 0:
            raise ValueError(f"Obligation magnitude must be positive, got {amount}")

        obligation = Obligation(
            tenant_id=tenant_id,
            obligation_date=obligation_date,
            counterparty_id=counterparty_id,
            description=description or "",
            magnitude=amount,
            currency=normalize_currency(currency),
            direction=ObligationDirection(direction).value,
            state=ObligationState.OPEN.value,
            settled_amount=Decimal("0"),
            version=0,
        )
        self.session.add(obligation)
        self.session.flush()

        logger.info(
            "obligation_opened",
            extra={
                "obligation_id": str(obligation.id),
                "tenant_id": str(tenant_id),
                "direction": obligation.direction,
                "magnitude": str(amount),
                "currency": obligation.currency,
            },
        )
        return obligation
