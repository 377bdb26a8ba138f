"""
recon_services.commit_service -- Apply and undo reconciliations.

Responsibility:
    Transition a movement from unreconciled to reconciled against a chosen
    target, and back again on undo.  In settlement mode (target is an
    obligation) a balanced two-line posting is synthesized and the
    obligation's running settled amount is advanced.

Architecture position:
    Services -- owns the transaction for commit/undo (auto_commit=True),
    composing the kernel's LedgerPostingService and selector.

Invariants enforced:
    - Single reconciliation: the movement is claimed through a conditional
      UPDATE on (state, version); a lost race raises StateConflictError and
      writes nothing.
    - Double entry: settlement postings pass LedgerInvariantValidator via
      LedgerPostingService before any row is written.
    - Atomicity: claim, settlement, posting and link are one transaction;
      any failure rolls all of it back.
    - Tenant isolation: movement and target are looked up by tenant; a
      foreign id raises NotFoundError.
    - Cash direction: an inflow settles only a receivable and an outflow
      only a payable.

Failure modes:
    - NotFoundError, StateConflictError, CurrencyMismatchError,
      DirectionMismatchError, InvalidTargetKindError, BalanceError.  The session is rolled back
      before the error propagates.

Audit relevance:
    Settlement postings carry settles_obligation_id and source_movement_id.
    Undo only detaches the movement; it never reverses a posting or reopens
    an obligation.

Concurrency:
    On PostgreSQL the movement and target rows are read with SELECT ... FOR
    UPDATE, so a second commit on the same movement waits and then observes
    the committed state.  On every backend the conditional UPDATE is the
    final arbiter.
"""

from __future__ import annotations

import time
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from recon_config.schema import ReconciliationConfig
from recon_kernel.domain.clock import Clock, SystemClock
from recon_kernel.domain.dtos import CashFlow, CommitResult, PostingLineSpec, TargetKind
from recon_kernel.domain.values import Money, enum_value
from recon_kernel.exceptions import (
    CurrencyMismatchError,
    DirectionMismatchError,
    InvalidTargetKindError,
    NotFoundError,
    StateConflictError,
)
from recon_kernel.invariants import KernelInvariant
from recon_kernel.logging_config import LogContext, get_logger
from recon_kernel.models.movement import ExternalMovement, MovementState
from recon_kernel.models.obligation import (
    Obligation,
    ObligationDirection,
    ObligationState,
)
from recon_kernel.models.posting import LedgerPosting, PostingSource
from recon_kernel.selectors.reconciliation_selector import ReconciliationSelector
from recon_kernel.services.ledger_posting_service import LedgerPostingService

logger = get_logger("services.commit")


def parse_target_kind(target_kind: TargetKind | str) -> TargetKind:
    try:
        return TargetKind(target_kind)
    except ValueError:
        raise InvalidTargetKindError(str(target_kind)) from None


class ReconciliationCommitService:
    """
    State machine for movement reconciliation.

    Contract:
        ``commit`` and ``undo`` each run as one atomic unit of work.  With
        auto_commit=True (default) the service commits on success and rolls
        back on failure; with auto_commit=False the caller owns both.

    Guarantees:
        - A losing concurrent commit raises StateConflictError and creates
          no posting.
        - ``commit`` then ``undo`` then ``commit`` with the same arguments
          ends in the same state as a single ``commit``.

    Non-goals:
        - Retries.  Conflicts are surfaced to the caller.
        - Reversing settlement postings on undo.
    """

    def __init__(
        self,
        session: Session,
        config: ReconciliationConfig | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self.config = config or ReconciliationConfig()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._selector = ReconciliationSelector(session)
        self._postings = LedgerPostingService(session)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def commit(
        self,
        tenant_id: UUID,
        movement_id: UUID,
        target_id: UUID,
        target_kind: TargetKind | str,
    ) -> CommitResult:
        """
        Reconcile a movement against a posting (direct) or obligation (settlement).

        Raises:
            InvalidTargetKindError: target_kind is not a known kind.
            NotFoundError: movement or target missing for the tenant.
            StateConflictError: movement already reconciled, obligation
                settled, posting already linked, or a concurrent change won.
            CurrencyMismatchError: movement and target currencies differ.
        """
        kind = parse_target_kind(target_kind)

        with LogContext.bind(
            tenant_id=str(tenant_id),
            movement_id=str(movement_id),
            operation="reconciliation_commit",
        ):
            logger.info(
                "reconciliation_commit_started",
                extra={"target_id": str(target_id), "target_kind": kind.value},
            )
            t0 = time.monotonic()
            try:
                result = self._do_commit(tenant_id, movement_id, target_id, kind)
                if self._auto_commit:
                    self.session.commit()
            except Exception:
                if self._auto_commit:
                    self.session.rollback()
                logger.error(
                    "reconciliation_commit_failed",
                    extra={
                        "target_id": str(target_id),
                        "target_kind": kind.value,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise

            logger.info(
                "reconciliation_commit_completed",
                extra={
                    "target_id": str(target_id),
                    "target_kind": kind.value,
                    "linked_posting_id": str(result.linked_posting_id),
                    "new_posting_id": str(result.new_posting_id) if result.new_posting_id else None,
                    "obligation_closed": result.obligation_closed,
                    "resumed_settlement": result.resumed_settlement,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def undo(self, tenant_id: UUID, movement_id: UUID) -> None:
        """
        Return a reconciled movement to unreconciled and clear its link.

        Raises:
            NotFoundError: movement missing for the tenant.
            StateConflictError: movement is not reconciled, or a concurrent
                change won.
        """
        with LogContext.bind(
            tenant_id=str(tenant_id),
            movement_id=str(movement_id),
            operation="reconciliation_undo",
        ):
            logger.info("reconciliation_undo_started")
            t0 = time.monotonic()
            try:
                detached_posting_id = self._do_undo(tenant_id, movement_id)
                if self._auto_commit:
                    self.session.commit()
            except Exception:
                if self._auto_commit:
                    self.session.rollback()
                logger.error(
                    "reconciliation_undo_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            logger.info(
                "reconciliation_undo_completed",
                extra={
                    "detached_posting_id": str(detached_posting_id) if detached_posting_id else None,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )

    # ------------------------------------------------------------------
    # Commit internals
    # ------------------------------------------------------------------

    def _do_commit(
        self,
        tenant_id: UUID,
        movement_id: UUID,
        target_id: UUID,
        kind: TargetKind,
    ) -> CommitResult:
        movement = self._lock_movement(tenant_id, movement_id)
        if movement.state != MovementState.UNRECONCILED:
            raise StateConflictError(
                "ExternalMovement",
                str(movement_id),
                MovementState.UNRECONCILED.value,
                enum_value(movement.state),
            )

        if kind is TargetKind.LEDGER_POSTING:
            return self._commit_direct(tenant_id, movement, target_id)
        return self._commit_settlement(tenant_id, movement, target_id)

    def _commit_direct(
        self,
        tenant_id: UUID,
        movement: ExternalMovement,
        posting_id: UUID,
    ) -> CommitResult:
        posting = self.session.scalars(
            select(LedgerPosting)
            .where(LedgerPosting.id == posting_id, LedgerPosting.tenant_id == tenant_id)
            .with_for_update()
        ).one_or_none()
        if posting is None:
            raise NotFoundError("LedgerPosting", str(posting_id), str(tenant_id))
        self._check_currency(movement, posting.currency)

        expected_version = movement.version
        self._claim_movement(movement, expected_version)

        # Checked after the claim so a concurrent link of the same posting
        # by another movement is visible.
        if self._selector.is_posting_linked(tenant_id, posting.id, exclude_movement_id=movement.id):
            raise StateConflictError("LedgerPosting", str(posting.id), "unlinked", "linked")

        self._link_movement(movement, posting.id, expected_version + 1)

        return CommitResult(
            movement_id=movement.id,
            target_id=posting.id,
            target_kind=TargetKind.LEDGER_POSTING,
            linked_posting_id=posting.id,
        )

    def _commit_settlement(
        self,
        tenant_id: UUID,
        movement: ExternalMovement,
        obligation_id: UUID,
    ) -> CommitResult:
        obligation = self.session.scalars(
            select(Obligation)
            .where(Obligation.id == obligation_id, Obligation.tenant_id == tenant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).one_or_none()
        if obligation is None:
            raise NotFoundError("Obligation", str(obligation_id), str(tenant_id))
        self._check_currency(movement, obligation.currency)
        self._check_direction(movement, obligation)

        expected_version = movement.version

        previous = self._previous_settlement(tenant_id, movement.id, obligation.id)
        if previous is not None:
            self._claim_movement(movement, expected_version)
            if self._selector.is_posting_linked(tenant_id, previous.id, exclude_movement_id=movement.id):
                raise StateConflictError("LedgerPosting", str(previous.id), "unlinked", "linked")
            self._link_movement(movement, previous.id, expected_version + 1)
            logger.info(
                "settlement_resumed",
                extra={"obligation_id": str(obligation.id), "posting_id": str(previous.id)},
            )
            return CommitResult(
                movement_id=movement.id,
                target_id=obligation.id,
                target_kind=TargetKind.OBLIGATION,
                linked_posting_id=previous.id,
                settled=Money.of(previous.magnitude, previous.currency),
                obligation_closed=obligation.state == ObligationState.SETTLED,
                resumed_settlement=True,
            )

        if obligation.state != ObligationState.OPEN:
            raise StateConflictError(
                "Obligation",
                str(obligation.id),
                ObligationState.OPEN.value,
                enum_value(obligation.state),
            )

        self._claim_movement(movement, expected_version)

        settlement = Money.of(movement.amount, movement.currency).abs()
        closed = self._settle_obligation(obligation, settlement)

        posting = self._postings.record_posting(
            tenant_id=tenant_id,
            entry_date=movement.movement_date,
            description=f"Settlement of obligation {obligation.id}: {movement.description}"[:500],
            lines=self._settlement_lines(obligation, settlement),
            counterparty_id=obligation.counterparty_id,
            currency=settlement.currency,
            source=PostingSource.SETTLEMENT,
            settles_obligation_id=obligation.id,
            source_movement_id=movement.id,
        )

        self._link_movement(movement, posting.id, expected_version + 1)

        return CommitResult(
            movement_id=movement.id,
            target_id=obligation.id,
            target_kind=TargetKind.OBLIGATION,
            linked_posting_id=posting.id,
            new_posting_id=posting.id,
            settled=settlement,
            obligation_closed=closed,
        )

    def _settlement_lines(self, obligation: Obligation, settlement: Money) -> list[PostingLineSpec]:
        accounts = self.config.settlement_accounts
        amount = settlement.amount
        if obligation.direction == ObligationDirection.RECEIVABLE:
            return [
                PostingLineSpec.debit_line(accounts.bank, amount, memo="Bank receipt"),
                PostingLineSpec.credit_line(accounts.receivable, amount, memo="Receivable settled"),
            ]
        return [
            PostingLineSpec.debit_line(accounts.payable, amount, memo="Payable settled"),
            PostingLineSpec.credit_line(accounts.bank, amount, memo="Bank payment"),
        ]

    def _settle_obligation(self, obligation: Obligation, settlement: Money) -> bool:
        """Advance settled_amount; returns True if the obligation closed."""
        new_settled = obligation.settled_amount + settlement.amount
        closed = new_settled >= obligation.magnitude
        new_state = ObligationState.SETTLED if closed else ObligationState.OPEN

        result = self.session.execute(
            update(Obligation)
            .where(
                Obligation.id == obligation.id,
                Obligation.state == ObligationState.OPEN.value,
                Obligation.version == obligation.version,
            )
            .values(
                settled_amount=new_settled,
                state=new_state.value,
                version=obligation.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateConflictError(
                "Obligation",
                str(obligation.id),
                ObligationState.OPEN.value,
                "concurrently modified",
            )
        self.session.expire(obligation)

        logger.info(
            "obligation_settlement_applied",
            extra={
                "obligation_id": str(obligation.id),
                "settled_amount": str(new_settled),
                "magnitude": str(obligation.magnitude),
                "closed": closed,
            },
        )
        return closed

    def _previous_settlement(
        self,
        tenant_id: UUID,
        movement_id: UUID,
        obligation_id: UUID,
    ) -> LedgerPosting | None:
        """Settlement posting this movement wrote for this obligation before an undo."""
        return self.session.scalars(
            select(LedgerPosting)
            .where(
                LedgerPosting.tenant_id == tenant_id,
                LedgerPosting.source == PostingSource.SETTLEMENT.value,
                LedgerPosting.settles_obligation_id == obligation_id,
                LedgerPosting.source_movement_id == movement_id,
            )
            .order_by(LedgerPosting.created_at.desc(), LedgerPosting.id)
            .limit(1)
        ).one_or_none()

    # ------------------------------------------------------------------
    # Undo internals
    # ------------------------------------------------------------------

    def _do_undo(self, tenant_id: UUID, movement_id: UUID) -> UUID | None:
        movement = self._lock_movement(tenant_id, movement_id)
        if movement.state != MovementState.RECONCILED:
            raise StateConflictError(
                "ExternalMovement",
                str(movement_id),
                MovementState.RECONCILED.value,
                enum_value(movement.state),
            )

        detached_posting_id = movement.reconciled_posting_id
        result = self.session.execute(
            update(ExternalMovement)
            .where(
                ExternalMovement.id == movement.id,
                ExternalMovement.state == MovementState.RECONCILED.value,
                ExternalMovement.version == movement.version,
            )
            .values(
                state=MovementState.UNRECONCILED.value,
                reconciled_posting_id=None,
                reconciled_at=None,
                version=movement.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateConflictError(
                "ExternalMovement",
                str(movement.id),
                MovementState.RECONCILED.value,
                "concurrently modified",
            )
        self.session.expire(movement)
        return detached_posting_id

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _lock_movement(self, tenant_id: UUID, movement_id: UUID) -> ExternalMovement:
        movement = self.session.scalars(
            select(ExternalMovement)
            .where(
                ExternalMovement.id == movement_id,
                ExternalMovement.tenant_id == tenant_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).one_or_none()
        if movement is None:
            raise NotFoundError("ExternalMovement", str(movement_id), str(tenant_id))
        return movement

    def _claim_movement(self, movement: ExternalMovement, expected_version: int) -> None:
        """Conditional unreconciled -> reconciled transition; the race arbiter."""
        result = self.session.execute(
            update(ExternalMovement)
            .where(
                ExternalMovement.id == movement.id,
                ExternalMovement.state == MovementState.UNRECONCILED.value,
                ExternalMovement.version == expected_version,
            )
            .values(
                state=MovementState.RECONCILED.value,
                reconciled_at=self._clock.now(),
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "reconciliation_commit_conflict",
                extra={
                    "expected_version": expected_version,
                    "invariant": KernelInvariant.SINGLE_RECONCILIATION.value,
                },
            )
            raise StateConflictError(
                "ExternalMovement",
                str(movement.id),
                MovementState.UNRECONCILED.value,
                "concurrently modified",
            )

    def _link_movement(self, movement: ExternalMovement, posting_id: UUID, version: int) -> None:
        result = self.session.execute(
            update(ExternalMovement)
            .where(
                ExternalMovement.id == movement.id,
                ExternalMovement.version == version,
            )
            .values(reconciled_posting_id=posting_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateConflictError(
                "ExternalMovement",
                str(movement.id),
                MovementState.RECONCILED.value,
                "concurrently modified",
            )
        self.session.expire(movement)

    def _check_currency(self, movement: ExternalMovement, target_currency: str) -> None:
        if movement.currency != target_currency:
            raise CurrencyMismatchError(movement.currency, target_currency)

    def _check_direction(self, movement: ExternalMovement, obligation: Obligation) -> None:
        if CashFlow.of_amount(movement.amount) is not CashFlow.for_direction(obligation.direction):
            raise DirectionMismatchError(str(movement.amount), enum_value(obligation.direction))
