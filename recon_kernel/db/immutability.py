"""
ORM-level immutability enforcement for the ledger.

Ledger postings are append-only.  Once a LedgerPosting (or one of its
PostingLines) has been flushed, it can neither be modified nor deleted; a
mistaken posting is corrected by recording a new, offsetting one.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below inspect the pending change and raise
ImmutabilityViolationError, which aborts the flush:

    session.flush()
         |
         v
    [before_insert] --> _check_posting_balance() ------> BalanceError
         |
    [before_update] --> _check_posting_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_posting_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

    Entity          | When immutable      | Allowed changes
    ----------------|---------------------|-------------------------
    LedgerPosting   | Always, after INSERT| updated_at (audit field)
    PostingLine     | Always, after INSERT| updated_at (audit field)

New postings are checked on INSERT whatever path built them: the lines must
pass LedgerInvariantValidator or the flush fails with BalanceError (or
InvalidPostingLineError for malformed lines).

Movements and obligations are deliberately absent: their state columns are
the reconciliation state machine and are mutated by the commit service.

Usage:

    from recon_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

    # TESTS ONLY
    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from recon_kernel.domain.dtos import PostingLineSpec
from recon_kernel.domain.ledger_validator import LedgerInvariantValidator
from recon_kernel.domain.values import ZERO, to_amount
from recon_kernel.exceptions import (
    BalanceError,
    ImmutabilityViolationError,
    InvalidPostingLineError,
)
from recon_kernel.invariants import KernelInvariant
from recon_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at"})


def _changed_field(target) -> str | None:
    """Return the first non-audit column attribute with pending changes."""
    insp = inspect(target)
    for attr in insp.mapper.column_attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if insp.attrs[attr.key].history.has_changes():
            return attr.key
    return None


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    extra = {
        "invariant": KernelInvariant.POSTING_IMMUTABILITY.value,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "operation": operation,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_posting_immutability(mapper, connection, target):
    """Prevent updates to flushed LedgerPosting rows."""
    # before_update also fires for instances that are dirty only through a
    # relationship collection; those have no column changes and pass.
    field = _changed_field(target)
    if field is not None:
        _block(
            "LedgerPosting",
            target.id,
            "UPDATE",
            f"Cannot modify field '{field}' on a ledger posting",
            field=field,
        )


def _check_posting_delete(mapper, connection, target):
    """Prevent deletion of LedgerPosting rows."""
    _block(
        "LedgerPosting",
        target.id,
        "DELETE",
        "Ledger postings cannot be deleted",
    )


def _check_posting_line_immutability(mapper, connection, target):
    """Prevent updates to flushed PostingLine rows."""
    field = _changed_field(target)
    if field is not None:
        _block(
            "PostingLine",
            target.id,
            "UPDATE",
            f"Cannot modify field '{field}' on a posting line",
            field=field,
        )


def _check_posting_line_delete(mapper, connection, target):
    """Prevent deletion of PostingLine rows."""
    _block(
        "PostingLine",
        target.id,
        "DELETE",
        "Posting lines cannot be deleted",
    )


def _line_spec(index: int, line) -> PostingLineSpec:
    try:
        debit = to_amount(line.debit if line.debit is not None else ZERO)
        credit = to_amount(line.credit if line.credit is not None else ZERO)
    except (TypeError, ValueError) as exc:
        raise InvalidPostingLineError(index, str(exc)) from exc
    return PostingLineSpec(account_code=line.account_code, debit=debit, credit=credit)


def _check_posting_balance(mapper, connection, target):
    """Reject an unbalanced or malformed LedgerPosting at INSERT."""
    specs = [_line_spec(index, line) for index, line in enumerate(target.lines)]
    try:
        LedgerInvariantValidator.validate(specs)
    except BalanceError as exc:
        logger.error(
            "unbalanced_posting_blocked",
            extra={
                "invariant": KernelInvariant.DOUBLE_ENTRY_BALANCE.value,
                "entity_id": str(target.id),
                "debit_total": exc.debit_total,
                "credit_total": exc.credit_total,
            },
        )
        raise


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call repeatedly; a listener already registered is not added twice.
    """
    from recon_kernel.models.posting import LedgerPosting, PostingLine

    listeners = (
        (LedgerPosting, "before_insert", _check_posting_balance),
        (LedgerPosting, "before_update", _check_posting_immutability),
        (LedgerPosting, "before_delete", _check_posting_delete),
        (PostingLine, "before_update", _check_posting_line_immutability),
        (PostingLine, "before_delete", _check_posting_line_delete),
    )
    for target, event_name, listener_fn in listeners:
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that need to violate the rules on purpose.
    """
    from recon_kernel.models.posting import LedgerPosting, PostingLine

    _safe_remove_listener(LedgerPosting, "before_insert", _check_posting_balance)
    _safe_remove_listener(LedgerPosting, "before_update", _check_posting_immutability)
    _safe_remove_listener(LedgerPosting, "before_delete", _check_posting_delete)
    _safe_remove_listener(PostingLine, "before_update", _check_posting_line_immutability)
    _safe_remove_listener(PostingLine, "before_delete", _check_posting_line_delete)
