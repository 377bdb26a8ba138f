"""
Typed exception hierarchy for the reconciliation kernel.

Every error the engine can surface to its caller has its own class, a static
machine-readable ``code`` and structured attributes.  Callers catch by type
and read attributes; they never parse messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReconKernelError (base)
    |
    +-- PostingError
    |   +-- BalanceError
    |   +-- InvalidPostingLineError
    |
    +-- ReconciliationError
    |   +-- StateConflictError
    |   +-- CurrencyMismatchError
    |   +-- InvalidTargetKindError
    |   +-- DirectionMismatchError
    |
    +-- InvalidMovementError
    |
    +-- NotFoundError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|-----------------------------------------
Posting         | UNBALANCED_POSTING     | Sum of debits != sum of credits
                | INVALID_POSTING_LINE   | Negative amount, both sides set, no lines
----------------|------------------------|-----------------------------------------
Reconciliation  | STATE_CONFLICT         | Movement/obligation not in required state
                | CURRENCY_MISMATCH      | Movement and target in different currency
                | INVALID_TARGET_KIND    | Unknown target kind discriminant
                | DIRECTION_MISMATCH     | Inflow vs payable, outflow vs receivable
----------------|------------------------|-----------------------------------------
Intake          | INVALID_MOVEMENT       | Statement line with a zero amount
----------------|------------------------|-----------------------------------------
Lookup          | NOT_FOUND              | Id missing or owned by another tenant
----------------|------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION | UPDATE/DELETE of a ledger posting

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        workbench.commit(tenant_id, movement_id, target_id, "obligation")
    except StateConflictError as e:
        # Retryable after the caller re-fetches state. The engine never loops.
        return {"error": e.code, "actual_state": e.actual_state}
    except NotFoundError as e:
        return {"error": e.code, "entity": e.entity_type}
    except BalanceError as e:
        # Fatal to the operation; nothing was persisted.
        return {"error": e.code, "debits": e.debit_total, "credits": e.credit_total}

Absence of a match is NOT an error and has no exception class.
"""


class ReconKernelError(Exception):
    """
    Base exception for all reconciliation kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "RECON_KERNEL_ERROR"


# Posting-related exceptions


class PostingError(ReconKernelError):
    """Base exception for ledger posting errors."""

    code: str = "POSTING_ERROR"


class BalanceError(PostingError):
    """
    Posting debits do not equal credits.

    Always fatal to the operation that produced it.  The posting is never
    persisted and the difference is never rounded away.
    """

    code: str = "UNBALANCED_POSTING"

    def __init__(self, debit_total: str, credit_total: str):
        self.debit_total = debit_total
        self.credit_total = credit_total
        super().__init__(
            f"Unbalanced posting: debits={debit_total}, credits={credit_total}"
        )


class InvalidPostingLineError(PostingError):
    """A posting line (or the line set) is structurally invalid."""

    code: str = "INVALID_POSTING_LINE"

    def __init__(self, line_index: int | None, reason: str):
        self.line_index = line_index
        self.reason = reason
        where = f"line {line_index}" if line_index is not None else "posting"
        super().__init__(f"Invalid {where}: {reason}")


# Reconciliation-related exceptions


class ReconciliationError(ReconKernelError):
    """Base exception for reconciliation commit/undo errors."""

    code: str = "RECONCILIATION_ERROR"


class StateConflictError(ReconciliationError):
    """
    Entity is not in the state an operation requires.

    Raised for already-reconciled movements, already-settled obligations,
    undo on an unreconciled movement, and for the loser of two concurrent
    commits.  Retryable by the caller after refreshing state.
    """

    code: str = "STATE_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_state: str,
        actual_state: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_state = expected_state
        self.actual_state = actual_state
        super().__init__(
            f"{entity_type} {entity_id} is '{actual_state}', "
            f"expected '{expected_state}'"
        )


class CurrencyMismatchError(ReconciliationError):
    """Movement and target are denominated in different currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, movement_currency: str, target_currency: str):
        self.movement_currency = movement_currency
        self.target_currency = target_currency
        super().__init__(
            f"Cannot reconcile {movement_currency} movement against "
            f"{target_currency} target"
        )


class InvalidTargetKindError(ReconciliationError):
    """Target kind discriminant is not one of the known kinds."""

    code: str = "INVALID_TARGET_KIND"

    def __init__(self, target_kind: str):
        self.target_kind = target_kind
        super().__init__(f"Unknown target kind: {target_kind}")


class DirectionMismatchError(ReconciliationError):
    """
    Movement sign contradicts the obligation direction.

    Inflows settle receivables only; outflows settle payables only.
    """

    code: str = "DIRECTION_MISMATCH"

    def __init__(self, movement_amount: str, obligation_direction: str):
        self.movement_amount = movement_amount
        self.obligation_direction = obligation_direction
        super().__init__(
            f"Movement of {movement_amount} cannot settle a "
            f"{obligation_direction} obligation"
        )


# Intake exceptions


class InvalidMovementError(ReconKernelError):
    """A normalized statement line cannot be recorded."""

    code: str = "INVALID_MOVEMENT"

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Invalid movement {index}: {reason}")


# Lookup exceptions


class NotFoundError(ReconKernelError):
    """
    Referenced entity does not exist or belongs to another tenant.

    The two cases are deliberately indistinguishable to the caller.
    """

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str, tenant_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.tenant_id = tenant_id
        super().__init__(
            f"{entity_type} {entity_id} not found for tenant {tenant_id}"
        )


# Immutability-related exceptions


class ImmutabilityError(ReconKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a ledger posting or one of its lines."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
