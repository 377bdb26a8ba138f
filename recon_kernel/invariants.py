"""
Kernel Invariants Contract.

These invariants are structural law.  No configuration value may switch them
off; configuration only tunes scoring weights and account codes.

This module declares the invariants explicitly.  Enforcement is distributed
across LedgerInvariantValidator, LedgerPostingService, the immutability
listeners and ReconciliationCommitService.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    DOUBLE_ENTRY_BALANCE = "double_entry_balance"
    """Debits equal credits in every ledger posting, including settlement
    postings synthesized during reconciliation.  Enforced by
    LedgerInvariantValidator before any row is written."""

    POSTING_IMMUTABILITY = "posting_immutability"
    """Ledger postings and their lines are append-only.  Enforced by ORM
    listeners in recon_kernel.db.immutability."""

    SINGLE_RECONCILIATION = "single_reconciliation"
    """A movement is linked to at most one posting at a time and cannot be
    reconciled twice.  Enforced by the conditional state transition in
    ReconciliationCommitService."""

    ATOMIC_COMMIT = "atomic_commit"
    """State transition, obligation settlement and posting creation happen
    together or not at all."""

    TENANT_ISOLATION = "tenant_isolation"
    """Every lookup is scoped by tenant; a foreign id is indistinguishable
    from a missing one."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "recon_engines",
    "recon_services",
    "recon_config",
)
