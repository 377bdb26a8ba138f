"""
Reconciliation Kernel

The persistence and invariant core of the transaction reconciliation engine:
- Balanced, append-only ledger postings
- External movements with a two-state reconciliation lifecycle
- Open receivables and payables with running settlement
- Structured logging and typed errors
"""

__version__ = "0.1.0"
