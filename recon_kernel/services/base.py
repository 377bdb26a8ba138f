"""
BaseService -- abstract base for kernel write services.

Responsibility:
    Common constructor and session-handling contract for every service in
    the kernel layer.  Services persist through ``session.flush()`` and never
    commit or roll back; the caller owns the transaction.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and flushes within
        the active transaction.

    Non-goals:
        - Transaction lifecycle (commit/rollback).
        - Read-only queries; those belong in ``recon_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
