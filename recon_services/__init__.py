"""
recon_services -- Orchestration layer of the reconciliation engine.

Composes kernel selectors/services with the pure engines.  Owns
transaction boundaries for commit and undo.
"""

from recon_services.commit_service import ReconciliationCommitService, parse_target_kind
from recon_services.reconciliation_matcher import ReconciliationMatcher
from recon_services.workbench import ReconciliationWorkbench, match_payload

__all__ = [
    "ReconciliationCommitService",
    "ReconciliationMatcher",
    "ReconciliationWorkbench",
    "match_payload",
    "parse_target_kind",
]
