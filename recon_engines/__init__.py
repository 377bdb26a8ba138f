"""
Module: recon_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by the
    reconciliation services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import recon_kernel.domain, recon_kernel.logging_config and
    recon_config.schema.  MUST NOT import recon_services.

Invariants enforced:
    - Purity: engines never read the clock or touch the database.
    - Decimal-only arithmetic for amounts and scores.
    - Determinism: identical inputs always produce identical outputs.
"""

from recon_engines.counterparty import extract_counterparty_id, normalize_counterparty_id
from recon_engines.matching import MatchingEngine, TargetIndex, build_rationale
from recon_engines.scoring import (
    HIGH_CONFIDENCE_THRESHOLD,
    MatchScorer,
    RejectReason,
    ScoreBreakdown,
)
from recon_engines.similarity import (
    SimilarityMode,
    SimilarityScorer,
    containment_similarity,
    edit_distance,
    similarity,
)
from recon_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "HIGH_CONFIDENCE_THRESHOLD",
    "MatchScorer",
    "MatchingEngine",
    "RejectReason",
    "ScoreBreakdown",
    "SimilarityMode",
    "SimilarityScorer",
    "TargetIndex",
    "build_rationale",
    "compute_input_fingerprint",
    "containment_similarity",
    "edit_distance",
    "extract_counterparty_id",
    "normalize_counterparty_id",
    "similarity",
    "traced_engine",
]
