"""
recon_engines.similarity -- Text similarity between descriptions.

Responsibility:
    One definition of description similarity shared by every call site.

    ``similarity`` is the canonical measure: 1 - editDistance / max(len),
    case-insensitive, 1.0 for two empty strings.  ``containment_similarity``
    is a cheaper approximation (0.8 when one lowercase string contains the
    other, else 0.0) that can be selected through configuration when
    descriptions are long and throughput matters more than nuance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from enum import Enum

from rapidfuzz.distance import Levenshtein

CONTAINMENT_SCORE = 0.8


class SimilarityMode(str, Enum):
    EDIT_DISTANCE = "edit_distance"
    CONTAINMENT = "containment"


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert, delete and substitute costs."""
    return Levenshtein.distance(a or "", b or "")


def similarity(a: str | None, b: str | None) -> float:
    """Normalized edit-distance similarity in [0, 1]."""
    left = (a or "").lower()
    right = (b or "").lower()
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(left, right) / longest


def containment_similarity(a: str | None, b: str | None) -> float:
    """0.8 if either lowercase string contains the other, else 0.0."""
    left = (a or "").lower()
    right = (b or "").lower()
    if left in right or right in left:
        return CONTAINMENT_SCORE
    return 0.0


class SimilarityScorer:
    """
    Configured similarity function.

    Contract:
        ``score(a, b)`` returns a float in [0, 1] using the selected mode.
    """

    def __init__(self, mode: SimilarityMode | str = SimilarityMode.EDIT_DISTANCE):
        self.mode = SimilarityMode(mode)
        if self.mode is SimilarityMode.EDIT_DISTANCE:
            self._fn = similarity
        else:
            self._fn = containment_similarity

    def score(self, a: str | None, b: str | None) -> float:
        return self._fn(a, b)
