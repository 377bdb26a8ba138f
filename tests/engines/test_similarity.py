"""Tests for description similarity."""

import pytest

from recon_engines.similarity import (
    CONTAINMENT_SCORE,
    SimilarityMode,
    SimilarityScorer,
    containment_similarity,
    edit_distance,
    similarity,
)


class TestEditDistance:
    def test_classic_example(self):
        assert edit_distance("kitten", "sitting") == 3

    def test_empty(self):
        assert edit_distance("", "abc") == 3
        assert edit_distance("", "") == 0


class TestSimilarity:
    def test_identical_is_one(self):
        assert similarity("Factura 991", "factura 991") == 1.0

    def test_both_empty_is_one(self):
        assert similarity("", None) == 1.0

    def test_one_empty_is_zero(self):
        assert similarity("abc", "") == 0.0

    def test_normalized_by_longest(self):
        assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_symmetric(self):
        assert similarity("pago factura", "factura") == similarity("factura", "pago factura")


class TestContainment:
    def test_contained(self):
        assert containment_similarity("PAGO FACTURA 991", "factura 991") == CONTAINMENT_SCORE

    def test_not_contained(self):
        assert containment_similarity("abc", "xyz") == 0.0


class TestScorer:
    def test_default_mode_is_edit_distance(self):
        assert SimilarityScorer().mode is SimilarityMode.EDIT_DISTANCE
        assert SimilarityScorer().score("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_containment_mode(self):
        scorer = SimilarityScorer("containment")
        assert scorer.score("PAGO FACTURA 991", "factura 991") == CONTAINMENT_SCORE

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            SimilarityScorer("jaro")
