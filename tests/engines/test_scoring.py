"""
Tests for MatchScorer.

Covers the temporal gate, counterparty bonus, exact and partial amount
rules, proximity decay, the currency gate and the reference scenarios.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

import pytest

from recon_config.schema import MatchScoringConfig
from recon_engines.scoring import MatchScorer, RejectReason
from recon_kernel.domain.dtos import AmountRule, MovementSnapshot, ScoringTarget, TargetKind

MOVEMENT_ID = UUID("10000000-0000-4000-8000-000000000001")
TARGET_ID = UUID("20000000-0000-4000-8000-000000000001")
BASE_DATE = date(2025, 3, 8)


def movement(amount, days_after=0, description="TRANSFERENCIA", currency="CLP"):
    return MovementSnapshot(
        movement_id=MOVEMENT_ID,
        movement_date=BASE_DATE + timedelta(days=days_after),
        description=description,
        amount=Decimal(str(amount)),
        currency=currency,
    )


def target(magnitude, counterparty_id=None, description="", kind=TargetKind.LEDGER_POSTING, currency="CLP"):
    return ScoringTarget(
        target_id=TARGET_ID,
        target_kind=kind,
        target_date=BASE_DATE,
        counterparty_id=counterparty_id,
        magnitude=Decimal(str(magnitude)),
        description=description,
        currency=currency,
    )


@pytest.fixture
def scorer():
    return MatchScorer()


class TestReferenceScenarios:
    def test_exact_match_direct_mode(self, scorer):
        """Scenario A: exact amount, counterparty match, two days apart."""
        m = movement(-119000, days_after=2, description="PAGO PROV 76.123.456-7")
        t = target(119000, counterparty_id="76123456-7")

        result = scorer.evaluate(m, t)

        assert result.amount_rule is AmountRule.EXACT
        assert result.counterparty_matched
        assert result.days_diff == 2
        assert result.score >= Decimal("0.9")
        expected = Decimal("0.9") + Decimal("0.1") * (1 - Decimal(2) / Decimal(60))
        assert result.score == expected

    def test_partial_settlement(self, scorer):
        """Scenario B: partial payment corroborated by counterparty."""
        m = movement(50000, description="ABONO 76.123.456-7")
        t = target(119000, counterparty_id="76.123.456-7", kind=TargetKind.OBLIGATION)

        result = scorer.evaluate(m, t)

        assert result.amount_rule is AmountRule.PARTIAL
        assert result.score == Decimal("0.8")
        assert result.score >= MatchScoringConfig().high_confidence_threshold

    def test_out_of_window_rejection(self, scorer):
        """Scenario C: identical amounts and counterparty, 75 days late."""
        m = movement(119000, days_after=75, description="PAGO 76.123.456-7")
        t = target(119000, counterparty_id="76123456-7")

        result = scorer.evaluate(m, t)

        assert result.score == Decimal("0")
        assert result.rejected_reason == RejectReason.TEMPORAL


class TestTemporalGate:
    @pytest.mark.parametrize("days", [-30, -3, 61, 90, 400])
    def test_outside_gate_scores_zero(self, scorer, days):
        m = movement(119000, days_after=days, description="76.123.456-7")
        assert scorer.score(m, target(119000, counterparty_id="76123456-7")) == 0

    @pytest.mark.parametrize("days", [-2, 0, 1, 59, 60])
    def test_inside_gate_scores(self, scorer, days):
        m = movement(119000, days_after=days)
        assert scorer.score(m, target(119000)) > 0

    def test_proximity_decays_with_distance(self, scorer):
        t = target(119000)
        scores = [scorer.score(movement(119000, days_after=d), t) for d in (0, 10, 30, 60)]
        assert scores == sorted(scores, reverse=True)
        assert scores[-1] == Decimal("0.5")

    def test_gate_bounds_are_configurable(self):
        narrow = MatchScorer(MatchScoringConfig(max_days_before=0, max_days_after=5))
        assert narrow.score(movement(100, days_after=-1), target(100)) == 0
        assert narrow.score(movement(100, days_after=6), target(100)) == 0
        assert narrow.score(movement(100, days_after=5), target(100)) == Decimal("0.5")


class TestAmountRules:
    def test_exact_within_tolerance(self, scorer):
        result = scorer.evaluate(movement(119009), target(119000))
        assert result.amount_rule is AmountRule.EXACT

    def test_tolerance_is_strict(self, scorer):
        # diff of exactly 10 is not exact; larger movement cannot be partial
        result = scorer.evaluate(movement(119010), target(119000))
        assert result.is_rejected
        assert result.rejected_reason == RejectReason.AMOUNT

    def test_exact_without_counterparty_is_below_threshold(self, scorer):
        assert scorer.score(movement(119000), target(119000)) == Decimal("0.6")

    def test_zero_amount_rejected(self, scorer):
        result = scorer.evaluate(
            movement(0, description="ABONO 76.123.456-7"),
            target(119000, counterparty_id="76123456-7", kind=TargetKind.OBLIGATION),
        )
        assert result.is_rejected
        assert result.rejected_reason == RejectReason.AMOUNT
        assert result.score == 0

    def test_partial_without_corroboration_rejected(self, scorer):
        result = scorer.evaluate(
            movement(50000, description="TRANSFERENCIA"),
            target(119000, description="Factura 991 servicios"),
        )
        assert result.score == 0
        assert result.rejected_reason == RejectReason.AMOUNT
        assert result.similarity is not None and result.similarity <= 0.6

    def test_partial_corroborated_by_description(self, scorer):
        result = scorer.evaluate(
            movement(50000, description="Factura 991 servicios"),
            target(119000, description="factura 991 servicio"),
        )
        assert result.amount_rule is AmountRule.PARTIAL
        assert not result.counterparty_matched
        assert result.similarity > 0.6
        assert result.score == Decimal("0.4")

    def test_overpayment_rejected(self, scorer):
        result = scorer.evaluate(
            movement(200000, description="PAGO 76.123.456-7"),
            target(119000, counterparty_id="76123456-7"),
        )
        assert result.score == 0

    def test_containment_mode_corroborates_substring(self):
        scorer = MatchScorer(MatchScoringConfig(similarity_mode="containment"))
        result = scorer.evaluate(
            movement(50000, description="PAGO FACTURA 991 CLIENTE"),
            target(119000, description="factura 991"),
        )
        assert result.amount_rule is AmountRule.PARTIAL
        assert result.similarity == pytest.approx(0.8)


class TestCounterpartyAndCurrency:
    def test_counterparty_mismatch_gets_no_bonus(self, scorer):
        result = scorer.evaluate(
            movement(119000, description="PAGO 12.345.678-5"),
            target(119000, counterparty_id="76123456-7"),
        )
        assert not result.counterparty_matched
        assert result.score == Decimal("0.6")

    def test_unparseable_stored_counterparty_never_matches(self, scorer):
        result = scorer.evaluate(
            movement(119000, description="PAGO 76.123.456-7"),
            target(119000, counterparty_id="ACME"),
        )
        assert not result.counterparty_matched

    def test_currency_mismatch_scores_zero(self, scorer):
        result = scorer.evaluate(
            movement(119000, description="76.123.456-7", currency="USD"),
            target(119000, counterparty_id="76123456-7"),
        )
        assert result.score == 0
        assert result.rejected_reason == RejectReason.CURRENCY

    def test_score_clamped_to_one(self):
        heavy = MatchScorer(MatchScoringConfig(counterparty_weight=Decimal("0.9")))
        m = movement(100, description="76.123.456-7")
        assert heavy.score(m, target(100, counterparty_id="76123456-7")) == Decimal("1")
