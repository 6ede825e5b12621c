"""Tests for the credit assessment engine."""

import pytest

from triadic.engines import CreditEngine
from triadic.engines.credit import calculate_credit_risk, detect_loan_type, determine_interest_tier
from triadic.schemas.records import CreditApplication

RECOMMENDATION_RANK = {"APPROVED": 0, "MANUAL_REVIEW": 1, "DENIED": 2}


class TestCreditScenarios:
    """Golden tests for credit decisions."""

    def test_default_application_approved(self, credit_engine: CreditEngine) -> None:
        """Test that an application at every default is approved."""
        result = credit_engine.evaluate({})
        decision = result.decision

        assert decision.outcome == "APPROVED"
        assert decision["risk_level"] == "LOW"
        assert decision["loan_type"] == "PERSONAL"
        assert decision["risk_score"] == pytest.approx(0.4359)
        assert decision["interest_rate_tier"] == "STANDARD"
        assert decision.triggered_rules == 0
        assert result.verification_bundle.overall_result == "VERIFIED"

    def test_credit_score_floor_denies(self, credit_engine: CreditEngine) -> None:
        """Test that a sub-floor credit score is denied."""
        result = credit_engine.evaluate({"credit_score": 450})
        decision = result.decision

        assert decision.outcome == "DENIED"
        assert decision.triggered_rules == 1
        assert decision.reasons == ("F1: credit_score=450 < 500 → recommendation = DENIED",)
        assert decision["interest_rate_tier"] == "SUBPRIME"
        assert result.verification_bundle.overall_result == "VERIFIED"

    def test_debt_to_income_ceiling_denies(self, credit_engine: CreditEngine) -> None:
        """Test that excessive DTI is denied."""
        decision = credit_engine.evaluate({"debt_to_income": 0.65}).decision

        assert decision.outcome == "DENIED"
        assert decision.fired("F2")

    def test_bankruptcy_forces_manual_review(self, credit_engine: CreditEngine) -> None:
        """Test that HIGH risk overrides approval to manual review."""
        decision = credit_engine.evaluate({"bankruptcy_history": True}).decision

        assert decision["risk_level"] == "HIGH"
        assert decision.outcome == "MANUAL_REVIEW"
        assert decision.triggered_rules == 1
        assert decision.reasons[-1] == "Risk override: risk_level=HIGH → recommendation = MANUAL_REVIEW"

    def test_high_risk_does_not_soften_denial(self, credit_engine: CreditEngine) -> None:
        """Test that the risk override never replaces a denial."""
        decision = credit_engine.evaluate({"bankruptcy_history": True, "credit_score": 400}).decision

        assert decision.outcome == "DENIED"
        assert not any(r.startswith("Risk override") for r in decision.reasons)

    def test_mortgage_undercollateralized(self, credit_engine: CreditEngine) -> None:
        """Test the collateral check for mortgages."""
        result = credit_engine.evaluate({"collateral_ratio": 0.6})
        decision = result.decision

        assert decision["loan_type"] == "MORTGAGE"
        assert decision["undercollateralized"] is True
        assert decision.outcome == "MANUAL_REVIEW"
        assert result.verification_bundle.por.graph.has_vertex("r9")

    def test_collateral_only_checked_for_mortgages(self, credit_engine: CreditEngine) -> None:
        """Test that an explicit non-mortgage type skips the collateral rule."""
        decision = credit_engine.evaluate({"collateral_ratio": 0.6, "loan_type": "auto"}).decision

        assert decision["loan_type"] == "AUTO"
        assert not decision.fired("F6")
        assert decision.outcome == "APPROVED"

    def test_multiple_risks_escalate(self, credit_engine: CreditEngine) -> None:
        """Test that three moderate risks lead to manual review."""
        result = credit_engine.evaluate(
            {"annual_income": 15000, "employment_years": 0.5, "payment_history_score": 0.3}
        )
        decision = result.decision

        assert decision.triggered_rules == 3
        assert decision["risk_level"] == "MEDIUM"
        assert decision.fired("F10")
        assert decision.outcome == "MANUAL_REVIEW"
        assert any(r.startswith("F10") for r in decision.reasons)
        assert result.verification_bundle.overall_result == "VERIFIED"

    def test_high_utilization_is_warning(self, credit_engine: CreditEngine) -> None:
        """Test the utilization warning."""
        result = credit_engine.evaluate({"credit_utilization": 0.9})
        f9 = result.verification_bundle.poi.result_for("F9")

        assert result.decision["risk_level"] == "MEDIUM"
        assert f9.satisfied is True
        assert f9.triggered is True


class TestCreditScoring:
    """Tests for credit scoring helpers."""

    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            ({}, "PERSONAL"),
            ({"collateral_ratio": 1.2}, "MORTGAGE"),
            ({"business_revenue": 100000}, "BUSINESS"),
            ({"vehicle_value": 15000}, "AUTO"),
            ({"tuition_amount": 12000}, "EDUCATION"),
            ({"loan_type": "personal", "collateral_ratio": 1.2}, "PERSONAL"),
        ],
    )
    def test_loan_type_detection(self, data: dict, expected: str) -> None:
        """Test loan type detection from supplied fields."""
        assert detect_loan_type(CreditApplication.parse(data)) == expected

    def test_interest_tiers(self) -> None:
        """Test interest tier thresholds."""
        assert determine_interest_tier(0.1, 800) == "PRIME"
        assert determine_interest_tier(0.1, 700) == "PRIME_PLUS"
        assert determine_interest_tier(0.3, 600) == "STANDARD"
        assert determine_interest_tier(0.6, 600) == "SUBPRIME"
        assert determine_interest_tier(0.9, 600) == "HIGH_RISK"

    def test_better_credit_lowers_risk(self) -> None:
        """Test that risk decreases with credit score."""
        low = calculate_credit_risk(CreditApplication.parse({"credit_score": 500}))
        high = calculate_credit_risk(CreditApplication.parse({"credit_score": 800}))

        assert high < low

    @pytest.mark.parametrize("credit_score", [300, 450, 520, 600, 700, 800])
    def test_raising_dti_never_improves_outcome(self, credit_engine: CreditEngine, credit_score: int) -> None:
        """Test that worsening DTI never improves the recommendation."""
        ranks = [
            RECOMMENDATION_RANK[
                credit_engine.evaluate({"credit_score": credit_score, "debt_to_income": dti}).decision.outcome
            ]
            for dti in (0.1, 0.3, 0.5, 0.55, 0.9)
        ]

        assert ranks == sorted(ranks)
