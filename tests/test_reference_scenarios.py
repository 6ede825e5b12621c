"""Reference scenarios and cross-engine properties."""

import importlib.util
from pathlib import Path

import pytest

from triadic.engines import DecisionEngine
from triadic.rules.engine import RulesEngine
from triadic.utils.time import parse_timestamp
from triadic.verification.bundle import FAILED, VERIFIED

SCENARIO_SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "run_scenarios.py"

# Documented reference inputs, one per scenario
REFERENCE_INPUTS = {
    "medical": {"vital_score": 0.3, "age": 70, "comorbidity_index": 0.7, "wait_time": 45, "resource_score": 0.6},
    "credit": {
        "credit_score": 450,
        "annual_income": 50000,
        "debt_to_income": 0.3,
        "loan_amount": 20000,
        "employment_years": 5,
    },
    "hiring": {
        "skill_match_score": 0.85,
        "experience_years": 7,
        "interview_score": 0.9,
        "reference_score": 0.8,
        "education_level": 4,
    },
    "permit": {
        "zoning_compliance": 0.85,
        "structural_safety": 0.9,
        "environmental_impact": 0.25,
        "plot_coverage_ratio": 0.55,
        "fire_safety_score": 0.8,
    },
}

# (engine fixture, multi-trigger rule, outcome field, ladder low to high)
MULTI_TRIGGER_RULES = [
    ("medical_engine", "C10", "priority", ("LOW", "MEDIUM", "HIGH")),
    ("credit_engine", "F10", "recommendation", ("APPROVED", "MANUAL_REVIEW", "DENIED")),
    ("hiring_engine", "H10", "recommendation", ("RECOMMENDED", "FURTHER_REVIEW", "NOT_RECOMMENDED")),
    ("permit_engine", "P10", "recommendation", ("APPROVED", "CONDITIONAL_APPROVAL", "DENIED")),
    ("legal_engine", "L10", "risk_level", ("LOW", "MEDIUM", "HIGH")),
    ("government_engine", "G10", "recommendation", ("APPROVED", "FURTHER_REVIEW", "REJECTED")),
]

# Inputs that trip several counted rules, including a terminal one where possible
MULTI_TRIGGER_INPUTS = {
    "medical_engine": {"vital_score": 0.2, "age": 70, "comorbidity_index": 0.8, "wait_time": 90},
    "credit_engine": {"credit_score": 400, "annual_income": 15000, "employment_years": 0.5},
    "hiring_engine": {"skill_match_score": 0.2, "interview_score": 0.2, "reference_score": 0.2},
    "permit_engine": {"zoning_compliance": 0.2, "structural_safety": 0.3, "fire_safety_score": 0.4},
    "legal_engine": {"liability_exposure": 0.9, "precedent_alignment": 0.2, "conflict_of_interest": True},
    "government_engine": {"duplicate_detected": True, "tax_compliant": False, "priority_group": True},
}


class TestReferenceScenarios:
    """Documented reference inputs and their expected outcomes."""

    def test_medical_clear_high(self, medical_engine: DecisionEngine) -> None:
        """Test the critical geriatric patient."""
        decision = medical_engine.evaluate(REFERENCE_INPUTS["medical"]).decision

        assert decision["priority"] == "HIGH"
        assert decision["critical"] is True

    def test_credit_clear_deny(self, credit_engine: DecisionEngine) -> None:
        """Test the applicant below the credit floor."""
        decision = credit_engine.evaluate(REFERENCE_INPUTS["credit"]).decision

        assert decision["recommendation"] == "DENIED"
        assert decision.fired("F1")

    def test_hiring_clear_recommend(self, hiring_engine: DecisionEngine) -> None:
        """Test the strong candidate."""
        decision = hiring_engine.evaluate(REFERENCE_INPUTS["hiring"]).decision

        assert decision["recommendation"] == "RECOMMENDED"
        assert decision["candidate_tier"] == "STRONG"

    def test_permit_clear_approve(self, permit_engine: DecisionEngine) -> None:
        """Test the compliant permit application."""
        decision = permit_engine.evaluate(REFERENCE_INPUTS["permit"]).decision

        assert decision["recommendation"] == "APPROVED"


class TestScenarioRunner:
    """Tests for the scenario runner script."""

    @pytest.fixture
    def script(self):
        spec = importlib.util.spec_from_file_location("run_scenarios", SCENARIO_SCRIPT)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def test_runs_the_reference_inputs(self, script) -> None:
        """Test that the runner evaluates exactly the documented inputs."""
        assert {name: s["data"] for name, s in script.SCENARIOS.items()} == REFERENCE_INPUTS

    @pytest.mark.parametrize("name", list(REFERENCE_INPUTS))
    def test_scenario_succeeds(self, script, tmp_path: Path, name: str) -> None:
        """Test that each scenario meets its expectations and writes evidence."""
        result = script.ScenarioRunner(output_dir=tmp_path).run(name)

        assert result.mismatches == []
        assert result.success is True
        assert Path(result.artifact).exists()


class TestCrossEngineProperties:
    """Properties every engine upholds."""

    @pytest.mark.parametrize(("fixture", "rule_id", "field", "ladder"), MULTI_TRIGGER_RULES)
    def test_multi_trigger_never_lowers_severity(
        self, request: pytest.FixtureRequest, fixture: str, rule_id: str, field: str, ladder: tuple
    ) -> None:
        """Test that the multi-trigger rule never softens an earlier outcome."""
        engine = request.getfixturevalue(fixture)
        record = engine.parse(MULTI_TRIGGER_INPUTS[fixture])
        decision = engine.decide(record)

        without = RulesEngine(
            [r for r in engine.rules_engine.rules if r.id != rule_id],
            engine.ladders(),
            engine.outcome_field,
        )
        reference = without.evaluate(record, engine.derive(record), engine.policy, engine.now)

        assert decision.triggered_rules >= 3
        assert decision.fired(rule_id)
        assert ladder.index(decision[field]) >= ladder.index(reference[field])

    @pytest.mark.parametrize("fixture", [f for f, *_ in MULTI_TRIGGER_RULES])
    def test_temporal_precedence_holds(self, request: pytest.FixtureRequest, fixture: str) -> None:
        """Test that every decision postdates its policy declaration."""
        engine = request.getfixturevalue(fixture)
        result = engine.evaluate(MULTI_TRIGGER_INPUTS[fixture])

        assert parse_timestamp(engine.policy.declaration_timestamp) < parse_timestamp(result.decision.timestamp)
        assert result.verification_bundle.poi.temporal_precedence is True

    @pytest.mark.parametrize("fixture", [f for f, *_ in MULTI_TRIGGER_RULES])
    def test_verdict_matches_proofs(self, request: pytest.FixtureRequest, fixture: str) -> None:
        """Test that the verdict follows from constraints and graph size."""
        bundle = request.getfixturevalue(fixture).evaluate(MULTI_TRIGGER_INPUTS[fixture]).verification_bundle

        expected = VERIFIED if bundle.poi.all_satisfied and bundle.por.edge_count > 0 else FAILED
        assert bundle.overall_result == expected
        assert bundle.overall_result == VERIFIED

    @pytest.mark.parametrize("fixture", [f for f, *_ in MULTI_TRIGGER_RULES])
    def test_replay_idempotent(self, request: pytest.FixtureRequest, fixture: str) -> None:
        """Test that replaying compliance twice gives the same results."""
        engine = request.getfixturevalue(fixture)
        record = engine.parse(MULTI_TRIGGER_INPUTS[fixture])
        decision = engine.decide(record)
        graph = engine.build_graph(record, decision)

        first = engine.verify(decision, record, graph)
        second = engine.verify(decision, record, graph)

        assert first.results == second.results
        assert first.all_satisfied == second.all_satisfied
