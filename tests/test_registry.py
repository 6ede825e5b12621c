"""Tests for the engine registry and package entry points."""

import json

import pytest

import triadic
from triadic.core.exceptions import TriadicError, UnknownEngineError
from triadic.engines import MedicalEngine, get_engine, list_engines


class TestRegistry:
    """Tests for engine lookup."""

    def test_list_engines(self) -> None:
        """Test that all six domains are registered."""
        assert list_engines() == ["medical", "credit", "hiring", "permit", "legal", "government"]

    def test_engine_is_built_once(self) -> None:
        """Test that lookups share one engine per domain."""
        engine = get_engine("medical")

        assert isinstance(engine, MedicalEngine)
        assert get_engine("medical") is engine

    def test_unknown_engine(self) -> None:
        """Test that unknown names raise a dedicated error."""
        with pytest.raises(UnknownEngineError) as exc_info:
            get_engine("astrology")

        assert str(exc_info.value) == "Unknown decision engine: astrology"
        assert isinstance(exc_info.value, KeyError)
        assert isinstance(exc_info.value, TriadicError)


class TestEntryPoints:
    """Tests for the per-domain evaluate functions."""

    @pytest.mark.parametrize(
        ("function", "data", "outcome"),
        [
            ("evaluate_medical", {"vital_score": 0.3, "age": 70, "wait_time": 45}, "HIGH"),
            ("evaluate_credit", {"credit_score": 450}, "DENIED"),
            ("evaluate_hiring", {"skill_match_score": 0.2}, "NOT_RECOMMENDED"),
            ("evaluate_permit", {}, "APPROVED"),
            ("evaluate_legal", {"within_statute": False}, "REJECTED"),
            ("evaluate_government", {"duplicate_detected": True}, "REJECTED"),
        ],
    )
    def test_entry_point(self, function: str, data: dict, outcome: str) -> None:
        """Test each domain entry point end to end."""
        result = getattr(triadic, function)(data)

        assert result.decision.outcome == outcome
        assert result.verification_bundle.overall_result == "VERIFIED"
        assert triadic.verify_bundle(result.verification_bundle, data=data).intact is True

    def test_result_to_dict(self) -> None:
        """Test the serialized engine result."""
        result = triadic.evaluate("credit", {"credit_score": 450})

        data = json.loads(json.dumps(result.to_dict()))

        assert set(data) == {"decision", "verification_bundle"}
        assert data["decision"]["recommendation"] == "DENIED"
        assert data["decision"]["triggered_rules"] == 1
        assert {a["id"] for a in data["decision"]["allRules"]} >= {"F1", "F10"}
        assert data["verification_bundle"]["bundle_id"].startswith("CRD-")

    def test_invalid_input_propagates(self) -> None:
        """Test that bad input surfaces as InvalidInputError."""
        with pytest.raises(triadic.InvalidInputError):
            triadic.evaluate_medical({"age": 40, "wait_time": 10})
