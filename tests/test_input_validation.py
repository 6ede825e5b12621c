"""Tests for input record validation at the engine boundary."""

import math

import pytest
from pydantic import ValidationError

from triadic.core.exceptions import InvalidInputError
from triadic.engines import CreditEngine, HiringEngine, MedicalEngine
from triadic.schemas.records import CandidateProfile, CreditApplication, LegalCase, PatientRecord


class TestRequiredFields:
    """Tests for required triage inputs."""

    @pytest.mark.parametrize("field", ["vital_score", "age", "wait_time"])
    def test_missing_required_field(self, medical_engine: MedicalEngine, field: str) -> None:
        """Test that each required triage field must be supplied."""
        data = {"vital_score": 0.5, "age": 40, "wait_time": 10}
        del data[field]

        with pytest.raises(InvalidInputError) as exc_info:
            medical_engine.evaluate(data)

        assert exc_info.value.field == field

    def test_null_required_field(self) -> None:
        """Test that null does not satisfy a required field."""
        with pytest.raises(InvalidInputError) as exc_info:
            PatientRecord.parse({"vital_score": None, "age": 40, "wait_time": 10})

        assert exc_info.value.field == "vital_score"

    def test_non_mapping_input(self) -> None:
        """Test that records must be mappings."""
        with pytest.raises(InvalidInputError):
            PatientRecord.parse([0.5, 40, 10])  # type: ignore[arg-type]


class TestMalformedValues:
    """Tests for values that cannot be used."""

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_rejected(self, value: float) -> None:
        """Test that NaN and infinities are rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            PatientRecord.parse({"vital_score": value, "age": 40, "wait_time": 10})

        assert exc_info.value.field == "vital_score"

    def test_non_numeric_string_rejected(self) -> None:
        """Test that text where a number is expected is rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            CreditApplication.parse({"credit_score": "excellent"})

        assert exc_info.value.field == "credit_score"
        assert "credit_score" in str(exc_info.value)

    @pytest.mark.parametrize(
        ("record", "data", "field"),
        [
            (PatientRecord, {"vital_score": True, "age": 40, "wait_time": 10}, "vital_score"),
            (PatientRecord, {"vital_score": 0.5, "age": False, "wait_time": 10}, "age"),
            (CandidateProfile, {"education_level": True}, "education_level"),
        ],
    )
    def test_boolean_for_number_rejected(self, record: type, data: dict, field: str) -> None:
        """Test that booleans are not read as 0 or 1."""
        with pytest.raises(InvalidInputError) as exc_info:
            record.parse(data)

        assert exc_info.value.field == field

    def test_boolean_flags_still_accepted(self) -> None:
        """Test that genuine flag fields keep taking booleans."""
        assert LegalCase.parse({"within_statute": False}).within_statute is False

    def test_numeric_string_coerced(self) -> None:
        """Test that numeric strings are accepted."""
        assert CreditApplication.parse({"credit_score": "720"}).credit_score == 720

    def test_negative_age_rejected(self) -> None:
        """Test that ages cannot be negative."""
        with pytest.raises(InvalidInputError) as exc_info:
            PatientRecord.parse({"vital_score": 0.5, "age": -1, "wait_time": 10})

        assert exc_info.value.field == "age"

    def test_invalid_error_is_value_error(self) -> None:
        """Test that callers can catch input errors as ValueError."""
        with pytest.raises(ValueError):
            PatientRecord.parse({"vital_score": "high", "age": 40, "wait_time": 10})


class TestNormalization:
    """Tests for clamping and defaults."""

    def test_scores_are_clamped(self) -> None:
        """Test that 0-1 scores are clamped into range."""
        record = PatientRecord.parse({"vital_score": 1.7, "age": 40, "wait_time": 10, "resource_score": -0.3})

        assert record.vital_score == 1.0
        assert record.resource_score == 0.0

    def test_education_clamped_to_scale(self) -> None:
        """Test that education levels are clamped to 1-5."""
        assert CandidateProfile.parse({"education_level": 9}).education_level == 5
        assert CandidateProfile.parse({"education_level": 0}).education_level == 1

    def test_null_falls_back_to_default(self) -> None:
        """Test that null optional fields use the record default."""
        record = CreditApplication.parse({"credit_score": None, "annual_income": None})

        assert record.credit_score == 650
        assert record.annual_income == 50000
        assert not record.provided("credit_score")

    def test_explicit_zero_is_respected(self, credit_engine: CreditEngine) -> None:
        """Test that zero is a value, not a missing field."""
        decision = credit_engine.evaluate({"credit_score": 0, "annual_income": 0}).decision

        assert decision.outcome == "DENIED"
        assert decision.fired("F1")
        assert decision.fired("F3")
        assert decision["loan_to_income"] == 99.0

    def test_unknown_fields_ignored(self, hiring_engine: HiringEngine) -> None:
        """Test that extra caller fields are ignored by the decision."""
        decision = hiring_engine.evaluate({"favourite_colour": "blue"}).decision

        assert "favourite_colour" not in decision.values

    def test_labels_are_upper_cased(self) -> None:
        """Test that category labels compare upper-case."""
        assert LegalCase.parse({"case_type": " contract "}).case_type == "CONTRACT"

    def test_records_are_immutable(self) -> None:
        """Test that validated records are frozen."""
        record = CreditApplication.parse({})

        with pytest.raises(ValidationError):
            record.credit_score = 800  # type: ignore[misc]

    def test_provided_tracks_explicit_fields(self) -> None:
        """Test presence tracking for detection hints."""
        record = CreditApplication.parse({"collateral_ratio": 1.0})

        assert record.provided("collateral_ratio")
        assert not record.provided("loan_amount")
