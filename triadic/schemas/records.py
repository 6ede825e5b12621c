"""Pydantic input records for the decision engines.

One record per engine. Every optional field carries the neutral default
the engine assumes when the caller omits it. Validation happens here,
at the boundary:
- NaN and infinite values are rejected
- 0-1 scores are clamped into range
- counts, ages and amounts must be non-negative
- booleans are refused where a number is expected
- anything that cannot be coerced raises InvalidInputError naming the field
"""

from collections.abc import Mapping
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from triadic.core.exceptions import InvalidInputError


def reject_bool(value: Any) -> Any:
    """Refuse booleans where a number is expected."""
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    return value


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return min(1.0, max(0.0, value))


def clamp_education(value: float) -> float:
    """Clamp an education level into the 1-5 scale."""
    return min(5.0, max(1.0, value))


# 0-1 score, clamped
UnitScore = Annotated[float, BeforeValidator(reject_bool), AfterValidator(clamp_unit)]
# Years, minutes, currency amounts
NonNegative = Annotated[float, BeforeValidator(reject_bool), Field(ge=0)]
# 1-5 education scale, clamped
EducationLevel = Annotated[float, BeforeValidator(reject_bool), AfterValidator(clamp_education)]
# Category labels compare upper-case
Label = Annotated[str, AfterValidator(str.upper)]

RecordT = TypeVar("RecordT", bound="InputRecord")


class InputRecord(BaseModel):
    """Base class for engine input records."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        allow_inf_nan=False,
        str_strip_whitespace=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null means "not supplied": fall back to the field default
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @classmethod
    def parse(cls: type[RecordT], data: Mapping[str, Any]) -> RecordT:
        """Validate a raw mapping into a typed record.

        Args:
            data: Caller-supplied field mapping

        Returns:
            Validated, immutable record

        Raises:
            InvalidInputError: Naming the first offending field
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError("<record>", f"expected a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error.get("loc", ())) or "<record>"
            raise InvalidInputError(field, error.get("msg", "invalid value")) from exc

    def provided(self, name: str) -> bool:
        """Check whether the caller explicitly supplied a field."""
        return name in self.model_fields_set


# =============================================================================
# Medical triage
# =============================================================================


class PatientRecord(InputRecord):
    """Emergency department patient."""

    vital_score: UnitScore
    age: NonNegative
    wait_time: NonNegative = Field(..., description="Minutes waited so far")
    comorbidity_index: UnitScore = 0.0
    resource_score: UnitScore = 0.5
    trauma_score: UnitScore = 0.0
    category: Label | None = None
    is_pregnant: bool = False
    pregnancy_week: NonNegative | None = None
    complications: bool = False


# =============================================================================
# Credit assessment
# =============================================================================


class CreditApplication(InputRecord):
    """Credit applicant."""

    credit_score: NonNegative = 650
    annual_income: NonNegative = 50000
    debt_to_income: NonNegative = 0.30
    loan_amount: NonNegative = 20000
    employment_years: NonNegative = 3
    collateral_ratio: NonNegative = 1.0
    bankruptcy_history: bool = False
    payment_history_score: UnitScore = 0.7
    credit_utilization: UnitScore = 0.30
    loan_type: Label | None = None
    # Presence-only hints for loan type detection
    business_revenue: NonNegative | None = None
    vehicle_value: NonNegative | None = None
    tuition_amount: NonNegative | None = None

    @property
    def loan_to_income(self) -> float:
        if self.annual_income <= 0:
            return 99.0
        return self.loan_amount / self.annual_income


# =============================================================================
# Employment screening
# =============================================================================


class CandidateProfile(InputRecord):
    """Job candidate."""

    skill_match_score: UnitScore = 0.5
    experience_years: NonNegative = 3
    interview_score: UnitScore = 0.5
    reference_score: UnitScore = 0.5
    education_level: EducationLevel = 3
    cultural_fit_score: UnitScore = 0.5
    background_flagged: bool = False
    salary_expectation: NonNegative = 0
    salary_budget: NonNegative | None = None
    requires_degree: bool = True
    diversity_enabled: bool = False
    role_level: Label | None = None
    role_category: Label | None = None
    # Presence-only hints for role category detection
    technical_score: UnitScore | None = None
    leadership_score: UnitScore | None = None
    portfolio_score: UnitScore | None = None

    @property
    def budget(self) -> float:
        """Salary budget, defaulting to the expectation itself."""
        return self.salary_budget or self.salary_expectation


# =============================================================================
# Building permits
# =============================================================================


class PermitApplication(InputRecord):
    """Building or operational permit application."""

    zoning_compliance: UnitScore = 0.7
    structural_safety: UnitScore = 0.7
    environmental_impact: UnitScore = 0.3
    fire_safety_score: UnitScore = 0.7
    plot_coverage_ratio: UnitScore = 0.5
    accessibility_score: UnitScore = 0.6
    utility_capacity: UnitScore = 0.6
    heritage_zone: bool = False
    heritage_compliance: UnitScore = 0.7
    traffic_impact: UnitScore = 0.3
    permit_type: Label | None = None
    # Presence-only hints for permit type detection
    industrial_category: str | float | None = None
    commercial_area: str | float | None = None
    renovation_scope: str | float | None = None
    infrastructure_class: str | float | None = None


# =============================================================================
# Legal compliance
# =============================================================================


class LegalCase(InputRecord):
    """Legal case or contract under review."""

    contract_validity: UnitScore = 0.7
    regulatory_compliance: UnitScore = 0.7
    liability_exposure: UnitScore = 0.3
    evidence_score: UnitScore = 0.6
    precedent_alignment: UnitScore = 0.6
    jurisdiction_recognized: bool = True
    within_statute: bool = True
    conflict_of_interest: bool = False
    financial_exposure: NonNegative = 0
    financial_threshold: NonNegative | None = None
    case_type: Label | None = None


# =============================================================================
# Government services
# =============================================================================


class ServiceRequest(InputRecord):
    """Public service request."""

    identity_verified: bool = True
    eligibility_score: UnitScore = 0.7
    documentation_score: UnitScore = 0.7
    residency_verified: bool = True
    requires_residency: bool = True
    tax_compliant: bool = True
    criminal_flagged: bool = False
    requires_clearance: bool = False
    duplicate_detected: bool = False
    service_capacity: UnitScore = 0.8
    priority_group: bool = False
    service_type: Label | None = None
    # Presence-only hints for service type detection
    license_type: str | None = None
    benefit_type: str | None = None
    permit_type: str | None = None
    registration_type: str | None = None
