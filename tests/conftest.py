"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from triadic.core.crypto import Signer
from triadic.engines import (
    CreditEngine,
    GovernmentEngine,
    HiringEngine,
    LegalEngine,
    MedicalEngine,
    PermitEngine,
)
from triadic.policies.loader import load_policy
from triadic.policies.models import Policy

# All decisions in the suite are stamped with this instant
FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
TEST_SECRET = "test-secret"


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed evaluation time, after every packaged policy declaration."""
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock returning the fixed evaluation time."""
    return lambda: FIXED_NOW


@pytest.fixture
def signer() -> Signer:
    """Signer bound to the test secret."""
    return Signer(TEST_SECRET)


@pytest.fixture
def medical_policy(signer: Signer) -> Policy:
    """Packaged triage policy sealed with the test signer."""
    return load_policy("medical.yaml", signer=signer)


@pytest.fixture
def medical_engine(signer: Signer, clock: Callable[[], datetime]) -> MedicalEngine:
    """Triage engine with a fixed clock."""
    return MedicalEngine(signer=signer, clock=clock)


@pytest.fixture
def credit_engine(signer: Signer, clock: Callable[[], datetime]) -> CreditEngine:
    """Credit engine with a fixed clock."""
    return CreditEngine(signer=signer, clock=clock)


@pytest.fixture
def hiring_engine(signer: Signer, clock: Callable[[], datetime]) -> HiringEngine:
    """Hiring engine with a fixed clock."""
    return HiringEngine(signer=signer, clock=clock)


@pytest.fixture
def permit_engine(signer: Signer, clock: Callable[[], datetime]) -> PermitEngine:
    """Permit engine with a fixed clock."""
    return PermitEngine(signer=signer, clock=clock)


@pytest.fixture
def legal_engine(signer: Signer, clock: Callable[[], datetime]) -> LegalEngine:
    """Legal engine with a fixed clock."""
    return LegalEngine(signer=signer, clock=clock)


@pytest.fixture
def government_engine(signer: Signer, clock: Callable[[], datetime]) -> GovernmentEngine:
    """Government services engine with a fixed clock."""
    return GovernmentEngine(signer=signer, clock=clock)


@pytest.fixture
def critical_patient() -> dict:
    """Critical geriatric patient with a long-ish wait."""
    return {
        "vital_score": 0.3,
        "age": 70,
        "comorbidity_index": 0.7,
        "wait_time": 45,
        "resource_score": 0.6,
    }


@pytest.fixture
def stable_patient() -> dict:
    """Stable adult patient that triggers no rule."""
    return {"vital_score": 0.9, "age": 30, "wait_time": 10}
