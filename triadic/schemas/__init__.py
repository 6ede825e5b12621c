"""Pydantic schemas for engine input validation."""

from triadic.schemas.records import (
    CandidateProfile,
    CreditApplication,
    InputRecord,
    LegalCase,
    PatientRecord,
    PermitApplication,
    ServiceRequest,
)

__all__ = [
    "InputRecord",
    "PatientRecord",
    "CreditApplication",
    "CandidateProfile",
    "PermitApplication",
    "LegalCase",
    "ServiceRequest",
]
