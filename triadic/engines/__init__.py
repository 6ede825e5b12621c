"""Domain decision engines.

Each engine folds its policy's rules over an input record and returns
the decision together with a triadic verification bundle.
"""

from triadic.engines.base import DecisionEngine, EngineResult
from triadic.engines.credit import CreditEngine
from triadic.engines.government import GovernmentEngine
from triadic.engines.hiring import HiringEngine
from triadic.engines.legal import LegalEngine
from triadic.engines.medical import MedicalEngine
from triadic.engines.permit import PermitEngine
from triadic.engines.registry import (
    ENGINES,
    evaluate,
    evaluate_credit,
    evaluate_government,
    evaluate_hiring,
    evaluate_legal,
    evaluate_medical,
    evaluate_permit,
    get_engine,
    list_engines,
)

__all__ = [
    "ENGINES",
    "CreditEngine",
    "DecisionEngine",
    "EngineResult",
    "GovernmentEngine",
    "HiringEngine",
    "LegalEngine",
    "MedicalEngine",
    "PermitEngine",
    "evaluate",
    "evaluate_credit",
    "evaluate_government",
    "evaluate_hiring",
    "evaluate_legal",
    "evaluate_medical",
    "evaluate_permit",
    "get_engine",
    "list_engines",
]
