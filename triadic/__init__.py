"""Triadic verification core.

Deterministic rule-based decision engines whose every decision carries
a Proof of Operation, a Proof of Reason and a Proof of Intent, folded
into a Merkle-anchored verification bundle.
"""

from triadic.core.exceptions import (
    InvalidInputError,
    PolicyIntegrityError,
    TriadicError,
    UnknownEngineError,
)
from triadic.engines import (
    EngineResult,
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
from triadic.verification import verify_bundle

__version__ = "1.0.0"

__all__ = [
    "EngineResult",
    "InvalidInputError",
    "PolicyIntegrityError",
    "TriadicError",
    "UnknownEngineError",
    "evaluate",
    "evaluate_credit",
    "evaluate_government",
    "evaluate_hiring",
    "evaluate_legal",
    "evaluate_medical",
    "evaluate_permit",
    "get_engine",
    "list_engines",
    "verify_bundle",
]
