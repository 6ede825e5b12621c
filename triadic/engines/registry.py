"""Engine registry and per-domain entry points.

Engines are built once per process: each seals its policy at
construction and is read-only afterwards.
"""

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from triadic.core.exceptions import UnknownEngineError
from triadic.engines.base import DecisionEngine, EngineResult
from triadic.engines.credit import CreditEngine
from triadic.engines.government import GovernmentEngine
from triadic.engines.hiring import HiringEngine
from triadic.engines.legal import LegalEngine
from triadic.engines.medical import MedicalEngine
from triadic.engines.permit import PermitEngine

ENGINES: dict[str, type[DecisionEngine]] = {
    engine.name: engine
    for engine in (MedicalEngine, CreditEngine, HiringEngine, PermitEngine, LegalEngine, GovernmentEngine)
}


@lru_cache
def get_engine(name: str) -> DecisionEngine:
    """Get the process-wide engine for a domain.

    Raises:
        UnknownEngineError: If no engine is registered under the name
    """
    try:
        engine_cls = ENGINES[name]
    except KeyError:
        raise UnknownEngineError(name) from None
    return engine_cls()


def list_engines() -> list[str]:
    return list(ENGINES)


def evaluate(name: str, data: Mapping[str, Any]) -> EngineResult:
    """Evaluate an input record with the named domain engine."""
    return get_engine(name).evaluate(data)


def evaluate_medical(data: Mapping[str, Any]) -> EngineResult:
    return evaluate("medical", data)


def evaluate_credit(data: Mapping[str, Any]) -> EngineResult:
    return evaluate("credit", data)


def evaluate_hiring(data: Mapping[str, Any]) -> EngineResult:
    return evaluate("hiring", data)


def evaluate_permit(data: Mapping[str, Any]) -> EngineResult:
    return evaluate("permit", data)


def evaluate_legal(data: Mapping[str, Any]) -> EngineResult:
    return evaluate("legal", data)


def evaluate_government(data: Mapping[str, Any]) -> EngineResult:
    return evaluate("government", data)
