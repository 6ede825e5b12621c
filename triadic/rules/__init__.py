"""Deterministic rule evaluation.

Rules are plain objects folded in declared order; outcome fields only
escalate along explicit ladders.
"""

from triadic.rules.engine import RulesEngine, merge_effect
from triadic.rules.models import (
    Decision,
    Effect,
    EffectMode,
    Ladder,
    Rule,
    RuleAudit,
    RuleContext,
)

__all__ = [
    "Decision",
    "Effect",
    "EffectMode",
    "Ladder",
    "Rule",
    "RuleAudit",
    "RuleContext",
    "RulesEngine",
    "merge_effect",
]
