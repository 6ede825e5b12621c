"""Rule, effect and decision data models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from triadic.policies.models import Policy

if TYPE_CHECKING:
    from triadic.verification.graph import ReasonGraph


class EffectMode(str, Enum):
    """How an effect merges into the current decision state."""
    ESCALATE = "escalate"  # apply if the new value ranks higher
    FROM_BASELINE = "from_baseline"  # apply only while the field holds its baseline


@dataclass(frozen=True)
class Ladder:
    """Ordered values of one outcome field, lowest precedence first."""
    field: str
    levels: tuple[Any, ...]

    @classmethod
    def flag(cls, name: str) -> "Ladder":
        """Boolean flag: False < True."""
        return cls(name, (False, True))

    @property
    def baseline(self) -> Any:
        return self.levels[0]

    def rank(self, value: Any) -> int:
        try:
            return self.levels.index(value)
        except ValueError:
            raise ValueError(f"{value!r} is not a level of {self.field}") from None


@dataclass(frozen=True)
class Effect:
    """A partial update a rule applies when it fires."""
    field: str
    value: Any
    mode: EffectMode = EffectMode.ESCALATE


@dataclass
class RuleContext:
    """What a rule guard or a compliance check may look at.

    ``values`` is the decision state as seen at that point of the fold
    (or the final decision during compliance replay). ``graph`` is only
    present during compliance replay.
    """
    record: Any
    values: Mapping[str, Any]
    triggered: int
    policy: Policy
    graph: Optional["ReasonGraph"] = None

    def param(self, constraint_id: str, key: str) -> Any:
        return self.policy.param(constraint_id, key)


@dataclass(frozen=True)
class Rule:
    """A single evaluation rule.

    Rules run in declared order. ``counts`` rules increment the decision's
    triggered count; ``audit`` rules appear in the allRules audit array;
    ``reason_on_change`` rules only explain themselves when one of their
    effects actually changed the decision.
    """
    id: str
    text: str
    when: Callable[[RuleContext], bool]
    effects: tuple[Effect, ...] = ()
    reason: Callable[[RuleContext], str] | None = None
    detail: Callable[[RuleContext, bool], str] | None = None
    counts: bool = True
    audit: bool = True
    reason_on_change: bool = False


@dataclass(frozen=True)
class RuleAudit:
    """Audit entry for one evaluated rule."""
    id: str
    rule: str
    triggered: bool
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "rule": self.rule, "triggered": self.triggered, "detail": self.detail}


@dataclass(frozen=True)
class Decision:
    """Engine output for one input record."""
    outcome_field: str
    values: Mapping[str, Any]
    triggered_rules: int
    timestamp: str
    reasons: tuple[str, ...] = ()
    all_rules: tuple[RuleAudit, ...] = field(default_factory=tuple)

    @property
    def outcome(self) -> Any:
        """Primary categorical outcome (priority or recommendation)."""
        return self.values[self.outcome_field]

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def fired(self, rule_id: str) -> bool:
        """Check whether a rule triggered."""
        return any(a.id == rule_id and a.triggered for a in self.all_rules)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.values)
        data["triggered_rules"] = self.triggered_rules
        data["timestamp"] = self.timestamp
        data["reasons"] = list(self.reasons)
        data["allRules"] = [a.to_dict() for a in self.all_rules]
        return data
