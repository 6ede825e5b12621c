"""Deterministic rule fold.

Rules are evaluated in declared order over a mutable copy of the
decision state. Each firing rule contributes effects which are merged
by :func:`merge_effect`:
- a field only ever moves up its ladder (escalation only)
- the highest-precedence value reached so far wins
- FROM_BASELINE effects apply only while the field is still at baseline

Once a terminal outcome (DENIED, REJECTED, NOT_RECOMMENDED) is set no
later rule can soften it. The wall clock is read once, after the fold,
to stamp the decision.
"""

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, Callable

from triadic.core.logging import get_logger
from triadic.policies.models import Policy
from triadic.rules.models import Decision, Effect, EffectMode, Ladder, Rule, RuleAudit, RuleContext

logger = get_logger(__name__)


def merge_effect(values: dict[str, Any], effect: Effect, ladders: Mapping[str, Ladder]) -> bool:
    """Merge one effect into the decision state.

    Args:
        values: Current decision state (updated in place)
        effect: Effect to apply
        ladders: Precedence ladder per outcome field

    Returns:
        True if the field changed
    """
    ladder = ladders[effect.field]
    current = values[effect.field]

    if effect.mode == EffectMode.FROM_BASELINE and current != ladder.baseline:
        return False
    if ladder.rank(effect.value) <= ladder.rank(current):
        return False

    values[effect.field] = effect.value
    return True


class RulesEngine:
    """Ordered rule fold producing a Decision."""

    def __init__(
        self,
        rules: Sequence[Rule],
        ladders: Sequence[Ladder],
        outcome_field: str,
    ) -> None:
        """Initialize engine with a rule list.

        Args:
            rules: Rules in evaluation order
            ladders: One ladder per field any effect touches
            outcome_field: Name of the primary outcome field

        Raises:
            ValueError: If an effect targets a field without a ladder or
                a value outside its ladder
        """
        self.rules = tuple(rules)
        self.ladders = {ladder.field: ladder for ladder in ladders}
        self.outcome_field = outcome_field

        if outcome_field not in self.ladders:
            raise ValueError(f"No ladder for outcome field {outcome_field}")
        for rule in self.rules:
            for effect in rule.effects:
                if effect.field not in self.ladders:
                    raise ValueError(f"Rule {rule.id} targets unknown field {effect.field}")
                self.ladders[effect.field].rank(effect.value)

    def initial_state(self) -> dict[str, Any]:
        """Every laddered field at its baseline."""
        return {name: ladder.baseline for name, ladder in self.ladders.items()}

    def evaluate(
        self,
        record: Any,
        derived: Mapping[str, Any],
        policy: Policy,
        clock: Callable[[], str],
    ) -> Decision:
        """Fold the rules over an input record.

        Args:
            record: Validated input record
            derived: Values computed before the rules run (category, scores);
                they are placed after the outcome fields in the decision
            policy: Policy supplying thresholds
            clock: Returns the decision timestamp; called exactly once

        Returns:
            Decision with outcome values, reasons and audit trail
        """
        values = self.initial_state()
        values.update(derived)

        triggered = 0
        reasons: list[str] = []
        audits: list[RuleAudit] = []

        for rule in self.rules:
            ctx = RuleContext(record=record, values=values, triggered=triggered, policy=policy)
            fired = bool(rule.when(ctx))
            changed = False

            if fired:
                for effect in rule.effects:
                    changed = merge_effect(values, effect, self.ladders) or changed
                if rule.counts:
                    triggered += 1
                if rule.reason is not None and (changed or not rule.reason_on_change):
                    reasons.append(rule.reason(ctx))
                logger.debug(f"Rule {rule.id} fired (changed={changed})")

            if rule.audit:
                detail = rule.detail(ctx, fired) if rule.detail else ""
                audits.append(RuleAudit(id=rule.id, rule=rule.text, triggered=fired, detail=detail))

        return Decision(
            outcome_field=self.outcome_field,
            values=MappingProxyType(dict(values)),
            triggered_rules=triggered,
            timestamp=clock(),
            reasons=tuple(reasons),
            all_rules=tuple(audits),
        )
