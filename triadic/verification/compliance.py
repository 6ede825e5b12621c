"""Policy compliance replay (Proof of Intent).

Replays each declared constraint against a finished decision. This is a
consistency audit, not a re-derivation: a mandatory constraint
``guard => consequence`` is satisfied iff the guard does not hold or the
decision shows the consequence. Guards read their thresholds from the
same policy params as the rule evaluator.

Warning constraints are always reported satisfied, with a ``triggered``
flag saying whether their guard held. A Temporal Precedence row is
always appended: the policy must be declared before the decision.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable

from triadic.core.exceptions import PolicyIntegrityError
from triadic.policies.models import Policy, Severity
from triadic.rules.models import Decision, RuleContext
from triadic.utils.format import render_value
from triadic.utils.time import parse_timestamp
from triadic.verification.graph import ReasonGraph

TEMPORAL_PRECEDENCE = "Temporal Precedence"


@dataclass(frozen=True)
class ConstraintCheck:
    """How to replay one declared constraint.

    Attributes:
        constraint_id: Id of the policy constraint
        guard: Condition under which the constraint applies
        holds: Whether the decision shows the required consequence
            (not needed for warning constraints)
        detail: Renders the audit detail; receives whether the guard held
        requires_graph: Only replayable when the reason graph is supplied
    """
    constraint_id: str
    guard: Callable[[RuleContext], bool]
    holds: Callable[[RuleContext], bool] | None = None
    detail: Callable[[RuleContext, bool], str] | None = None
    requires_graph: bool = False


@dataclass(frozen=True)
class ConstraintResult:
    """Outcome of one replayed constraint."""
    constraint: str
    satisfied: bool
    severity: Severity
    detail: str
    triggered: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "constraint": self.constraint,
            "satisfied": self.satisfied,
            "severity": self.severity.value,
            "detail": self.detail,
        }
        if self.triggered is not None:
            data["triggered"] = self.triggered
        return data


@dataclass(frozen=True)
class PoIResult:
    """Proof of Intent for one decision."""
    policy: str
    policy_hash: str
    declaration_time: str
    verification_time: str
    all_satisfied: bool
    results: tuple[ConstraintResult, ...]

    @property
    def temporal_precedence(self) -> bool:
        for result in self.results:
            if result.constraint == TEMPORAL_PRECEDENCE:
                return result.satisfied
        return False

    def result_for(self, constraint_id: str) -> ConstraintResult | None:
        prefix = f"{constraint_id} - "
        for result in self.results:
            if result.constraint.startswith(prefix):
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "policy": self.policy,
            "policy_hash": self.policy_hash,
            "declaration_time": self.declaration_time,
            "verification_time": self.verification_time,
            "all_satisfied": self.all_satisfied,
            "results": [r.to_dict() for r in self.results],
        }


class ComplianceChecker:
    """Replays a policy's constraints against decisions."""

    def __init__(
        self,
        policy: Policy,
        checks: Sequence[ConstraintCheck],
        clock: Callable[[], str],
    ) -> None:
        """Bind checks to the constraints they replay.

        Raises:
            PolicyIntegrityError: If a check names an undeclared constraint,
                or a mandatory constraint has no consequence to check
        """
        self.policy = policy
        self.checks = tuple(checks)
        self.clock = clock

        for check in self.checks:
            constraint = policy.constraint(check.constraint_id)
            if constraint.is_mandatory and check.holds is None:
                raise PolicyIntegrityError(
                    f"Mandatory constraint {constraint.id} has no consequence check"
                )

    def verify(
        self,
        decision: Decision,
        record: Any,
        graph: ReasonGraph | None = None,
    ) -> PoIResult:
        """Replay every constraint against a decision.

        Args:
            decision: Finished decision
            record: Input record the decision was made from
            graph: Reason graph; constraints about justification are only
                replayed when it is supplied

        Returns:
            PoIResult; never raises for a non-compliant decision
        """
        ctx = RuleContext(
            record=record,
            values=MappingProxyType(dict(decision.values)),
            triggered=decision.triggered_rules,
            policy=self.policy,
            graph=graph,
        )
        results: list[ConstraintResult] = []

        for check in self.checks:
            if check.requires_graph and graph is None:
                continue

            constraint = self.policy.constraint(check.constraint_id)
            applies = bool(check.guard(ctx))
            detail = check.detail(ctx, applies) if check.detail else f"applies={render_value(applies)}"
            label = f"{constraint.id} - {constraint.name}"

            if constraint.is_mandatory:
                satisfied = (not applies) or bool(check.holds(ctx))  # type: ignore[misc]
                results.append(ConstraintResult(label, satisfied, constraint.severity, detail))
            else:
                results.append(
                    ConstraintResult(label, True, constraint.severity, detail, triggered=applies)
                )

        declared = self.policy.declaration_timestamp
        results.append(
            ConstraintResult(
                constraint=TEMPORAL_PRECEDENCE,
                satisfied=parse_timestamp(declared) < parse_timestamp(decision.timestamp),
                severity=Severity.MANDATORY,
                detail=f"Policy declared: {declared}, Decision: {decision.timestamp}",
            )
        )

        all_satisfied = all(r.satisfied for r in results if r.severity == Severity.MANDATORY)

        return PoIResult(
            policy=self.policy.name,
            policy_hash=self.policy.policy_hash,
            declaration_time=declared,
            verification_time=self.clock(),
            all_satisfied=all_satisfied,
            results=tuple(results),
        )
