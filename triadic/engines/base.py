"""Shared decision engine skeleton.

Every domain engine runs the same pipeline:

    record -> rule fold -> decision
           -> {reason graph, PoO, compliance replay} -> bundle

Subclasses only supply their ladders, derived values, rules,
constraint checks and reason graph.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from triadic.core.crypto import Signer, default_signer
from triadic.core.logging import audit_logger, get_logger
from triadic.policies.loader import load_policy
from triadic.policies.models import Policy
from triadic.rules.engine import RulesEngine
from triadic.rules.models import Decision, Ladder, Rule
from triadic.schemas.records import InputRecord
from triadic.utils.format import render_value
from triadic.utils.time import format_timestamp, utc_now
from triadic.verification.bundle import VerificationBundle, assemble_bundle
from triadic.verification.compliance import ComplianceChecker, ConstraintCheck, PoIResult
from triadic.verification.graph import ReasonGraph
from triadic.verification.proofs import generate_poo, generate_por

logger = get_logger(__name__)


def compare(value: Any, fired: bool, hit: str, miss: str, threshold: Any) -> str:
    """Render ``value <op> threshold`` with the operator that held."""
    return f"{render_value(value)} {hit if fired else miss} {render_value(threshold)}"


@dataclass(frozen=True)
class EngineResult:
    """Decision plus its verification bundle."""
    decision: Decision
    verification_bundle: VerificationBundle

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.to_dict(),
            "verification_bundle": self.verification_bundle.to_dict(),
        }


class DecisionEngine:
    """Base class for domain decision engines.

    Attributes:
        name: Registry name (e.g. "medical")
        code: Short code used in bundle ids and state references
        policy_file: Packaged policy declaration
        record_model: Input record type
        outcome_field: Primary categorical outcome
    """

    name: str = ""
    code: str = ""
    policy_file: str = ""
    record_model: type[InputRecord] = InputRecord
    outcome_field: str = ""

    def __init__(
        self,
        policy: Policy | None = None,
        signer: Signer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize engine with a sealed policy.

        Args:
            policy: Policy to enforce (defaults to the packaged declaration)
            signer: Signer for proofs (defaults to settings)
            clock: Source of the current time

        Raises:
            PolicyIntegrityError: If the policy cannot be loaded or lacks
                a constraint or threshold this engine relies on
        """
        self.signer = signer or default_signer()
        self.policy = policy or load_policy(self.policy_file, signer=self.signer)
        self._clock = clock

        self.rules_engine = RulesEngine(self.build_rules(), self.ladders(), self.outcome_field)
        self.checker = ComplianceChecker(self.policy, self.build_checks(), clock=self.now)
        logger.info(
            f"Initialized {self.name} engine: {len(self.rules_engine.rules)} rules, "
            f"policy={self.policy.name} hash={self.policy.policy_hash[:12]}"
        )

    def now(self) -> str:
        """Current time as a millisecond UTC timestamp."""
        return format_timestamp(self._clock())

    def threshold(self, constraint_id: str, key: str) -> Any:
        return self.policy.param(constraint_id, key)

    # -- engine specific -----------------------------------------------------

    def ladders(self) -> list[Ladder]:
        """Outcome fields in decision order, primary outcome first."""
        raise NotImplementedError

    def derive(self, record: Any) -> dict[str, Any]:
        """Values computed before the rules run (category, scores, tiers)."""
        return {}

    def build_rules(self) -> list[Rule]:
        raise NotImplementedError

    def build_checks(self) -> list[ConstraintCheck]:
        raise NotImplementedError

    def build_graph(self, record: Any, decision: Decision) -> ReasonGraph:
        raise NotImplementedError

    # -- pipeline ------------------------------------------------------------

    def parse(self, data: Mapping[str, Any]) -> InputRecord:
        """Validate raw input into this engine's record type."""
        return self.record_model.parse(data)

    def decide(self, record: Any) -> Decision:
        """Run the rule fold over a validated record."""
        return self.rules_engine.evaluate(record, self.derive(record), self.policy, self.now)

    def verify(self, decision: Decision, record: Any, graph: ReasonGraph | None = None) -> PoIResult:
        """Replay the policy constraints against a decision."""
        return self.checker.verify(decision, record, graph)

    def evaluate(self, data: Mapping[str, Any]) -> EngineResult:
        """Evaluate an input mapping and produce a verified result.

        Args:
            data: Raw caller-supplied fields

        Returns:
            EngineResult with decision and verification bundle

        Raises:
            InvalidInputError: If a field is missing or malformed
        """
        record = self.parse(data)
        decision = self.decide(record)
        graph = self.build_graph(record, decision)

        poo = generate_poo(
            data,
            self.policy.name,
            decision.timestamp,
            self.signer,
            reference_prefix=f"PoO-{self.code}",
        )
        por = generate_por(graph, self.signer)
        poi = self.verify(decision, record, graph)
        bundle = assemble_bundle(
            poo,
            por,
            poi,
            signer=self.signer,
            bundle_prefix=self.code,
            clock=self.now,
        )

        audit_logger.log_decision(
            engine=self.name,
            bundle_id=bundle.bundle_id,
            outcome=str(decision.outcome),
            overall_result=bundle.overall_result,
            merkle_root=bundle.merkle_root,
            triggered_rules=decision.triggered_rules,
        )
        return EngineResult(decision=decision, verification_bundle=bundle)
