"""Legal compliance assessment engine."""

from typing import Any

from triadic.engines.base import DecisionEngine, compare
from triadic.rules.models import Decision, Effect, EffectMode, Ladder, Rule, RuleContext
from triadic.schemas.records import LegalCase
from triadic.utils.format import render_score, render_value
from triadic.verification.compliance import ConstraintCheck
from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation

LIABILITY_CASE_THRESHOLD = 0.5

RISK_WEIGHTS = {
    "contract": 0.20,
    "regulatory": 0.20,
    "liability": 0.20,
    "evidence": 0.15,
    "precedent": 0.15,
    "jurisdiction": 0.10,
}


def detect_case_type(record: LegalCase) -> str:
    if record.case_type:
        return record.case_type
    if record.provided("contract_validity"):
        return "CONTRACT"
    if record.provided("liability_exposure") and record.liability_exposure > LIABILITY_CASE_THRESHOLD:
        return "LIABILITY"
    if record.provided("regulatory_compliance"):
        return "REGULATORY"
    return "GENERAL"


def calculate_legal_risk(record: LegalCase) -> float:
    """Weighted 0-1 legal risk score, rounded to 4 places."""
    w = RISK_WEIGHTS
    score = (1 - record.contract_validity) * w["contract"]
    score += (1 - record.regulatory_compliance) * w["regulatory"]
    score += record.liability_exposure * w["liability"]
    score += (1 - record.evidence_score) * w["evidence"]
    score += (1 - record.precedent_alignment) * w["precedent"]
    if not record.jurisdiction_recognized:
        score += w["jurisdiction"]
    return min(1.0, max(0.0, round(score, 4)))


def exposure_threshold(ctx: RuleContext) -> float:
    """Caller-supplied financial threshold, else the policy default."""
    if ctx.record.financial_threshold is not None:
        return ctx.record.financial_threshold
    return ctx.param("L9", "default_threshold")


def invalid_contract(ctx: RuleContext) -> bool:
    return ctx.record.contract_validity < ctx.param("L1", "min_validity")


def regulatory_gap(ctx: RuleContext) -> bool:
    return ctx.record.regulatory_compliance < ctx.param("L2", "min_compliance")


def high_liability(ctx: RuleContext) -> bool:
    return ctx.record.liability_exposure > ctx.param("L3", "max_exposure")


def foreign_jurisdiction(ctx: RuleContext) -> bool:
    return not ctx.record.jurisdiction_recognized


def time_barred(ctx: RuleContext) -> bool:
    return not ctx.record.within_statute


def weak_evidence(ctx: RuleContext) -> bool:
    return ctx.record.evidence_score < ctx.param("L6", "min_evidence")


def conflict_of_interest(ctx: RuleContext) -> bool:
    return ctx.record.conflict_of_interest


def weak_precedent(ctx: RuleContext) -> bool:
    return ctx.record.precedent_alignment < ctx.param("L8", "min_alignment")


def large_exposure(ctx: RuleContext) -> bool:
    return ctx.record.financial_exposure > exposure_threshold(ctx)


def multi_risk(ctx: RuleContext) -> bool:
    return ctx.triggered >= ctx.param("L10", "min_triggered")


def rejected(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] == "REJECTED"


def risk_raised(ctx: RuleContext) -> bool:
    return ctx.values["risk_level"] != "LOW"


class LegalEngine(DecisionEngine):
    """Legal compliance decision engine."""

    name = "legal"
    code = "LEG"
    policy_file = "legal.yaml"
    record_model = LegalCase
    outcome_field = "recommendation"

    def ladders(self) -> list[Ladder]:
        return [
            Ladder("recommendation", ("APPROVED", "FURTHER_REVIEW", "REJECTED")),
            Ladder("risk_level", ("LOW", "MEDIUM", "HIGH")),
            Ladder.flag("non_compliant"),
            Ladder.flag("conflict_flagged"),
            Ladder.flag("senior_review"),
        ]

    def derive(self, record: LegalCase) -> dict[str, Any]:
        return {"case_type": detect_case_type(record), "risk_score": calculate_legal_risk(record)}

    def build_rules(self) -> list[Rule]:
        min_validity = self.threshold("L1", "min_validity")
        min_compliance = self.threshold("L2", "min_compliance")
        max_exposure = self.threshold("L3", "max_exposure")
        min_evidence = self.threshold("L6", "min_evidence")
        min_alignment = self.threshold("L8", "min_alignment")
        min_triggered = self.threshold("L10", "min_triggered")

        reject = Effect("recommendation", "REJECTED")
        medium_risk = Effect("risk_level", "MEDIUM")

        return [
            Rule(
                id="L1",
                text=f"IF contract_validity < {min_validity} THEN REJECTED",
                when=invalid_contract,
                effects=(reject,),
                reason=lambda ctx: (
                    f"L1: contract_validity={render_value(ctx.record.contract_validity)} < {min_validity} "
                    f"→ recommendation = REJECTED"
                ),
                detail=lambda ctx, fired: "contract_validity = "
                + compare(ctx.record.contract_validity, fired, "<", "≥", min_validity),
            ),
            Rule(
                id="L2",
                text=f"IF regulatory_compliance < {min_compliance} THEN non_compliant",
                when=regulatory_gap,
                effects=(Effect("non_compliant", True), medium_risk),
                reason=lambda ctx: (
                    f"L2: regulatory_compliance={render_value(ctx.record.regulatory_compliance)} "
                    f"< {min_compliance} → flag_non_compliant = TRUE"
                ),
                detail=lambda ctx, fired: "regulatory_compliance = "
                + compare(ctx.record.regulatory_compliance, fired, "<", "≥", min_compliance),
            ),
            Rule(
                id="L3",
                text=f"IF liability_exposure > {max_exposure} THEN risk = HIGH",
                when=high_liability,
                effects=(Effect("risk_level", "HIGH"),),
                reason=lambda ctx: (
                    f"L3: liability_exposure={render_value(ctx.record.liability_exposure)} > {max_exposure} "
                    f"→ risk_level = HIGH"
                ),
                detail=lambda ctx, fired: "liability_exposure = "
                + compare(ctx.record.liability_exposure, fired, ">", "≤", max_exposure),
            ),
            Rule(
                id="L4",
                text="IF jurisdiction unrecognized THEN REJECTED",
                when=foreign_jurisdiction,
                effects=(reject,),
                reason=lambda ctx: "L4: jurisdiction_recognized=FALSE → recommendation = REJECTED",
                detail=lambda ctx, fired: (
                    f"jurisdiction_recognized = {render_value(ctx.record.jurisdiction_recognized)}"
                ),
            ),
            Rule(
                id="L5",
                text="IF outside statute of limitations THEN REJECTED",
                when=time_barred,
                effects=(reject,),
                reason=lambda ctx: "L5: within_statute=FALSE → recommendation = REJECTED",
                detail=lambda ctx, fired: f"within_statute = {render_value(ctx.record.within_statute)}",
            ),
            Rule(
                id="L6",
                text=f"IF evidence_score < {min_evidence} THEN ≠ APPROVED",
                when=weak_evidence,
                effects=(Effect("recommendation", "FURTHER_REVIEW"),),
                reason=lambda ctx: (
                    f"L6: evidence_score={render_value(ctx.record.evidence_score)} < {min_evidence} "
                    f"→ recommendation ≠ APPROVED"
                ),
                detail=lambda ctx, fired: "evidence_score = "
                + compare(ctx.record.evidence_score, fired, "<", "≥", min_evidence),
            ),
            Rule(
                id="L7",
                text="IF conflict_of_interest THEN flag_conflict",
                when=conflict_of_interest,
                effects=(Effect("conflict_flagged", True),),
                reason=lambda ctx: "L7: conflict_of_interest=TRUE → flag_conflict = TRUE",
                detail=lambda ctx, fired: f"conflict_of_interest = {render_value(ctx.record.conflict_of_interest)}",
            ),
            Rule(
                id="L8",
                text=f"IF precedent_alignment < {min_alignment} THEN risk ≥ MEDIUM",
                when=weak_precedent,
                effects=(medium_risk,),
                reason=lambda ctx: (
                    f"L8: precedent_alignment={render_value(ctx.record.precedent_alignment)} < {min_alignment} "
                    f"→ risk_level >= MEDIUM"
                ),
                detail=lambda ctx, fired: "precedent_alignment = "
                + compare(ctx.record.precedent_alignment, fired, "<", "≥", min_alignment),
            ),
            Rule(
                id="L9",
                text="IF financial_exposure > threshold THEN senior_review",
                when=large_exposure,
                effects=(Effect("senior_review", True),),
                reason=lambda ctx: (
                    f"L9: financial_exposure={render_value(ctx.record.financial_exposure)} > "
                    f"{render_value(exposure_threshold(ctx))} → require_senior_review = TRUE"
                ),
                detail=lambda ctx, fired: "financial_exposure = "
                + compare(ctx.record.financial_exposure, fired, ">", "≤", exposure_threshold(ctx)),
            ),
            Rule(
                id="L10",
                text=f"IF triggered_risks ≥ {min_triggered} THEN risk ≥ MEDIUM",
                when=multi_risk,
                effects=(Effect("risk_level", "MEDIUM", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: f"L10: triggered_risks={ctx.triggered} >= {min_triggered} → risk_level >= MEDIUM",
                detail=lambda ctx, fired: "triggered_risks = "
                + compare(ctx.triggered, fired, "≥", "<", min_triggered),
                counts=False,
                reason_on_change=True,
            ),
            Rule(
                id="RISK-OVERRIDE",
                text="IF APPROVED AND risk = HIGH THEN FURTHER_REVIEW",
                when=lambda ctx: ctx.values["risk_level"] == "HIGH",
                effects=(Effect("recommendation", "FURTHER_REVIEW", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: "Risk override: risk_level=HIGH → recommendation = FURTHER_REVIEW",
                counts=False,
                audit=False,
                reason_on_change=True,
            ),
        ]

    def build_checks(self) -> list[ConstraintCheck]:
        def outcome_detail(label: str, value: Any) -> Any:
            return lambda ctx, applies: (
                f"{label}={render_value(value(ctx))}, recommendation={ctx.values['recommendation']}"
            )

        def risk_detail(label: str, value: Any) -> Any:
            return lambda ctx, applies: (
                f"{label}={render_value(value(ctx))}, risk_level={ctx.values['risk_level']}"
            )

        return [
            ConstraintCheck(
                "L1", guard=invalid_contract, holds=rejected,
                detail=outcome_detail("contract_validity", lambda ctx: ctx.record.contract_validity),
            ),
            ConstraintCheck(
                "L2", guard=regulatory_gap,
                holds=lambda ctx: ctx.values["non_compliant"],
                detail=lambda ctx, applies: (
                    f"regulatory_compliance={render_value(ctx.record.regulatory_compliance)}, "
                    f"flagged={render_value(ctx.values['non_compliant'])}"
                ),
            ),
            ConstraintCheck(
                "L3", guard=high_liability,
                holds=lambda ctx: ctx.values["risk_level"] == "HIGH",
                detail=risk_detail("liability_exposure", lambda ctx: ctx.record.liability_exposure),
            ),
            ConstraintCheck(
                "L4", guard=foreign_jurisdiction, holds=rejected,
                detail=outcome_detail("jurisdiction_recognized", lambda ctx: ctx.record.jurisdiction_recognized),
            ),
            ConstraintCheck(
                "L5", guard=time_barred, holds=rejected,
                detail=outcome_detail("within_statute", lambda ctx: ctx.record.within_statute),
            ),
            ConstraintCheck(
                "L6", guard=weak_evidence,
                holds=lambda ctx: ctx.values["recommendation"] != "APPROVED",
                detail=outcome_detail("evidence_score", lambda ctx: ctx.record.evidence_score),
            ),
            ConstraintCheck(
                "L7", guard=conflict_of_interest,
                detail=lambda ctx, applies: (
                    f"conflict_of_interest={render_value(ctx.record.conflict_of_interest)}"
                ),
            ),
            ConstraintCheck(
                "L8", guard=weak_precedent, holds=risk_raised,
                detail=risk_detail("precedent_alignment", lambda ctx: ctx.record.precedent_alignment),
            ),
            ConstraintCheck(
                "L9", guard=large_exposure,
                detail=lambda ctx, applies: (
                    f"financial_exposure={render_value(ctx.record.financial_exposure)}, "
                    f"threshold={render_value(exposure_threshold(ctx))}"
                ),
            ),
            ConstraintCheck(
                "L10", guard=multi_risk, holds=risk_raised,
                detail=lambda ctx, applies: f"triggered={ctx.triggered}, risk_level={ctx.values['risk_level']}",
            ),
        ]

    def build_graph(self, record: LegalCase, decision: Decision) -> ReasonGraph:
        b = GraphBuilder()

        b.premise("p1", f"contract_validity = {render_value(record.contract_validity)}")
        b.premise("p2", f"regulatory_compliance = {render_value(record.regulatory_compliance)}")
        b.premise("p3", f"liability_exposure = {render_value(record.liability_exposure)}")
        b.premise("p4", f"evidence_score = {render_value(record.evidence_score)}")
        b.premise("p5", f"precedent_alignment = {render_value(record.precedent_alignment)}")
        b.premise("p6", f"jurisdiction_recognized = {render_value(record.jurisdiction_recognized)}")
        b.premise("p7", f"within_statute = {render_value(record.within_statute)}")
        b.premise("p8", f"case_type = {decision['case_type']}")
        b.premise("p9", f"financial_exposure = {render_value(record.financial_exposure)}")

        b.rule("r1", f"L1: contract < {self.threshold('L1', 'min_validity')} → REJECTED")
        b.rule("r2", f"L2: regulatory < {self.threshold('L2', 'min_compliance')} → non_compliant")
        b.rule("r3", f"L3: liability > {self.threshold('L3', 'max_exposure')} → HIGH risk")
        b.rule("r4", "L4: jurisdiction invalid → REJECTED")
        b.rule("r5", "L5: outside statute → REJECTED")
        b.rule("r6", f"L6: evidence < {self.threshold('L6', 'min_evidence')} → ≠ APPROVED")
        b.rule("r7", f"L8: precedent < {self.threshold('L8', 'min_alignment')} → risk ≥ MEDIUM")
        b.rule("r8", "L10: multi-risk → MEDIUM+")
        b.rule("r9", "L9: exposure > threshold → senior review")
        b.rule("r10", "Risk override: HIGH risk → FURTHER_REVIEW")

        b.conclusion("c1", f"recommendation = {decision['recommendation']}")
        b.conclusion("c2", f"risk_level = {decision['risk_level']}")
        b.conclusion("c3", f"risk_score = {render_score(decision['risk_score'])}")
        b.conclusion("c4", f"senior_review = {render_value(decision['senior_review'])}")

        b.edge("p1", "r1", Relation.INPUT)
        b.edge("p2", "r2", Relation.INPUT)
        b.edge("p3", "r3", Relation.INPUT)
        b.edge("p6", "r4", Relation.INPUT)
        b.edge("p7", "r5", Relation.INPUT)
        b.edge("p4", "r6", Relation.INPUT)
        b.edge("p5", "r7", Relation.INPUT)
        b.edge("p9", "r9", Relation.INPUT)
        b.edge("r1", "c1", Relation.DETERMINES)
        b.edge("r2", "c2", Relation.INFLUENCES)
        b.edge("r3", "c2", Relation.DETERMINES)
        b.edge("r4", "c1", Relation.DETERMINES)
        b.edge("r5", "c1", Relation.DETERMINES)
        b.edge("r6", "c1", Relation.INFLUENCES)
        b.edge("r7", "c2", Relation.INFLUENCES)
        b.edge("r8", "c2", Relation.INFLUENCES)
        b.edge("r9", "c4", Relation.ENTAILS)
        b.edge("c2", "r10", Relation.INPUT)
        b.edge("r10", "c1", Relation.INFLUENCES)
        b.edge("c1", "c3", Relation.PRODUCES)
        b.edge("c2", "c3", Relation.PRODUCES)

        if decision["case_type"] == "CONTRACT":
            b.edge("p8", "r1", Relation.INPUT)

        return b.build()
