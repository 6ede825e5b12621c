"""Government service assessment engine."""

from typing import Any

from triadic.engines.base import DecisionEngine, compare
from triadic.rules.models import Decision, Effect, EffectMode, Ladder, Rule, RuleContext
from triadic.schemas.records import ServiceRequest
from triadic.utils.format import render_score, render_value
from triadic.verification.compliance import ConstraintCheck
from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation

COMPLIANCE_WEIGHTS = {
    "identity": 0.20,
    "eligibility": 0.20,
    "documentation": 0.20,
    "residency": 0.15,
    "tax": 0.15,
    "record": 0.10,
}

# First supplied hint wins
SERVICE_TYPE_HINTS = [
    ("license_type", "LICENSE"),
    ("benefit_type", "BENEFIT"),
    ("permit_type", "PERMIT"),
    ("registration_type", "REGISTRATION"),
]


def detect_service_type(record: ServiceRequest) -> str:
    if record.service_type:
        return record.service_type
    for field, service_type in SERVICE_TYPE_HINTS:
        if getattr(record, field):
            return service_type
    return "GENERAL"


def calculate_compliance_score(record: ServiceRequest) -> float:
    """Weighted 0-1 compliance score, rounded to 4 places."""
    w = COMPLIANCE_WEIGHTS
    score = w["identity"] if record.identity_verified else 0.0
    score += record.eligibility_score * w["eligibility"]
    score += record.documentation_score * w["documentation"]
    score += w["residency"] if record.residency_verified else 0.0
    score += w["tax"] if record.tax_compliant else 0.0
    score += 0.0 if record.criminal_flagged else w["record"]
    return min(1.0, max(0.0, round(score, 4)))


def identity_unverified(ctx: RuleContext) -> bool:
    return not ctx.record.identity_verified


def ineligible(ctx: RuleContext) -> bool:
    return ctx.record.eligibility_score < ctx.param("G2", "min_eligibility")


def incomplete_documents(ctx: RuleContext) -> bool:
    return ctx.record.documentation_score < ctx.param("G3", "min_documentation")


def residency_missing(ctx: RuleContext) -> bool:
    return ctx.record.requires_residency and not ctx.record.residency_verified


def tax_noncompliant(ctx: RuleContext) -> bool:
    return not ctx.record.tax_compliant


def clearance_failed(ctx: RuleContext) -> bool:
    return ctx.record.criminal_flagged and ctx.record.requires_clearance


def duplicate(ctx: RuleContext) -> bool:
    return ctx.record.duplicate_detected


def low_capacity(ctx: RuleContext) -> bool:
    return ctx.record.service_capacity < ctx.param("G8", "min_capacity")


def priority_group(ctx: RuleContext) -> bool:
    return ctx.record.priority_group


def multi_flag(ctx: RuleContext) -> bool:
    return ctx.triggered >= ctx.param("G10", "min_triggered")


def rejected(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] == "REJECTED"


def not_approved(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] != "APPROVED"


class GovernmentEngine(DecisionEngine):
    """Public service request decision engine."""

    name = "government"
    code = "GOV"
    policy_file = "government.yaml"
    record_model = ServiceRequest
    outcome_field = "recommendation"

    def ladders(self) -> list[Ladder]:
        return [
            Ladder("recommendation", ("APPROVED", "FURTHER_REVIEW", "REJECTED")),
            Ladder("status", ("COMPLETE", "INCOMPLETE")),
            Ladder("processing_priority", ("STANDARD", "ELEVATED")),
            Ladder.flag("tax_hold"),
            Ladder.flag("capacity_warning"),
        ]

    def derive(self, record: ServiceRequest) -> dict[str, Any]:
        return {
            "service_type": detect_service_type(record),
            "compliance_score": calculate_compliance_score(record),
        }

    def build_rules(self) -> list[Rule]:
        min_eligibility = self.threshold("G2", "min_eligibility")
        min_documentation = self.threshold("G3", "min_documentation")
        min_capacity = self.threshold("G8", "min_capacity")
        min_triggered = self.threshold("G10", "min_triggered")

        reject = Effect("recommendation", "REJECTED")
        review = Effect("recommendation", "FURTHER_REVIEW")

        return [
            Rule(
                id="G1",
                text="IF identity unverified THEN REJECTED",
                when=identity_unverified,
                effects=(reject,),
                reason=lambda ctx: "G1: identity_verified = FALSE → recommendation = REJECTED",
                detail=lambda ctx, fired: f"identity_verified = {render_value(ctx.record.identity_verified)}",
            ),
            Rule(
                id="G2",
                text=f"IF eligibility < {min_eligibility} THEN REJECTED",
                when=ineligible,
                effects=(reject,),
                reason=lambda ctx: (
                    f"G2: eligibility_score={render_value(ctx.record.eligibility_score)} < {min_eligibility} "
                    f"→ recommendation = REJECTED"
                ),
                detail=lambda ctx, fired: "eligibility_score = "
                + compare(ctx.record.eligibility_score, fired, "<", "≥", min_eligibility),
            ),
            Rule(
                id="G3",
                text=f"IF documentation < {min_documentation} THEN INCOMPLETE",
                when=incomplete_documents,
                effects=(Effect("status", "INCOMPLETE"), review),
                reason=lambda ctx: (
                    f"G3: documentation_score={render_value(ctx.record.documentation_score)} "
                    f"< {min_documentation} → status = INCOMPLETE"
                ),
                detail=lambda ctx, fired: "documentation_score = "
                + compare(ctx.record.documentation_score, fired, "<", "≥", min_documentation),
            ),
            Rule(
                id="G4",
                text="IF residency unverified AND required THEN REJECTED",
                when=residency_missing,
                effects=(reject,),
                reason=lambda ctx: "G4: residency_verified = FALSE AND requires_residency = TRUE → REJECTED",
                detail=lambda ctx, fired: (
                    f"residency_verified = {render_value(ctx.record.residency_verified)}, "
                    f"required = {render_value(ctx.record.requires_residency)}"
                ),
            ),
            Rule(
                id="G5",
                text="IF tax non-compliant THEN tax_hold",
                when=tax_noncompliant,
                effects=(Effect("tax_hold", True), review),
                reason=lambda ctx: "G5: tax_compliant = FALSE → flag_tax_hold = TRUE",
                detail=lambda ctx, fired: f"tax_compliant = {render_value(ctx.record.tax_compliant)}",
            ),
            Rule(
                id="G6",
                text="IF criminal flagged AND clearance required THEN REVIEW",
                when=clearance_failed,
                effects=(review,),
                reason=lambda ctx: "G6: criminal_flagged = TRUE AND requires_clearance = TRUE → FURTHER_REVIEW",
                detail=lambda ctx, fired: (
                    f"criminal_flagged = {render_value(ctx.record.criminal_flagged)}, "
                    f"requires_clearance = {render_value(ctx.record.requires_clearance)}"
                ),
            ),
            Rule(
                id="G7",
                text="IF duplicate detected THEN REJECTED",
                when=duplicate,
                effects=(reject,),
                reason=lambda ctx: "G7: duplicate_detected = TRUE → recommendation = REJECTED",
                detail=lambda ctx, fired: f"duplicate_detected = {render_value(ctx.record.duplicate_detected)}",
            ),
            Rule(
                id="G8",
                text=f"IF capacity < {min_capacity} THEN capacity_warning",
                when=low_capacity,
                effects=(Effect("capacity_warning", True),),
                reason=lambda ctx: (
                    f"G8: service_capacity={render_value(ctx.record.service_capacity)} < {min_capacity} "
                    f"→ flag_capacity_warning = TRUE"
                ),
                detail=lambda ctx, fired: "service_capacity = "
                + compare(ctx.record.service_capacity, fired, "<", "≥", min_capacity),
            ),
            Rule(
                id="G9",
                text="IF priority_group THEN ELEVATED processing",
                when=priority_group,
                effects=(Effect("processing_priority", "ELEVATED"),),
                reason=lambda ctx: "G9: priority_group = TRUE → processing_priority = ELEVATED",
                detail=lambda ctx, fired: f"priority_group = {render_value(ctx.record.priority_group)}",
            ),
            Rule(
                id="G10",
                text=f"IF triggered_flags ≥ {min_triggered} THEN ≠ APPROVED",
                when=multi_flag,
                effects=(Effect("recommendation", "FURTHER_REVIEW", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: (
                    f"G10: triggered_flags={ctx.triggered} >= {min_triggered} → recommendation ≠ APPROVED"
                ),
                detail=lambda ctx, fired: "triggered_flags = "
                + compare(ctx.triggered, fired, "≥", "<", min_triggered),
                counts=False,
                reason_on_change=True,
            ),
        ]

    def build_checks(self) -> list[ConstraintCheck]:
        def outcome_detail(label: str, value: Any) -> Any:
            return lambda ctx, applies: (
                f"{label}={render_value(value(ctx))}, recommendation={ctx.values['recommendation']}"
            )

        return [
            ConstraintCheck(
                "G1", guard=identity_unverified, holds=rejected,
                detail=outcome_detail("identity_verified", lambda ctx: ctx.record.identity_verified),
            ),
            ConstraintCheck(
                "G2", guard=ineligible, holds=rejected,
                detail=outcome_detail("eligibility_score", lambda ctx: ctx.record.eligibility_score),
            ),
            ConstraintCheck(
                "G3", guard=incomplete_documents,
                holds=lambda ctx: ctx.values["status"] == "INCOMPLETE",
                detail=lambda ctx, applies: (
                    f"documentation_score={render_value(ctx.record.documentation_score)}, "
                    f"status={ctx.values['status']}"
                ),
            ),
            ConstraintCheck(
                "G4", guard=residency_missing, holds=rejected,
                detail=lambda ctx, applies: (
                    f"residency_verified={render_value(ctx.record.residency_verified)}, "
                    f"required={render_value(ctx.record.requires_residency)}"
                ),
            ),
            ConstraintCheck(
                "G5", guard=tax_noncompliant,
                holds=lambda ctx: ctx.values["tax_hold"],
                detail=lambda ctx, applies: (
                    f"tax_compliant={render_value(ctx.record.tax_compliant)}, "
                    f"tax_hold={render_value(ctx.values['tax_hold'])}"
                ),
            ),
            ConstraintCheck(
                "G6", guard=clearance_failed, holds=not_approved,
                detail=outcome_detail("criminal_flagged", lambda ctx: ctx.record.criminal_flagged),
            ),
            ConstraintCheck(
                "G7", guard=duplicate, holds=rejected,
                detail=outcome_detail("duplicate_detected", lambda ctx: ctx.record.duplicate_detected),
            ),
            ConstraintCheck(
                "G8", guard=low_capacity,
                detail=lambda ctx, applies: f"service_capacity={render_value(ctx.record.service_capacity)}",
            ),
            ConstraintCheck(
                "G9", guard=priority_group,
                holds=lambda ctx: ctx.values["processing_priority"] == "ELEVATED",
                detail=lambda ctx, applies: (
                    f"priority_group={render_value(ctx.record.priority_group)}, "
                    f"processing_priority={ctx.values['processing_priority']}"
                ),
            ),
            ConstraintCheck(
                "G10", guard=multi_flag, holds=not_approved,
                detail=lambda ctx, applies: (
                    f"triggered={ctx.triggered}, recommendation={ctx.values['recommendation']}"
                ),
            ),
        ]

    def build_graph(self, record: ServiceRequest, decision: Decision) -> ReasonGraph:
        b = GraphBuilder()

        b.premise("p1", f"identity_verified = {render_value(record.identity_verified)}")
        b.premise("p2", f"eligibility_score = {render_value(record.eligibility_score)}")
        b.premise("p3", f"documentation_score = {render_value(record.documentation_score)}")
        b.premise("p4", f"residency_verified = {render_value(record.residency_verified)}")
        b.premise("p5", f"tax_compliant = {render_value(record.tax_compliant)}")
        b.premise("p6", f"criminal_flagged = {render_value(record.criminal_flagged)}")
        b.premise("p7", f"duplicate_detected = {render_value(record.duplicate_detected)}")
        b.premise("p8", f"service_capacity = {render_value(record.service_capacity)}")
        b.premise("p9", f"priority_group = {render_value(record.priority_group)}")
        b.premise("p10", f"service_type = {decision['service_type']}")

        b.rule("r1", "G1: identity unverified → REJECTED")
        b.rule("r2", f"G2: eligibility < {self.threshold('G2', 'min_eligibility')} → REJECTED")
        b.rule("r3", f"G3: documentation < {self.threshold('G3', 'min_documentation')} → INCOMPLETE")
        b.rule("r4", "G4: residency unverified → REJECTED")
        b.rule("r5", "G5: tax non-compliant → hold")
        b.rule("r6", "G6: criminal + clearance → REVIEW")
        b.rule("r7", "G7: duplicate → REJECTED")
        b.rule("r8", "G9: priority → ELEVATED")
        b.rule("r9", "G10: multi-flag → ≠ APPROVED")
        b.rule("r10", f"G8: capacity < {self.threshold('G8', 'min_capacity')} → warning")

        b.conclusion("c1", f"recommendation = {decision['recommendation']}")
        b.conclusion("c2", f"status = {decision['status']}")
        b.conclusion("c3", f"compliance_score = {render_score(decision['compliance_score'])}")
        b.conclusion("c4", f"processing_priority = {decision['processing_priority']}")
        b.conclusion("c5", f"capacity_warning = {render_value(decision['capacity_warning'])}")

        b.edge("p1", "r1", Relation.INPUT)
        b.edge("p2", "r2", Relation.INPUT)
        b.edge("p3", "r3", Relation.INPUT)
        b.edge("p4", "r4", Relation.INPUT)
        b.edge("p5", "r5", Relation.INPUT)
        b.edge("p6", "r6", Relation.INPUT)
        b.edge("p7", "r7", Relation.INPUT)
        b.edge("p9", "r8", Relation.INPUT)
        b.edge("p8", "r10", Relation.INPUT)
        b.edge("r1", "c1", Relation.DETERMINES)
        b.edge("r2", "c1", Relation.DETERMINES)
        b.edge("r3", "c2", Relation.DETERMINES)
        b.edge("r4", "c1", Relation.DETERMINES)
        b.edge("r5", "c1", Relation.INFLUENCES)
        b.edge("r6", "c1", Relation.INFLUENCES)
        b.edge("r7", "c1", Relation.DETERMINES)
        b.edge("r8", "c4", Relation.DETERMINES)
        b.edge("r9", "c1", Relation.INFLUENCES)
        b.edge("r10", "c5", Relation.ENTAILS)
        b.edge("c2", "c1", Relation.INFLUENCES)
        b.edge("c1", "c3", Relation.PRODUCES)
        b.edge("c2", "c3", Relation.PRODUCES)

        return b.build()
