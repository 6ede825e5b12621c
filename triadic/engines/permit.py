"""Building and operational permit engine."""

from typing import Any

from triadic.engines.base import DecisionEngine, compare
from triadic.rules.models import Decision, Effect, Ladder, Rule, RuleContext
from triadic.schemas.records import PermitApplication
from triadic.utils.format import render_score, render_value
from triadic.verification.compliance import ConstraintCheck
from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation

TYPE_WEIGHTS = {
    "RESIDENTIAL": {"zoning": 0.20, "structural": 0.25, "environmental": 0.15, "fire": 0.15,
                    "coverage": 0.10, "accessibility": 0.05, "utility": 0.05, "heritage": 0.05},
    "COMMERCIAL": {"zoning": 0.20, "structural": 0.20, "environmental": 0.15, "fire": 0.15,
                   "coverage": 0.10, "accessibility": 0.10, "utility": 0.05, "heritage": 0.05},
    "INDUSTRIAL": {"zoning": 0.15, "structural": 0.20, "environmental": 0.25, "fire": 0.15,
                   "coverage": 0.10, "accessibility": 0.05, "utility": 0.05, "heritage": 0.05},
    "INFRASTRUCTURE": {"zoning": 0.15, "structural": 0.25, "environmental": 0.20, "fire": 0.10,
                       "coverage": 0.05, "accessibility": 0.10, "utility": 0.10, "heritage": 0.05},
    "RENOVATION": {"zoning": 0.10, "structural": 0.25, "environmental": 0.10, "fire": 0.15,
                   "coverage": 0.05, "accessibility": 0.05, "utility": 0.05, "heritage": 0.25},
}
DEFAULT_TYPE = "RESIDENTIAL"

PERMIT_CLASSES = [
    (0.85, "CLASS_A"),
    (0.70, "CLASS_B"),
    (0.55, "CLASS_C"),
    (0.40, "CONDITIONAL"),
]


def detect_permit_type(record: PermitApplication) -> str:
    if record.permit_type:
        return record.permit_type
    if record.industrial_category:
        return "INDUSTRIAL"
    if record.commercial_area is not None:
        return "COMMERCIAL"
    if record.renovation_scope:
        return "RENOVATION"
    if record.infrastructure_class:
        return "INFRASTRUCTURE"
    return DEFAULT_TYPE


def calculate_permit_score(record: PermitApplication, permit_type: str) -> float:
    """Type-weighted 0-1 compliance score, rounded to 4 places.

    Environmental impact and plot coverage count inverted. Outside a
    heritage zone the heritage component scores full marks.
    """
    w = TYPE_WEIGHTS.get(permit_type, TYPE_WEIGHTS[DEFAULT_TYPE])
    score = record.zoning_compliance * w["zoning"]
    score += record.structural_safety * w["structural"]
    score += (1 - record.environmental_impact) * w["environmental"]
    score += record.fire_safety_score * w["fire"]
    score += (1 - record.plot_coverage_ratio) * w["coverage"]
    score += record.accessibility_score * w["accessibility"]
    score += record.utility_capacity * w["utility"]
    score += (record.heritage_compliance if record.heritage_zone else 1.0) * w["heritage"]
    return min(1.0, max(0.0, round(score, 4)))


def determine_permit_class(permit_score: float) -> str:
    for floor, permit_class in PERMIT_CLASSES:
        if permit_score >= floor:
            return permit_class
    return "NON_COMPLIANT"


def zoning_violation(ctx: RuleContext) -> bool:
    return ctx.record.zoning_compliance < ctx.param("P1", "min_zoning")


def structural_violation(ctx: RuleContext) -> bool:
    return ctx.record.structural_safety < ctx.param("P2", "min_structural")


def environmental_impact(ctx: RuleContext) -> bool:
    return ctx.record.environmental_impact > ctx.param("P3", "max_impact")


def fire_safety_gap(ctx: RuleContext) -> bool:
    return ctx.record.fire_safety_score < ctx.param("P4", "min_fire")


def overcoverage(ctx: RuleContext) -> bool:
    return ctx.record.plot_coverage_ratio > ctx.param("P5", "max_coverage")


def accessibility_gap(ctx: RuleContext) -> bool:
    return (
        ctx.record.accessibility_score < ctx.param("P6", "min_access")
        and ctx.values["permit_type"] != "RENOVATION"
    )


def utility_constraint(ctx: RuleContext) -> bool:
    return ctx.record.utility_capacity < ctx.param("P7", "min_capacity")


def heritage_violation(ctx: RuleContext) -> bool:
    return ctx.record.heritage_zone and ctx.record.heritage_compliance < ctx.param("P8", "min_heritage")


def traffic_impact(ctx: RuleContext) -> bool:
    return ctx.record.traffic_impact > ctx.param("P9", "max_traffic")


def multi_violation(ctx: RuleContext) -> bool:
    return ctx.triggered >= ctx.param("P10", "min_triggered")


def denied(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] == "DENIED"


def not_approved(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] != "APPROVED"


class PermitEngine(DecisionEngine):
    """Permit application decision engine."""

    name = "permit"
    code = "PRM"
    policy_file = "permit.yaml"
    record_model = PermitApplication
    outcome_field = "recommendation"

    def ladders(self) -> list[Ladder]:
        return [
            Ladder("recommendation", ("APPROVED", "CONDITIONAL_APPROVAL", "DENIED")),
            Ladder.flag("environmental_review"),
            Ladder.flag("overcoverage"),
            Ladder.flag("utility_constraint"),
            Ladder.flag("traffic_study"),
        ]

    def derive(self, record: PermitApplication) -> dict[str, Any]:
        permit_type = detect_permit_type(record)
        permit_score = calculate_permit_score(record, permit_type)
        return {
            "permit_type": permit_type,
            "permit_score": permit_score,
            "permit_class": determine_permit_class(permit_score),
        }

    def build_rules(self) -> list[Rule]:
        min_zoning = self.threshold("P1", "min_zoning")
        min_structural = self.threshold("P2", "min_structural")
        max_impact = self.threshold("P3", "max_impact")
        min_fire = self.threshold("P4", "min_fire")
        max_coverage = self.threshold("P5", "max_coverage")
        min_access = self.threshold("P6", "min_access")
        min_capacity = self.threshold("P7", "min_capacity")
        min_heritage = self.threshold("P8", "min_heritage")
        max_traffic = self.threshold("P9", "max_traffic")
        min_triggered = self.threshold("P10", "min_triggered")

        deny = Effect("recommendation", "DENIED")
        conditional = Effect("recommendation", "CONDITIONAL_APPROVAL")

        return [
            Rule(
                id="P1",
                text=f"IF zoning < {min_zoning} THEN DENIED",
                when=zoning_violation,
                effects=(deny,),
                reason=lambda ctx: (
                    f"P1: zoning_compliance={render_value(ctx.record.zoning_compliance)} < {min_zoning} "
                    f"→ recommendation = DENIED"
                ),
                detail=lambda ctx, fired: "zoning = "
                + compare(ctx.record.zoning_compliance, fired, "<", "≥", min_zoning),
            ),
            Rule(
                id="P2",
                text=f"IF structural < {min_structural} THEN DENIED",
                when=structural_violation,
                effects=(deny,),
                reason=lambda ctx: (
                    f"P2: structural_safety={render_value(ctx.record.structural_safety)} < {min_structural} "
                    f"→ recommendation = DENIED"
                ),
                detail=lambda ctx, fired: "structural = "
                + compare(ctx.record.structural_safety, fired, "<", "≥", min_structural),
            ),
            Rule(
                id="P3",
                text=f"IF environmental > {max_impact} THEN env_review",
                when=environmental_impact,
                effects=(Effect("environmental_review", True), conditional),
                reason=lambda ctx: (
                    f"P3: environmental_impact={render_value(ctx.record.environmental_impact)} > {max_impact} "
                    f"→ flag_environmental_review"
                ),
                detail=lambda ctx, fired: "environmental = "
                + compare(ctx.record.environmental_impact, fired, ">", "≤", max_impact),
            ),
            Rule(
                id="P4",
                text=f"IF fire_safety < {min_fire} THEN ≠ APPROVED",
                when=fire_safety_gap,
                effects=(conditional,),
                reason=lambda ctx: (
                    f"P4: fire_safety_score={render_value(ctx.record.fire_safety_score)} < {min_fire} "
                    f"→ recommendation ≠ APPROVED"
                ),
                detail=lambda ctx, fired: "fire_safety = "
                + compare(ctx.record.fire_safety_score, fired, "<", "≥", min_fire),
            ),
            Rule(
                id="P5",
                text=f"IF coverage > {max_coverage} THEN overcoverage",
                when=overcoverage,
                effects=(Effect("overcoverage", True), conditional),
                reason=lambda ctx: (
                    f"P5: plot_coverage_ratio={render_value(ctx.record.plot_coverage_ratio)} > {max_coverage} "
                    f"→ flag_overcoverage"
                ),
                detail=lambda ctx, fired: "coverage = "
                + compare(ctx.record.plot_coverage_ratio, fired, ">", "≤", max_coverage),
            ),
            Rule(
                id="P6",
                text=f"IF accessibility < {min_access} AND ≠ RENOVATION THEN ≠ APPROVED",
                when=accessibility_gap,
                effects=(conditional,),
                reason=lambda ctx: (
                    f"P6: accessibility_score={render_value(ctx.record.accessibility_score)} < {min_access} "
                    f"AND type ≠ RENOVATION → ≠ APPROVED"
                ),
                detail=lambda ctx, fired: (
                    f"accessibility = {render_value(ctx.record.accessibility_score)}, "
                    f"type = {ctx.values['permit_type']}"
                ),
            ),
            Rule(
                id="P7",
                text=f"IF utility < {min_capacity} THEN utility_constraint",
                when=utility_constraint,
                effects=(Effect("utility_constraint", True),),
                reason=lambda ctx: (
                    f"P7: utility_capacity={render_value(ctx.record.utility_capacity)} < {min_capacity} "
                    f"→ flag_utility_constraint"
                ),
                detail=lambda ctx, fired: "utility = "
                + compare(ctx.record.utility_capacity, fired, "<", "≥", min_capacity),
            ),
            Rule(
                id="P8",
                text=f"IF heritage_zone AND compliance < {min_heritage} THEN DENIED",
                when=heritage_violation,
                effects=(deny,),
                reason=lambda ctx: (
                    f"P8: heritage_zone=TRUE AND heritage_compliance="
                    f"{render_value(ctx.record.heritage_compliance)} < {min_heritage} → DENIED"
                ),
                detail=lambda ctx, fired: (
                    f"heritage_zone = {render_value(ctx.record.heritage_zone)}, "
                    f"compliance = {render_value(ctx.record.heritage_compliance)}"
                ),
            ),
            Rule(
                id="P9",
                text=f"IF traffic > {max_traffic} THEN traffic_study",
                when=traffic_impact,
                effects=(Effect("traffic_study", True),),
                reason=lambda ctx: (
                    f"P9: traffic_impact={render_value(ctx.record.traffic_impact)} > {max_traffic} "
                    f"→ require_traffic_study"
                ),
                detail=lambda ctx, fired: "traffic = "
                + compare(ctx.record.traffic_impact, fired, ">", "≤", max_traffic),
            ),
            Rule(
                id="P10",
                text=f"IF violations ≥ {min_triggered} THEN DENIED",
                when=multi_violation,
                effects=(deny,),
                reason=lambda ctx: (
                    f"P10: triggered_violations={ctx.triggered} >= {min_triggered} → recommendation = DENIED"
                ),
                detail=lambda ctx, fired: "violations = " + compare(ctx.triggered, fired, "≥", "<", min_triggered),
                counts=False,
                reason_on_change=True,
            ),
        ]

    def build_checks(self) -> list[ConstraintCheck]:
        def outcome_detail(label: str, value: Any) -> Any:
            return lambda ctx, applies: (
                f"{label}={render_value(value(ctx))}, recommendation={ctx.values['recommendation']}"
            )

        def flag_detail(label: str, value: Any, flag: str) -> Any:
            return lambda ctx, applies: (
                f"{label}={render_value(value(ctx))}, {flag}={render_value(ctx.values[flag])}"
            )

        return [
            ConstraintCheck(
                "P1", guard=zoning_violation, holds=denied,
                detail=outcome_detail("zoning", lambda ctx: ctx.record.zoning_compliance),
            ),
            ConstraintCheck(
                "P2", guard=structural_violation, holds=denied,
                detail=outcome_detail("structural", lambda ctx: ctx.record.structural_safety),
            ),
            ConstraintCheck(
                "P3", guard=environmental_impact,
                holds=lambda ctx: ctx.values["environmental_review"],
                detail=flag_detail("environmental", lambda ctx: ctx.record.environmental_impact, "environmental_review"),
            ),
            ConstraintCheck(
                "P4", guard=fire_safety_gap, holds=not_approved,
                detail=outcome_detail("fire_safety", lambda ctx: ctx.record.fire_safety_score),
            ),
            ConstraintCheck(
                "P5", guard=overcoverage,
                holds=lambda ctx: ctx.values["overcoverage"],
                detail=flag_detail("coverage", lambda ctx: ctx.record.plot_coverage_ratio, "overcoverage"),
            ),
            ConstraintCheck(
                "P6", guard=accessibility_gap, holds=not_approved,
                detail=outcome_detail("accessibility", lambda ctx: ctx.record.accessibility_score),
            ),
            ConstraintCheck(
                "P7", guard=utility_constraint,
                detail=flag_detail("utility", lambda ctx: ctx.record.utility_capacity, "utility_constraint"),
            ),
            ConstraintCheck(
                "P8", guard=heritage_violation, holds=denied,
                detail=outcome_detail("heritage_compliance", lambda ctx: ctx.record.heritage_compliance),
            ),
            ConstraintCheck(
                "P9", guard=traffic_impact,
                detail=flag_detail("traffic", lambda ctx: ctx.record.traffic_impact, "traffic_study"),
            ),
            ConstraintCheck(
                "P10", guard=multi_violation, holds=denied,
                detail=lambda ctx, applies: (
                    f"violations={ctx.triggered}, recommendation={ctx.values['recommendation']}"
                ),
            ),
        ]

    def build_graph(self, record: PermitApplication, decision: Decision) -> ReasonGraph:
        b = GraphBuilder()

        b.premise("p1", f"zoning_compliance = {render_value(record.zoning_compliance)}")
        b.premise("p2", f"structural_safety = {render_value(record.structural_safety)}")
        b.premise("p3", f"environmental_impact = {render_value(record.environmental_impact)}")
        b.premise("p4", f"fire_safety = {render_value(record.fire_safety_score)}")
        b.premise("p5", f"plot_coverage = {render_value(record.plot_coverage_ratio)}")
        b.premise("p6", f"accessibility = {render_value(record.accessibility_score)}")
        b.premise("p7", f"utility_capacity = {render_value(record.utility_capacity)}")
        b.premise("p8", f"permit_type = {decision['permit_type']}")
        b.premise("p9", f"heritage_zone = {render_value(record.heritage_zone)}")
        b.premise("p10", f"heritage_compliance = {render_value(record.heritage_compliance)}")
        b.premise("p11", f"traffic_impact = {render_value(record.traffic_impact)}")

        b.rule("r1", f"P1: zoning < {self.threshold('P1', 'min_zoning')} → DENIED")
        b.rule("r2", f"P2: structural < {self.threshold('P2', 'min_structural')} → DENIED")
        b.rule("r3", f"P3: environmental > {self.threshold('P3', 'max_impact')} → review")
        b.rule("r4", f"P4: fire < {self.threshold('P4', 'min_fire')} → ≠ APPROVED")
        b.rule("r5", f"P5: coverage > {self.threshold('P5', 'max_coverage')} → overcoverage")
        b.rule("r6", f"P6: accessibility < {self.threshold('P6', 'min_access')} → ≠ APPROVED")
        b.rule("r7", "P8: heritage non-compliant → DENIED")
        b.rule("r8", "P10: multi-violation → DENIED")
        b.rule("r9", f"P7: utility < {self.threshold('P7', 'min_capacity')} → constraint")
        b.rule("r10", f"P9: traffic > {self.threshold('P9', 'max_traffic')} → traffic study")

        b.conclusion("c1", f"recommendation = {decision['recommendation']}")
        b.conclusion("c2", f"permit_score = {render_score(decision['permit_score'])}")
        b.conclusion("c3", f"permit_class = {decision['permit_class']}")
        b.conclusion("c4", f"utility_constraint = {render_value(decision['utility_constraint'])}")
        b.conclusion("c5", f"traffic_study = {render_value(decision['traffic_study'])}")

        b.edge("p1", "r1", Relation.INPUT)
        b.edge("p2", "r2", Relation.INPUT)
        b.edge("p3", "r3", Relation.INPUT)
        b.edge("p4", "r4", Relation.INPUT)
        b.edge("p5", "r5", Relation.INPUT)
        b.edge("p6", "r6", Relation.INPUT)
        b.edge("p8", "r6", Relation.INPUT)
        b.edge("p7", "r9", Relation.INPUT)
        b.edge("p11", "r10", Relation.INPUT)
        b.edge("r1", "c1", Relation.DETERMINES)
        b.edge("r2", "c1", Relation.DETERMINES)
        b.edge("r3", "c1", Relation.INFLUENCES)
        b.edge("r4", "c1", Relation.INFLUENCES)
        b.edge("r5", "c1", Relation.INFLUENCES)
        b.edge("r6", "c1", Relation.INFLUENCES)
        b.edge("r7", "c1", Relation.DETERMINES)
        b.edge("r8", "c1", Relation.DETERMINES)
        b.edge("r9", "c4", Relation.ENTAILS)
        b.edge("r10", "c5", Relation.ENTAILS)
        b.edge("c1", "c2", Relation.PRODUCES)
        b.edge("c2", "c3", Relation.DETERMINES)

        if record.heritage_zone:
            b.edge("p9", "r7", Relation.INPUT)
            b.edge("p10", "r7", Relation.INPUT)

        return b.build()
