"""Emergency triage engine.

Assigns a LOW/MEDIUM/HIGH priority from vitals, age, comorbidity,
waiting time, resource availability, trauma and maternal status.
"""

from typing import Any

from triadic.engines.base import DecisionEngine, compare
from triadic.rules.models import Decision, Effect, EffectMode, Ladder, Rule, RuleContext
from triadic.schemas.records import PatientRecord
from triadic.utils.format import render_score, render_value
from triadic.verification.compliance import ConstraintCheck
from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation

# Rule thresholds that are not themselves policy constraints
AGE_RISK_THRESHOLD = 65
COMORBIDITY_RISK_THRESHOLD = 0.6
URGENT_WAIT_MINUTES = 30
TRAUMA_CATEGORY_THRESHOLD = 0.5
PEDIATRIC_AGE = 12

RISK_WEIGHTS = {
    "vital": 0.30,
    "age": 0.15,
    "comorbidity": 0.20,
    "wait": 0.10,
    "resource": 0.10,
    "trauma": 0.15,
}
MAX_WAIT_NORMALIZATION = 120  # minutes
MATERNAL_COMPLICATION_MODIFIER = 0.15
PEDIATRIC_VITAL_MODIFIER = 0.10


def detect_category(record: PatientRecord) -> str:
    """Detect the patient category from input fields.

    An explicit category wins; otherwise trauma, pregnancy and age are
    checked in that order.
    """
    if record.category:
        return record.category
    if record.trauma_score >= TRAUMA_CATEGORY_THRESHOLD:
        return "TRAUMA"
    if record.is_pregnant or record.pregnancy_week:
        return "MATERNAL"
    if record.age < PEDIATRIC_AGE:
        return "PEDIATRIC"
    if record.age >= AGE_RISK_THRESHOLD:
        return "GERIATRIC"
    return "GENERAL"


def _age_factor(age: float) -> float:
    # U-shaped: the very young and the very old carry more risk
    if age < 5:
        return 0.9
    if age < 12:
        return 0.5
    if age >= 80:
        return 0.9
    if age >= 65:
        return 0.6
    return 0.2


def calculate_risk_score(record: PatientRecord, category: str) -> float:
    """Weighted 0-1 clinical risk score, rounded to 4 places."""
    w = RISK_WEIGHTS
    score = (1 - record.vital_score) * w["vital"]
    score += _age_factor(record.age) * w["age"]
    score += record.comorbidity_index * w["comorbidity"]
    score += min(1.0, record.wait_time / MAX_WAIT_NORMALIZATION) * w["wait"]
    score += (1 - record.resource_score) * w["resource"]

    if category == "TRAUMA":
        score += record.trauma_score * w["trauma"]
    if category == "MATERNAL" and record.complications:
        score += MATERNAL_COMPLICATION_MODIFIER
    if category == "PEDIATRIC" and record.vital_score < 0.6:
        score += PEDIATRIC_VITAL_MODIFIER

    return min(1.0, max(0.0, round(score, 4)))


# -- guards shared by the rule fold and the compliance replay -----------------


def vital_critical(ctx: RuleContext) -> bool:
    return ctx.record.vital_score < ctx.param("C1", "vital_score")


def long_wait(ctx: RuleContext) -> bool:
    return ctx.record.wait_time > ctx.param("C3", "max_wait")


def pediatric_risk(ctx: RuleContext) -> bool:
    return (
        ctx.record.age < ctx.param("C5", "max_age")
        and ctx.record.vital_score < ctx.param("C5", "vital_score")
    )


def geriatric_risk(ctx: RuleContext) -> bool:
    return (
        ctx.record.age >= ctx.param("C6", "min_age")
        and ctx.record.comorbidity_index >= ctx.param("C6", "comorbidity")
    )


def trauma_escalation(ctx: RuleContext) -> bool:
    return ctx.record.trauma_score >= ctx.param("C7", "trauma_score")


def maternal_complication(ctx: RuleContext) -> bool:
    return ctx.values["category"] == "MATERNAL" and ctx.record.complications


def resource_shortage(ctx: RuleContext) -> bool:
    return ctx.record.resource_score < ctx.param("C9", "resource_score")


def multi_symptom(ctx: RuleContext) -> bool:
    return ctx.triggered >= ctx.param("C10", "min_triggered")


def priority_raised(ctx: RuleContext) -> bool:
    return ctx.values["priority"] != "LOW"


class MedicalEngine(DecisionEngine):
    """Emergency triage decision engine."""

    name = "medical"
    code = "MED"
    policy_file = "medical.yaml"
    record_model = PatientRecord
    outcome_field = "priority"

    def ladders(self) -> list[Ladder]:
        return [
            Ladder("priority", ("LOW", "MEDIUM", "HIGH")),
            Ladder.flag("critical"),
            Ladder("urgency", ("STANDARD", "IMMEDIATE")),
            Ladder.flag("reassessment"),
            Ladder.flag("resource_alert"),
        ]

    def derive(self, record: PatientRecord) -> dict[str, Any]:
        category = detect_category(record)
        return {"category": category, "risk_score": calculate_risk_score(record, category)}

    def build_rules(self) -> list[Rule]:
        vital = self.threshold("C1", "vital_score")
        max_wait = self.threshold("C3", "max_wait")
        ped_age = self.threshold("C5", "max_age")
        ped_vital = self.threshold("C5", "vital_score")
        ger_age = self.threshold("C6", "min_age")
        ger_comorbidity = self.threshold("C6", "comorbidity")
        trauma = self.threshold("C7", "trauma_score")
        resource = self.threshold("C9", "resource_score")
        min_triggered = self.threshold("C10", "min_triggered")

        return [
            Rule(
                id="C1",
                text=f"IF vital_score < {vital} THEN critical = TRUE, priority = HIGH",
                when=vital_critical,
                effects=(Effect("critical", True), Effect("priority", "HIGH")),
                reason=lambda ctx: (
                    f"C1: vital_score={render_value(ctx.record.vital_score)} < {vital} "
                    f"→ critical = TRUE → priority = HIGH"
                ),
                detail=lambda ctx, fired: "vital_score = " + compare(ctx.record.vital_score, fired, "<", "≥", vital),
            ),
            Rule(
                id="R-AGE",
                text=f"IF age ≥ {AGE_RISK_THRESHOLD} THEN priority ≥ MEDIUM",
                when=lambda ctx: ctx.record.age >= AGE_RISK_THRESHOLD,
                effects=(Effect("priority", "MEDIUM"),),
                reason=lambda ctx: (
                    f"R-AGE: age={render_value(ctx.record.age)} >= {AGE_RISK_THRESHOLD} → risk_modifier = ELEVATED"
                ),
                detail=lambda ctx, fired: "age = " + compare(ctx.record.age, fired, "≥", "<", AGE_RISK_THRESHOLD),
            ),
            Rule(
                id="R-COMORBID",
                text=f"IF comorbidity_index ≥ {COMORBIDITY_RISK_THRESHOLD} THEN priority ≥ MEDIUM",
                when=lambda ctx: ctx.record.comorbidity_index >= COMORBIDITY_RISK_THRESHOLD,
                effects=(Effect("priority", "MEDIUM"),),
                reason=lambda ctx: (
                    f"R-COMORBID: index={render_value(ctx.record.comorbidity_index)} "
                    f">= {COMORBIDITY_RISK_THRESHOLD} → comorbidity_risk = HIGH"
                ),
                detail=lambda ctx, fired: "comorbidity = "
                + compare(ctx.record.comorbidity_index, fired, "≥", "<", COMORBIDITY_RISK_THRESHOLD),
            ),
            Rule(
                id="R-URGENCY",
                text=f"IF critical AND wait_time > {URGENT_WAIT_MINUTES} THEN urgency = IMMEDIATE",
                when=lambda ctx: ctx.values["critical"] and ctx.record.wait_time > URGENT_WAIT_MINUTES,
                effects=(Effect("urgency", "IMMEDIATE"),),
                reason=lambda ctx: (
                    f"R-URGENCY: critical AND wait_time={render_value(ctx.record.wait_time)} "
                    f"> {URGENT_WAIT_MINUTES} → urgency = IMMEDIATE"
                ),
                detail=lambda ctx, fired: (
                    f"critical = {render_value(ctx.values['critical'])}, wait_time = "
                    + compare(ctx.record.wait_time, ctx.record.wait_time > URGENT_WAIT_MINUTES, ">", "≤", URGENT_WAIT_MINUTES)
                ),
            ),
            Rule(
                id="C3",
                text=f"IF wait_time > {max_wait} THEN reassessment = TRUE",
                when=long_wait,
                effects=(Effect("reassessment", True),),
                reason=lambda ctx: (
                    f"C3: wait_time={render_value(ctx.record.wait_time)} > {max_wait} → reassessment = TRUE"
                ),
                detail=lambda ctx, fired: "wait_time = " + compare(ctx.record.wait_time, fired, ">", "≤", max_wait),
            ),
            Rule(
                id="C5",
                text=f"IF age < {ped_age} AND vital_score < {ped_vital} THEN priority ≥ MEDIUM",
                when=pediatric_risk,
                effects=(Effect("priority", "MEDIUM"),),
                reason=lambda ctx: (
                    f"C5: age={render_value(ctx.record.age)} < {ped_age} AND "
                    f"vital={render_value(ctx.record.vital_score)} < {ped_vital} → priority >= MEDIUM"
                ),
                detail=lambda ctx, fired: (
                    f"age = {render_value(ctx.record.age)}, vital = {render_value(ctx.record.vital_score)}"
                ),
            ),
            Rule(
                id="C6",
                text=f"IF age ≥ {ger_age} AND comorbidity ≥ {ger_comorbidity} THEN priority ≥ MEDIUM",
                when=geriatric_risk,
                effects=(Effect("priority", "MEDIUM"),),
                reason=lambda ctx: (
                    f"C6: age={render_value(ctx.record.age)} >= {ger_age} AND "
                    f"comorbidity={render_value(ctx.record.comorbidity_index)} >= {ger_comorbidity} "
                    f"→ priority >= MEDIUM"
                ),
                detail=lambda ctx, fired: (
                    f"age = {render_value(ctx.record.age)}, "
                    f"comorbidity = {render_value(ctx.record.comorbidity_index)}"
                ),
            ),
            Rule(
                id="C7",
                text=f"IF trauma_score ≥ {trauma} THEN priority = HIGH",
                when=trauma_escalation,
                effects=(Effect("priority", "HIGH"), Effect("critical", True)),
                reason=lambda ctx: (
                    f"C7: trauma_score={render_value(ctx.record.trauma_score)} >= {trauma} → priority = HIGH"
                ),
                detail=lambda ctx, fired: "trauma_score = " + compare(ctx.record.trauma_score, fired, "≥", "<", trauma),
            ),
            Rule(
                id="C8",
                text="IF MATERNAL AND complications THEN priority = HIGH",
                when=maternal_complication,
                effects=(Effect("priority", "HIGH"), Effect("critical", True)),
                reason=lambda ctx: "C8: category=MATERNAL AND complications=TRUE → priority = HIGH",
                detail=lambda ctx, fired: (
                    f"category = {ctx.values['category']}, "
                    f"complications = {render_value(ctx.record.complications)}"
                ),
            ),
            Rule(
                id="C9",
                text=f"IF resource_score < {resource} THEN resource_alert = TRUE",
                when=resource_shortage,
                effects=(Effect("resource_alert", True),),
                reason=lambda ctx: (
                    f"C9: resource_score={render_value(ctx.record.resource_score)} < {resource} "
                    f"→ resource_alert = TRUE"
                ),
                detail=lambda ctx, fired: "resource_score = "
                + compare(ctx.record.resource_score, fired, "<", "≥", resource),
            ),
            Rule(
                id="C10",
                text=f"IF triggered_rules ≥ {min_triggered} THEN priority ≥ MEDIUM",
                when=multi_symptom,
                effects=(Effect("priority", "MEDIUM", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: f"C10: triggered_rules={ctx.triggered} >= {min_triggered} → priority >= MEDIUM",
                detail=lambda ctx, fired: "triggered_rules = " + compare(ctx.triggered, fired, "≥", "<", min_triggered),
                counts=False,
                reason_on_change=True,
            ),
        ]

    def build_checks(self) -> list[ConstraintCheck]:
        def priority_detail(ctx: RuleContext, applies: bool) -> str:
            return (
                f"age={render_value(ctx.record.age)}, vital={render_value(ctx.record.vital_score)}, "
                f"comorbidity={render_value(ctx.record.comorbidity_index)}, priority={ctx.values['priority']}"
            )

        def wait_detail(ctx: RuleContext, applies: bool) -> str:
            wait = render_value(ctx.record.wait_time)
            limit = self.threshold("C3", "max_wait")
            if applies:
                return f"Triggered: reassessment activated (wait={wait} > {limit})"
            return f"Within limit (wait={wait} ≤ {limit})"

        return [
            ConstraintCheck(
                "C1",
                guard=vital_critical,
                holds=lambda ctx: ctx.values["priority"] == "HIGH",
                detail=lambda ctx, applies: (
                    f"vital_score={render_value(ctx.record.vital_score)}, priority={ctx.values['priority']}"
                ),
            ),
            ConstraintCheck("C3", guard=long_wait, detail=wait_detail),
            ConstraintCheck(
                "C4",
                guard=priority_raised,
                holds=lambda ctx: ctx.graph.depth() >= ctx.param("C4", "min_depth"),
                detail=lambda ctx, applies: (
                    f"priority={ctx.values['priority']}, reason_graph.depth={ctx.graph.depth()}"
                ),
                requires_graph=True,
            ),
            ConstraintCheck("C5", guard=pediatric_risk, holds=priority_raised, detail=priority_detail),
            ConstraintCheck("C6", guard=geriatric_risk, holds=priority_raised, detail=priority_detail),
            ConstraintCheck(
                "C7",
                guard=trauma_escalation,
                holds=lambda ctx: ctx.values["priority"] == "HIGH",
                detail=lambda ctx, applies: (
                    f"trauma_score={render_value(ctx.record.trauma_score)}, priority={ctx.values['priority']}"
                ),
            ),
            ConstraintCheck(
                "C8",
                guard=maternal_complication,
                holds=lambda ctx: ctx.values["priority"] == "HIGH",
                detail=lambda ctx, applies: (
                    f"category={ctx.values['category']}, "
                    f"complications={render_value(ctx.record.complications)}, priority={ctx.values['priority']}"
                ),
            ),
            ConstraintCheck(
                "C9",
                guard=resource_shortage,
                detail=lambda ctx, applies: (
                    f"resource_score={render_value(ctx.record.resource_score)}, "
                    f"alert={render_value(ctx.values['resource_alert'])}"
                ),
            ),
            ConstraintCheck(
                "C10",
                guard=multi_symptom,
                holds=priority_raised,
                detail=lambda ctx, applies: f"triggered_rules={ctx.triggered}, priority={ctx.values['priority']}",
            ),
        ]

    def build_graph(self, record: PatientRecord, decision: Decision) -> ReasonGraph:
        category = decision["category"]
        b = GraphBuilder()

        b.premise("p1", f"vital_score = {render_value(record.vital_score)}")
        b.premise("p2", f"wait_time = {render_value(record.wait_time)} min")
        b.premise("p3", f"age = {render_value(record.age)}")
        b.premise("p4", f"comorbidity_index = {render_value(record.comorbidity_index)}")
        b.premise("p5", f"resource_score = {render_value(record.resource_score)}")
        b.premise("p6", f"category = {category}")
        b.premise("p7", f"trauma_score = {render_value(record.trauma_score)}")
        b.premise("p8", f"complications = {render_value(record.complications)}")

        b.rule("r1", f"C1: vital_score < {self.threshold('C1', 'vital_score')} → critical")
        b.rule("r2", f"R-URGENCY: critical + wait > {URGENT_WAIT_MINUTES} → IMMEDIATE")
        b.rule("r3", f"R-AGE: age ≥ {AGE_RISK_THRESHOLD} → ELEVATED")
        b.rule("r4", f"R-COMORBID: comorbidity ≥ {COMORBIDITY_RISK_THRESHOLD} → MEDIUM+")
        b.rule("r5", f"C5: pediatric vital < {self.threshold('C5', 'vital_score')} → MEDIUM+")
        b.rule("r6", "C6: geriatric + comorbidity → MEDIUM+")
        b.rule("r7", f"C7: trauma ≥ {self.threshold('C7', 'trauma_score')} → HIGH")
        b.rule("r8", "C10: multi-symptom → MEDIUM+")
        b.rule("r9", "C8: maternal + complications → HIGH")
        b.rule("r10", f"C3: wait > {self.threshold('C3', 'max_wait')} → reassessment")
        b.rule("r11", f"C9: resource < {self.threshold('C9', 'resource_score')} → alert")

        b.conclusion("c1", f"critical = {render_value(decision['critical'])}")
        b.conclusion("c2", f"urgency = {decision['urgency']}")
        b.conclusion("c3", f"priority = {decision['priority']}")
        b.conclusion("c4", f"risk_score = {render_score(decision['risk_score'])}")
        b.conclusion("c5", f"reassessment = {render_value(decision['reassessment'])}")
        b.conclusion("c6", f"resource_alert = {render_value(decision['resource_alert'])}")

        b.edge("p1", "r1", Relation.INPUT)
        b.edge("r1", "c1", Relation.ENTAILS)
        b.edge("c1", "r2", Relation.INPUT)
        b.edge("p2", "r2", Relation.INPUT)
        b.edge("r2", "c2", Relation.ENTAILS)
        b.edge("p3", "r3", Relation.INPUT)
        b.edge("p4", "r4", Relation.INPUT)
        b.edge("p3", "r5", Relation.INPUT)
        b.edge("p1", "r5", Relation.INPUT)
        b.edge("p3", "r6", Relation.INPUT)
        b.edge("p4", "r6", Relation.INPUT)
        b.edge("p2", "r10", Relation.INPUT)
        b.edge("p5", "r11", Relation.INPUT)
        b.edge("c1", "c3", Relation.DETERMINES)
        b.edge("c2", "c3", Relation.DETERMINES)
        b.edge("r3", "c3", Relation.INFLUENCES)
        b.edge("r4", "c3", Relation.INFLUENCES)
        b.edge("r5", "c3", Relation.INFLUENCES)
        b.edge("r6", "c3", Relation.INFLUENCES)
        b.edge("r8", "c3", Relation.INFLUENCES)
        b.edge("r10", "c5", Relation.ENTAILS)
        b.edge("r11", "c6", Relation.ENTAILS)
        b.edge("c3", "c4", Relation.PRODUCES)

        if category == "TRAUMA" or decision.fired("C7"):
            b.edge("p7", "r7", Relation.INPUT)
            b.edge("r7", "c1", Relation.ENTAILS)
            b.edge("r7", "c3", Relation.DETERMINES)
        if category == "MATERNAL":
            b.edge("p8", "r9", Relation.INPUT)
            b.edge("p6", "r9", Relation.INPUT)
            b.edge("r9", "c3", Relation.DETERMINES)

        return b.build()
