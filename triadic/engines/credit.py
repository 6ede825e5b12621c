"""Credit assessment engine."""

from typing import Any

from triadic.engines.base import DecisionEngine, compare
from triadic.rules.models import Decision, Effect, EffectMode, Ladder, Rule, RuleContext
from triadic.schemas.records import CreditApplication
from triadic.utils.format import render_score, render_value
from triadic.verification.compliance import ConstraintCheck
from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation

RISK_WEIGHTS = {
    "credit": 0.25,
    "dti": 0.20,
    "income": 0.15,
    "employment": 0.10,
    "payment": 0.15,
    "utilization": 0.10,
    "bankruptcy": 0.05,
}
CREDIT_SCORE_FLOOR = 300
CREDIT_SCORE_RANGE = 550  # 300-850
DTI_NORMALIZATION = 0.6
INCOME_NORMALIZATION = 150000
EMPLOYMENT_NORMALIZATION = 10

# (max risk score, min credit score, tier), first match wins
INTEREST_TIERS = [
    (0.20, 750, "PRIME"),
    (0.35, 680, "PRIME_PLUS"),
    (0.50, 0, "STANDARD"),
    (0.70, 0, "SUBPRIME"),
]


def _unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def detect_loan_type(record: CreditApplication) -> str:
    """Detect the loan type; an explicit type wins, then collateral and asset hints."""
    if record.loan_type:
        return record.loan_type
    if record.provided("collateral_ratio"):
        return "MORTGAGE"
    if record.business_revenue is not None:
        return "BUSINESS"
    if record.vehicle_value is not None:
        return "AUTO"
    if record.tuition_amount is not None:
        return "EDUCATION"
    return "PERSONAL"


def calculate_credit_risk(record: CreditApplication) -> float:
    """Weighted 0-1 credit risk score, rounded to 4 places."""
    w = RISK_WEIGHTS
    credit_norm = _unit((record.credit_score - CREDIT_SCORE_FLOOR) / CREDIT_SCORE_RANGE)
    score = (1 - credit_norm) * w["credit"]
    score += _unit(record.debt_to_income / DTI_NORMALIZATION) * w["dti"]
    score += (1 - _unit(record.annual_income / INCOME_NORMALIZATION)) * w["income"]
    score += (1 - _unit(record.employment_years / EMPLOYMENT_NORMALIZATION)) * w["employment"]
    score += (1 - record.payment_history_score) * w["payment"]
    score += record.credit_utilization * w["utilization"]
    if record.bankruptcy_history:
        score += w["bankruptcy"]
    return _unit(round(score, 4))


def determine_interest_tier(risk_score: float, credit_score: float) -> str:
    for max_risk, min_credit, tier in INTEREST_TIERS:
        if risk_score < max_risk and credit_score >= min_credit:
            return tier
    return "HIGH_RISK"


def credit_floor(ctx: RuleContext) -> bool:
    return ctx.record.credit_score < ctx.param("F1", "min_score")


def dti_ceiling(ctx: RuleContext) -> bool:
    return ctx.record.debt_to_income > ctx.param("F2", "max_dti")


def low_income(ctx: RuleContext) -> bool:
    return ctx.record.annual_income < ctx.param("F3", "min_income")


def high_loan_to_income(ctx: RuleContext) -> bool:
    return ctx.record.loan_to_income > ctx.param("F4", "max_ratio")


def short_employment(ctx: RuleContext) -> bool:
    return ctx.record.employment_years < ctx.param("F5", "min_years")


def undercollateralized(ctx: RuleContext) -> bool:
    return (
        ctx.values["loan_type"] == "MORTGAGE"
        and ctx.record.collateral_ratio < ctx.param("F6", "min_collateral")
    )


def bankruptcy(ctx: RuleContext) -> bool:
    return ctx.record.bankruptcy_history


def poor_payment_history(ctx: RuleContext) -> bool:
    return ctx.record.payment_history_score < ctx.param("F8", "min_payment")


def high_utilization(ctx: RuleContext) -> bool:
    return ctx.record.credit_utilization > ctx.param("F9", "max_utilization")


def multi_risk(ctx: RuleContext) -> bool:
    return ctx.triggered >= ctx.param("F10", "min_triggered")


def not_approved(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] != "APPROVED"


def risk_raised(ctx: RuleContext) -> bool:
    return ctx.values["risk_level"] != "LOW"


class CreditEngine(DecisionEngine):
    """Credit application decision engine."""

    name = "credit"
    code = "CRD"
    policy_file = "credit.yaml"
    record_model = CreditApplication
    outcome_field = "recommendation"

    def ladders(self) -> list[Ladder]:
        return [
            Ladder("recommendation", ("APPROVED", "MANUAL_REVIEW", "DENIED")),
            Ladder("risk_level", ("LOW", "MEDIUM", "HIGH")),
            Ladder.flag("undercollateralized"),
        ]

    def derive(self, record: CreditApplication) -> dict[str, Any]:
        risk_score = calculate_credit_risk(record)
        return {
            "loan_type": detect_loan_type(record),
            "risk_score": risk_score,
            "loan_to_income": round(record.loan_to_income, 2),
            "interest_rate_tier": determine_interest_tier(risk_score, record.credit_score),
        }

    def build_rules(self) -> list[Rule]:
        min_score = self.threshold("F1", "min_score")
        max_dti = self.threshold("F2", "max_dti")
        min_income = self.threshold("F3", "min_income")
        max_ratio = self.threshold("F4", "max_ratio")
        min_years = self.threshold("F5", "min_years")
        min_collateral = self.threshold("F6", "min_collateral")
        min_payment = self.threshold("F8", "min_payment")
        max_utilization = self.threshold("F9", "max_utilization")
        min_triggered = self.threshold("F10", "min_triggered")

        def risk_to(level: str) -> Effect:
            return Effect("risk_level", level)

        return [
            Rule(
                id="F1",
                text=f"IF credit_score < {min_score} THEN DENIED",
                when=credit_floor,
                effects=(Effect("recommendation", "DENIED"),),
                reason=lambda ctx: (
                    f"F1: credit_score={render_value(ctx.record.credit_score)} < {min_score} → recommendation = DENIED"
                ),
                detail=lambda ctx, fired: "credit_score = "
                + compare(ctx.record.credit_score, fired, "<", "≥", min_score),
            ),
            Rule(
                id="F2",
                text=f"IF DTI > {max_dti} THEN DENIED",
                when=dti_ceiling,
                effects=(Effect("recommendation", "DENIED"),),
                reason=lambda ctx: (
                    f"F2: debt_to_income={render_value(ctx.record.debt_to_income)} > {max_dti} "
                    f"→ recommendation = DENIED"
                ),
                detail=lambda ctx, fired: "DTI = " + compare(ctx.record.debt_to_income, fired, ">", "≤", max_dti),
            ),
            Rule(
                id="F3",
                text=f"IF income < {min_income} THEN risk ≥ MEDIUM",
                when=low_income,
                effects=(risk_to("MEDIUM"),),
                reason=lambda ctx: (
                    f"F3: annual_income={render_value(ctx.record.annual_income)} < {min_income} → risk_level >= MEDIUM"
                ),
                detail=lambda ctx, fired: "income = "
                + compare(ctx.record.annual_income, fired, "<", "≥", min_income),
            ),
            Rule(
                id="F4",
                text=f"IF loan/income > {max_ratio} THEN ≠ APPROVED",
                when=high_loan_to_income,
                effects=(Effect("recommendation", "MANUAL_REVIEW"),),
                reason=lambda ctx: (
                    f"F4: loan_to_income={ctx.record.loan_to_income:.2f} > {max_ratio} → recommendation ≠ APPROVED"
                ),
                detail=lambda ctx, fired: f"LTI = {ctx.record.loan_to_income:.2f} "
                f"{'>' if fired else '≤'} {max_ratio}",
            ),
            Rule(
                id="F5",
                text=f"IF employment < {min_years}yr THEN risk ≥ MEDIUM",
                when=short_employment,
                effects=(risk_to("MEDIUM"),),
                reason=lambda ctx: (
                    f"F5: employment_years={render_value(ctx.record.employment_years)} < {min_years} "
                    f"→ risk_modifier = ELEVATED"
                ),
                detail=lambda ctx, fired: "employment = "
                + compare(ctx.record.employment_years, fired, "<", "≥", min_years),
            ),
            Rule(
                id="F6",
                text=f"IF MORTGAGE AND collateral < {min_collateral} THEN flag",
                when=undercollateralized,
                effects=(Effect("undercollateralized", True), Effect("recommendation", "MANUAL_REVIEW")),
                reason=lambda ctx: (
                    f"F6: loan_type=MORTGAGE AND collateral_ratio={render_value(ctx.record.collateral_ratio)} "
                    f"< {min_collateral} → undercollateralized"
                ),
                detail=lambda ctx, fired: (
                    f"type = {ctx.values['loan_type']}, collateral = {render_value(ctx.record.collateral_ratio)}"
                ),
            ),
            Rule(
                id="F7",
                text="IF bankruptcy THEN risk = HIGH",
                when=bankruptcy,
                effects=(risk_to("HIGH"),),
                reason=lambda ctx: "F7: bankruptcy_history = TRUE → risk_level = HIGH",
                detail=lambda ctx, fired: f"bankruptcy = {render_value(ctx.record.bankruptcy_history)}",
            ),
            Rule(
                id="F8",
                text=f"IF payment_history < {min_payment} THEN risk ≥ MEDIUM",
                when=poor_payment_history,
                effects=(risk_to("MEDIUM"),),
                reason=lambda ctx: (
                    f"F8: payment_history_score={render_value(ctx.record.payment_history_score)} "
                    f"< {min_payment} → risk_level >= MEDIUM"
                ),
                detail=lambda ctx, fired: "payment = "
                + compare(ctx.record.payment_history_score, fired, "<", "≥", min_payment),
            ),
            Rule(
                id="F9",
                text=f"IF utilization > {max_utilization} THEN risk ≥ MEDIUM",
                when=high_utilization,
                effects=(risk_to("MEDIUM"),),
                reason=lambda ctx: (
                    f"F9: credit_utilization={render_value(ctx.record.credit_utilization)} "
                    f"> {max_utilization} → risk_modifier = ELEVATED"
                ),
                detail=lambda ctx, fired: "utilization = "
                + compare(ctx.record.credit_utilization, fired, ">", "≤", max_utilization),
            ),
            Rule(
                id="F10",
                text=f"IF triggered_risks ≥ {min_triggered} THEN ≠ APPROVED",
                when=multi_risk,
                effects=(Effect("recommendation", "MANUAL_REVIEW", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: (
                    f"F10: triggered_risks={ctx.triggered} >= {min_triggered} → recommendation ≠ APPROVED"
                ),
                detail=lambda ctx, fired: "triggered = " + compare(ctx.triggered, fired, "≥", "<", min_triggered),
                counts=False,
                reason_on_change=True,
            ),
            Rule(
                id="RISK-OVERRIDE",
                text="IF APPROVED AND risk = HIGH THEN MANUAL_REVIEW",
                when=lambda ctx: ctx.values["risk_level"] == "HIGH",
                effects=(Effect("recommendation", "MANUAL_REVIEW", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: "Risk override: risk_level=HIGH → recommendation = MANUAL_REVIEW",
                counts=False,
                audit=False,
                reason_on_change=True,
            ),
        ]

    def build_checks(self) -> list[ConstraintCheck]:
        def outcome_detail(ctx: RuleContext, applies: bool) -> str:
            return (
                f"credit_score={render_value(ctx.record.credit_score)}, "
                f"dti={render_value(ctx.record.debt_to_income)}, "
                f"recommendation={ctx.values['recommendation']}"
            )

        def risk_detail(ctx: RuleContext, applies: bool) -> str:
            return f"applies={render_value(applies)}, risk_level={ctx.values['risk_level']}"

        return [
            ConstraintCheck(
                "F1", guard=credit_floor,
                holds=lambda ctx: ctx.values["recommendation"] == "DENIED",
                detail=outcome_detail,
            ),
            ConstraintCheck(
                "F2", guard=dti_ceiling,
                holds=lambda ctx: ctx.values["recommendation"] == "DENIED",
                detail=outcome_detail,
            ),
            ConstraintCheck("F3", guard=low_income, holds=risk_raised, detail=risk_detail),
            ConstraintCheck(
                "F4", guard=high_loan_to_income, holds=not_approved,
                detail=lambda ctx, applies: (
                    f"LTI={ctx.record.loan_to_income:.2f}, recommendation={ctx.values['recommendation']}"
                ),
            ),
            ConstraintCheck("F5", guard=short_employment, holds=risk_raised, detail=risk_detail),
            ConstraintCheck(
                "F6", guard=undercollateralized,
                holds=lambda ctx: ctx.values["undercollateralized"] and not_approved(ctx),
                detail=lambda ctx, applies: (
                    f"loan_type={ctx.values['loan_type']}, collateral={render_value(ctx.record.collateral_ratio)}, "
                    f"flagged={render_value(ctx.values['undercollateralized'])}"
                ),
            ),
            ConstraintCheck(
                "F7", guard=bankruptcy,
                holds=lambda ctx: ctx.values["risk_level"] == "HIGH",
                detail=lambda ctx, applies: (
                    f"bankruptcy={render_value(ctx.record.bankruptcy_history)}, risk_level={ctx.values['risk_level']}"
                ),
            ),
            ConstraintCheck("F8", guard=poor_payment_history, holds=risk_raised, detail=risk_detail),
            ConstraintCheck(
                "F9", guard=high_utilization,
                detail=lambda ctx, applies: f"utilization={render_value(ctx.record.credit_utilization)}",
            ),
            ConstraintCheck(
                "F10", guard=multi_risk, holds=not_approved,
                detail=lambda ctx, applies: (
                    f"triggered={ctx.triggered}, recommendation={ctx.values['recommendation']}"
                ),
            ),
        ]

    def build_graph(self, record: CreditApplication, decision: Decision) -> ReasonGraph:
        b = GraphBuilder()

        b.premise("p1", f"credit_score = {render_value(record.credit_score)}")
        b.premise("p2", f"debt_to_income = {render_value(record.debt_to_income)}")
        b.premise("p3", f"annual_income = {render_value(record.annual_income)}")
        b.premise("p4", f"loan_amount = {render_value(record.loan_amount)}")
        b.premise("p5", f"employment_years = {render_value(record.employment_years)}")
        b.premise("p6", f"payment_history = {render_value(record.payment_history_score)}")
        b.premise("p7", f"credit_utilization = {render_value(record.credit_utilization)}")
        b.premise("p8", f"loan_type = {decision['loan_type']}")
        b.premise("p9", f"collateral_ratio = {render_value(record.collateral_ratio)}")
        b.premise("p10", f"bankruptcy_history = {render_value(record.bankruptcy_history)}")

        b.rule("r1", f"F1: credit < {self.threshold('F1', 'min_score')} → DENIED")
        b.rule("r2", f"F2: DTI > {self.threshold('F2', 'max_dti')} → DENIED")
        b.rule("r3", f"F3: income < {self.threshold('F3', 'min_income')} → risk MEDIUM+")
        b.rule("r4", f"F4: LTI > {self.threshold('F4', 'max_ratio')} → ≠ APPROVED")
        b.rule("r5", f"F5: employment < {self.threshold('F5', 'min_years')}yr → ELEVATED")
        b.rule("r6", "F7: bankruptcy → HIGH risk")
        b.rule("r7", f"F8: payment < {self.threshold('F8', 'min_payment')} → risk MEDIUM+")
        b.rule("r8", "F10: multi-risk → ≠ APPROVED")
        b.rule("r9", f"F6: MORTGAGE collateral < {self.threshold('F6', 'min_collateral')} → flag")
        b.rule("r10", f"F9: utilization > {self.threshold('F9', 'max_utilization')} → ELEVATED")
        b.rule("r11", "Risk override: HIGH risk → MANUAL_REVIEW")

        b.conclusion("c1", f"recommendation = {decision['recommendation']}")
        b.conclusion("c2", f"risk_level = {decision['risk_level']}")
        b.conclusion("c3", f"interest_tier = {decision['interest_rate_tier']}")
        b.conclusion("c4", f"risk_score = {render_score(decision['risk_score'])}")
        b.conclusion("c5", f"undercollateralized = {render_value(decision['undercollateralized'])}")

        b.edge("p1", "r1", Relation.INPUT)
        b.edge("p2", "r2", Relation.INPUT)
        b.edge("p3", "r3", Relation.INPUT)
        b.edge("p3", "r4", Relation.INPUT)
        b.edge("p4", "r4", Relation.INPUT)
        b.edge("p5", "r5", Relation.INPUT)
        b.edge("p10", "r6", Relation.INPUT)
        b.edge("p6", "r7", Relation.INPUT)
        b.edge("p7", "r10", Relation.INPUT)
        b.edge("r1", "c1", Relation.DETERMINES)
        b.edge("r2", "c1", Relation.DETERMINES)
        b.edge("r3", "c2", Relation.INFLUENCES)
        b.edge("r4", "c1", Relation.INFLUENCES)
        b.edge("r5", "c2", Relation.INFLUENCES)
        b.edge("r6", "c2", Relation.DETERMINES)
        b.edge("r7", "c2", Relation.INFLUENCES)
        b.edge("r10", "c2", Relation.INFLUENCES)
        b.edge("r8", "c1", Relation.INFLUENCES)
        b.edge("c2", "r11", Relation.INPUT)
        b.edge("r11", "c1", Relation.INFLUENCES)
        b.edge("c1", "c3", Relation.PRODUCES)
        b.edge("c2", "c3", Relation.PRODUCES)
        b.edge("c1", "c4", Relation.PRODUCES)
        b.edge("c2", "c4", Relation.PRODUCES)

        if decision["loan_type"] == "MORTGAGE":
            b.edge("p8", "r9", Relation.INPUT)
            b.edge("p9", "r9", Relation.INPUT)
            b.edge("r9", "c5", Relation.ENTAILS)
            b.edge("r9", "c1", Relation.INFLUENCES)

        return b.build()
