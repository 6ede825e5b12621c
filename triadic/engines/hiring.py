"""Employment screening engine."""

from typing import Any

from triadic.engines.base import DecisionEngine, compare
from triadic.rules.models import Decision, Effect, EffectMode, Ladder, Rule, RuleContext
from triadic.schemas.records import CandidateProfile
from triadic.utils.format import render_score, render_value
from triadic.verification.compliance import ConstraintCheck
from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation

ROLE_WEIGHTS = {
    "TECHNICAL": {"skill": 0.30, "experience": 0.20, "interview": 0.20, "education": 0.10, "reference": 0.10, "cultural": 0.10},
    "EXECUTIVE": {"skill": 0.15, "experience": 0.25, "interview": 0.25, "education": 0.10, "reference": 0.15, "cultural": 0.10},
    "OPERATIONS": {"skill": 0.25, "experience": 0.20, "interview": 0.20, "education": 0.10, "reference": 0.10, "cultural": 0.15},
    "CREATIVE": {"skill": 0.35, "experience": 0.10, "interview": 0.20, "education": 0.05, "reference": 0.10, "cultural": 0.20},
    "ENTRY_LEVEL": {"skill": 0.25, "experience": 0.05, "interview": 0.30, "education": 0.15, "reference": 0.10, "cultural": 0.15},
}
DEFAULT_ROLE = "OPERATIONS"
ENTRY_LEVEL_YEARS = 2
EXPERIENCE_NORMALIZATION = 15  # years

CANDIDATE_TIERS = [
    (0.85, "EXCEPTIONAL"),
    (0.70, "STRONG"),
    (0.55, "QUALIFIED"),
    (0.40, "MARGINAL"),
]


def detect_role_category(record: CandidateProfile) -> str:
    if record.role_category:
        return record.role_category
    if record.technical_score is not None:
        return "TECHNICAL"
    if record.leadership_score is not None:
        return "EXECUTIVE"
    if record.experience_years < ENTRY_LEVEL_YEARS:
        return "ENTRY_LEVEL"
    if record.portfolio_score is not None:
        return "CREATIVE"
    return DEFAULT_ROLE


def calculate_composite_score(record: CandidateProfile, role_category: str) -> float:
    """Role-weighted 0-1 candidate score, rounded to 4 places.

    Unknown role categories are scored with the OPERATIONS weights.
    Omitted experience scores as zero years; the rules still read the
    record default.
    """
    w = ROLE_WEIGHTS.get(role_category, ROLE_WEIGHTS[DEFAULT_ROLE])
    experience = record.experience_years if record.provided("experience_years") else 0.0
    score = record.skill_match_score * w["skill"]
    score += min(1.0, experience / EXPERIENCE_NORMALIZATION) * w["experience"]
    score += record.interview_score * w["interview"]
    score += (record.education_level - 1) / 4 * w["education"]
    score += record.reference_score * w["reference"]
    score += record.cultural_fit_score * w["cultural"]
    return min(1.0, max(0.0, round(score, 4)))


def determine_candidate_tier(composite_score: float) -> str:
    for floor, tier in CANDIDATE_TIERS:
        if composite_score >= floor:
            return tier
    return "BELOW_THRESHOLD"


def is_senior(ctx: RuleContext) -> bool:
    return ctx.record.role_level == "SENIOR" or ctx.record.experience_years >= ctx.param("H2", "senior_years")


def low_skill(ctx: RuleContext) -> bool:
    return ctx.record.skill_match_score < ctx.param("H1", "min_skill")


def junior_senior(ctx: RuleContext) -> bool:
    return is_senior(ctx) and ctx.record.experience_years < ctx.param("H2", "min_years")


def weak_interview(ctx: RuleContext) -> bool:
    return ctx.record.interview_score < ctx.param("H3", "min_interview")


def weak_reference(ctx: RuleContext) -> bool:
    return ctx.record.reference_score < ctx.param("H4", "min_reference")


def missing_degree(ctx: RuleContext) -> bool:
    return ctx.record.requires_degree and ctx.record.education_level < ctx.param("H5", "min_education")


def cultural_mismatch(ctx: RuleContext) -> bool:
    return ctx.record.cultural_fit_score < ctx.param("H6", "min_fit")


def background_flagged(ctx: RuleContext) -> bool:
    return ctx.record.background_flagged


def over_budget(ctx: RuleContext) -> bool:
    budget = ctx.record.budget
    return budget > 0 and ctx.record.salary_expectation > budget * ctx.param("H8", "tolerance")


def diversity_enabled(ctx: RuleContext) -> bool:
    return ctx.record.diversity_enabled


def multi_concern(ctx: RuleContext) -> bool:
    return ctx.triggered >= ctx.param("H10", "min_triggered")


def rejected(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] == "NOT_RECOMMENDED"


def not_recommended(ctx: RuleContext) -> bool:
    return ctx.values["recommendation"] != "RECOMMENDED"


class HiringEngine(DecisionEngine):
    """Candidate screening decision engine."""

    name = "hiring"
    code = "HIR"
    policy_file = "hiring.yaml"
    record_model = CandidateProfile
    outcome_field = "recommendation"

    def ladders(self) -> list[Ladder]:
        return [
            Ladder("recommendation", ("RECOMMENDED", "FURTHER_REVIEW", "NOT_RECOMMENDED")),
            Ladder.flag("reference_concern"),
            Ladder.flag("cultural_mismatch"),
            Ladder.flag("budget_exceeded"),
            Ladder.flag("balanced_scoring"),
        ]

    def derive(self, record: CandidateProfile) -> dict[str, Any]:
        role_category = detect_role_category(record)
        composite_score = calculate_composite_score(record, role_category)
        return {
            "role_category": role_category,
            "composite_score": composite_score,
            "candidate_tier": determine_candidate_tier(composite_score),
        }

    def build_rules(self) -> list[Rule]:
        min_skill = self.threshold("H1", "min_skill")
        min_years = self.threshold("H2", "min_years")
        min_interview = self.threshold("H3", "min_interview")
        min_reference = self.threshold("H4", "min_reference")
        min_education = self.threshold("H5", "min_education")
        min_fit = self.threshold("H6", "min_fit")
        tolerance = self.threshold("H8", "tolerance")
        min_triggered = self.threshold("H10", "min_triggered")

        review = Effect("recommendation", "FURTHER_REVIEW")
        reject = Effect("recommendation", "NOT_RECOMMENDED")

        def tier_check(tier: str, outcome: str) -> Rule:
            return Rule(
                id=f"TIER-{tier}",
                text=f"IF RECOMMENDED AND candidate_tier = {tier} THEN {outcome}",
                when=lambda ctx: ctx.values["candidate_tier"] == tier,
                effects=(Effect("recommendation", outcome, EffectMode.FROM_BASELINE),),
                reason=lambda ctx: f"Tier check: candidate_tier={tier} → {outcome}",
                counts=False,
                audit=False,
                reason_on_change=True,
            )

        return [
            Rule(
                id="H1",
                text=f"IF skill_match < {min_skill} THEN NOT_RECOMMENDED",
                when=low_skill,
                effects=(reject,),
                reason=lambda ctx: (
                    f"H1: skill_match_score={render_value(ctx.record.skill_match_score)} < {min_skill} "
                    f"→ NOT_RECOMMENDED"
                ),
                detail=lambda ctx, fired: "skill_match = "
                + compare(ctx.record.skill_match_score, fired, "<", "≥", min_skill),
            ),
            Rule(
                id="H2",
                text=f"IF SENIOR AND experience < {min_years}yr THEN ≠ RECOMMENDED",
                when=junior_senior,
                effects=(review,),
                reason=lambda ctx: (
                    f"H2: role=SENIOR AND experience={render_value(ctx.record.experience_years)} < {min_years} "
                    f"→ ≠ RECOMMENDED"
                ),
                detail=lambda ctx, fired: (
                    f"senior = {render_value(is_senior(ctx))}, experience = {render_value(ctx.record.experience_years)}"
                ),
            ),
            Rule(
                id="H3",
                text=f"IF interview < {min_interview} THEN NOT_RECOMMENDED",
                when=weak_interview,
                effects=(reject,),
                reason=lambda ctx: (
                    f"H3: interview_score={render_value(ctx.record.interview_score)} < {min_interview} "
                    f"→ NOT_RECOMMENDED"
                ),
                detail=lambda ctx, fired: "interview = "
                + compare(ctx.record.interview_score, fired, "<", "≥", min_interview),
            ),
            Rule(
                id="H4",
                text=f"IF reference < {min_reference} THEN flag_concern",
                when=weak_reference,
                effects=(Effect("reference_concern", True), review),
                reason=lambda ctx: (
                    f"H4: reference_score={render_value(ctx.record.reference_score)} < {min_reference} "
                    f"→ flag_reference_concern"
                ),
                detail=lambda ctx, fired: "reference = "
                + compare(ctx.record.reference_score, fired, "<", "≥", min_reference),
            ),
            Rule(
                id="H5",
                text=f"IF requires_degree AND education < {min_education} THEN ≠ RECOMMENDED",
                when=missing_degree,
                effects=(review,),
                reason=lambda ctx: (
                    f"H5: requires_degree AND education_level={render_value(ctx.record.education_level)} "
                    f"< {min_education} → ≠ RECOMMENDED"
                ),
                detail=lambda ctx, fired: (
                    f"requires_degree = {render_value(ctx.record.requires_degree)}, "
                    f"education = {render_value(ctx.record.education_level)}"
                ),
            ),
            Rule(
                id="H6",
                text=f"IF cultural_fit < {min_fit} THEN CULTURAL_MISMATCH",
                when=cultural_mismatch,
                effects=(Effect("cultural_mismatch", True),),
                reason=lambda ctx: (
                    f"H6: cultural_fit_score={render_value(ctx.record.cultural_fit_score)} < {min_fit} "
                    f"→ CULTURAL_MISMATCH"
                ),
                detail=lambda ctx, fired: "cultural_fit = "
                + compare(ctx.record.cultural_fit_score, fired, "<", "≥", min_fit),
            ),
            Rule(
                id="H7",
                text="IF background_flagged THEN FURTHER_REVIEW",
                when=background_flagged,
                effects=(review,),
                reason=lambda ctx: "H7: background_flagged = TRUE → FURTHER_REVIEW",
                detail=lambda ctx, fired: f"background_flagged = {render_value(ctx.record.background_flagged)}",
            ),
            Rule(
                id="H8",
                text=f"IF salary > budget * {tolerance} THEN budget_exceeded",
                when=over_budget,
                effects=(Effect("budget_exceeded", True),),
                reason=lambda ctx: (
                    f"H8: salary_expectation={render_value(ctx.record.salary_expectation)} > "
                    f"budget={render_value(ctx.record.budget)} * {tolerance} → budget_exceeded"
                ),
                detail=lambda ctx, fired: (
                    f"salary = {render_value(ctx.record.salary_expectation)}, "
                    f"budget = {render_value(ctx.record.budget)}"
                ),
            ),
            Rule(
                id="H9",
                text="IF diversity enabled THEN balanced_scoring",
                when=diversity_enabled,
                effects=(Effect("balanced_scoring", True),),
                reason=lambda ctx: "H9: diversity_metrics enabled → balanced_scoring applied",
                detail=lambda ctx, fired: f"diversity_enabled = {render_value(ctx.record.diversity_enabled)}",
                counts=False,
            ),
            Rule(
                id="H10",
                text=f"IF triggered_concerns ≥ {min_triggered} THEN ≠ RECOMMENDED",
                when=multi_concern,
                effects=(Effect("recommendation", "FURTHER_REVIEW", EffectMode.FROM_BASELINE),),
                reason=lambda ctx: (
                    f"H10: triggered_concerns={ctx.triggered} >= {min_triggered} → ≠ RECOMMENDED"
                ),
                detail=lambda ctx, fired: "triggered = " + compare(ctx.triggered, fired, "≥", "<", min_triggered),
                counts=False,
                reason_on_change=True,
            ),
            tier_check("BELOW_THRESHOLD", "NOT_RECOMMENDED"),
            tier_check("MARGINAL", "FURTHER_REVIEW"),
        ]

    def build_checks(self) -> list[ConstraintCheck]:
        def outcome_detail(label: str, value: Any) -> Any:
            return lambda ctx, applies: (
                f"{label}={render_value(value(ctx))}, recommendation={ctx.values['recommendation']}"
            )

        return [
            ConstraintCheck(
                "H1", guard=low_skill, holds=rejected,
                detail=outcome_detail("skill_match", lambda ctx: ctx.record.skill_match_score),
            ),
            ConstraintCheck(
                "H2", guard=junior_senior, holds=not_recommended,
                detail=outcome_detail("experience", lambda ctx: ctx.record.experience_years),
            ),
            ConstraintCheck(
                "H3", guard=weak_interview, holds=rejected,
                detail=outcome_detail("interview", lambda ctx: ctx.record.interview_score),
            ),
            ConstraintCheck(
                "H4", guard=weak_reference,
                holds=lambda ctx: ctx.values["reference_concern"],
                detail=lambda ctx, applies: (
                    f"reference={render_value(ctx.record.reference_score)}, "
                    f"flagged={render_value(ctx.values['reference_concern'])}"
                ),
            ),
            ConstraintCheck(
                "H5", guard=missing_degree, holds=not_recommended,
                detail=outcome_detail("education", lambda ctx: ctx.record.education_level),
            ),
            ConstraintCheck(
                "H6", guard=cultural_mismatch,
                detail=lambda ctx, applies: f"cultural_fit={render_value(ctx.record.cultural_fit_score)}",
            ),
            ConstraintCheck(
                "H7", guard=background_flagged, holds=not_recommended,
                detail=outcome_detail("background_flagged", lambda ctx: ctx.record.background_flagged),
            ),
            ConstraintCheck(
                "H8", guard=over_budget,
                detail=lambda ctx, applies: (
                    f"salary={render_value(ctx.record.salary_expectation)}, budget={render_value(ctx.record.budget)}"
                ),
            ),
            ConstraintCheck(
                "H9", guard=diversity_enabled,
                holds=lambda ctx: ctx.values["balanced_scoring"],
                detail=lambda ctx, applies: (
                    f"diversity_enabled={render_value(ctx.record.diversity_enabled)}, "
                    f"balanced_scoring={render_value(ctx.values['balanced_scoring'])}"
                ),
            ),
            ConstraintCheck(
                "H10", guard=multi_concern, holds=not_recommended,
                detail=lambda ctx, applies: (
                    f"triggered={ctx.triggered}, recommendation={ctx.values['recommendation']}"
                ),
            ),
        ]

    def build_graph(self, record: CandidateProfile, decision: Decision) -> ReasonGraph:
        b = GraphBuilder()

        b.premise("p1", f"skill_match = {render_value(record.skill_match_score)}")
        b.premise("p2", f"experience_years = {render_value(record.experience_years)}")
        b.premise("p3", f"interview_score = {render_value(record.interview_score)}")
        b.premise("p4", f"reference_score = {render_value(record.reference_score)}")
        b.premise("p5", f"education_level = {render_value(record.education_level)}")
        b.premise("p6", f"cultural_fit = {render_value(record.cultural_fit_score)}")
        b.premise("p7", f"role_category = {decision['role_category']}")
        b.premise("p8", f"background_flagged = {render_value(record.background_flagged)}")
        b.premise("p9", f"salary_expectation = {render_value(record.salary_expectation)}")

        b.rule("r1", f"H1: skill < {self.threshold('H1', 'min_skill')} → NOT_RECOMMENDED")
        b.rule("r2", f"H2: SENIOR + exp < {self.threshold('H2', 'min_years')} → ≠ RECOMMENDED")
        b.rule("r3", f"H3: interview < {self.threshold('H3', 'min_interview')} → NOT_RECOMMENDED")
        b.rule("r4", f"H4: reference < {self.threshold('H4', 'min_reference')} → concern")
        b.rule("r5", f"H5: degree required + edu < {self.threshold('H5', 'min_education')} → ≠ RECOMMENDED")
        b.rule("r6", f"H6: cultural_fit < {self.threshold('H6', 'min_fit')} → mismatch")
        b.rule("r7", "H7: background flagged → REVIEW")
        b.rule("r8", "H10: multi-concern → ≠ RECOMMENDED")
        b.rule("r9", f"H8: salary > budget * {self.threshold('H8', 'tolerance')} → budget_exceeded")
        b.rule("r10", "Tier check: MARGINAL / BELOW_THRESHOLD → ≠ RECOMMENDED")

        b.conclusion("c1", f"recommendation = {decision['recommendation']}")
        b.conclusion("c2", f"composite_score = {render_score(decision['composite_score'])}")
        b.conclusion("c3", f"candidate_tier = {decision['candidate_tier']}")
        b.conclusion("c4", f"budget_exceeded = {render_value(decision['budget_exceeded'])}")

        b.edge("p1", "r1", Relation.INPUT)
        b.edge("p2", "r2", Relation.INPUT)
        b.edge("p7", "r2", Relation.INPUT)
        b.edge("p3", "r3", Relation.INPUT)
        b.edge("p4", "r4", Relation.INPUT)
        b.edge("p5", "r5", Relation.INPUT)
        b.edge("p6", "r6", Relation.INPUT)
        b.edge("p8", "r7", Relation.INPUT)
        b.edge("p9", "r9", Relation.INPUT)
        b.edge("r1", "c1", Relation.DETERMINES)
        b.edge("r2", "c1", Relation.INFLUENCES)
        b.edge("r3", "c1", Relation.DETERMINES)
        b.edge("r4", "c1", Relation.INFLUENCES)
        b.edge("r5", "c1", Relation.INFLUENCES)
        b.edge("r6", "c1", Relation.INFLUENCES)
        b.edge("r7", "c1", Relation.INFLUENCES)
        b.edge("r8", "c1", Relation.INFLUENCES)
        b.edge("r9", "c4", Relation.ENTAILS)
        b.edge("c2", "c3", Relation.DETERMINES)
        b.edge("c3", "r10", Relation.INPUT)
        b.edge("r10", "c1", Relation.INFLUENCES)
        b.edge("p7", "c2", Relation.PRODUCES)

        return b.build()
