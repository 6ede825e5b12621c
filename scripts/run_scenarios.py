#!/usr/bin/env python
"""Reference scenario runner.

Evaluates the reference scenarios, re-verifies each bundle and writes
the decisions and bundles as JSON evidence.

Usage:
    python scripts/run_scenarios.py medical   # Critical geriatric patient
    python scripts/run_scenarios.py credit    # Sub-floor credit score
    python scripts/run_scenarios.py hiring    # Strong candidate
    python scripts/run_scenarios.py permit    # Compliant permit application
    python scripts/run_scenarios.py all       # Run all scenarios
"""

import argparse
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from triadic.core.logging import setup_logging
from triadic.engines import evaluate
from triadic.verification import verify_bundle

SCENARIOS: dict[str, dict[str, Any]] = {
    "medical": {
        "engine": "medical",
        "title": "Critical geriatric patient",
        "data": {
            "vital_score": 0.3,
            "age": 70,
            "comorbidity_index": 0.7,
            "wait_time": 45,
            "resource_score": 0.6,
        },
        "expected": {"priority": "HIGH", "critical": True, "urgency": "IMMEDIATE"},
    },
    "credit": {
        "engine": "credit",
        "title": "Credit score below floor",
        "data": {
            "credit_score": 450,
            "annual_income": 50000,
            "debt_to_income": 0.3,
            "loan_amount": 20000,
            "employment_years": 5,
        },
        "expected": {"recommendation": "DENIED"},
    },
    "hiring": {
        "engine": "hiring",
        "title": "Strong candidate",
        "data": {
            "skill_match_score": 0.85,
            "experience_years": 7,
            "interview_score": 0.9,
            "reference_score": 0.8,
            "education_level": 4,
        },
        "expected": {"recommendation": "RECOMMENDED", "candidate_tier": "STRONG"},
    },
    "permit": {
        "engine": "permit",
        "title": "Compliant permit application",
        "data": {
            "zoning_compliance": 0.85,
            "structural_safety": 0.9,
            "environmental_impact": 0.25,
            "plot_coverage_ratio": 0.55,
            "fire_safety_score": 0.8,
        },
        "expected": {"recommendation": "APPROVED"},
    },
}


@dataclass
class ScenarioResult:
    """Result of a reference scenario."""

    scenario: str
    success: bool
    overall_result: str
    bundle_intact: bool
    mismatches: list[str]
    artifact: str


class ScenarioRunner:
    """Runs reference scenarios and writes evidence."""

    def __init__(self, output_dir: Path = Path("evidence")):
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    def run(self, name: str) -> ScenarioResult:
        scenario = SCENARIOS[name]
        print("\n" + "=" * 60)
        print(f"SCENARIO: {scenario['title']} ({scenario['engine']})")
        print("=" * 60)

        result = evaluate(scenario["engine"], scenario["data"])
        decision = result.decision
        bundle = result.verification_bundle

        mismatches = [
            f"{key}: expected {value!r}, got {decision.get(key)!r}"
            for key, value in scenario["expected"].items()
            if decision.get(key) != value
        ]
        audit = verify_bundle(bundle, data=scenario["data"])

        print(f"\n  Outcome:          {decision.outcome}")
        print(f"  Triggered rules:  {decision.triggered_rules}")
        for reason in decision.reasons:
            print(f"    - {reason}")
        print(f"  Overall result:   {bundle.overall_result}")
        print(f"  Merkle root:      {bundle.merkle_root}")
        print(f"  Bundle intact:    {audit.intact}")
        for mismatch in mismatches:
            print(f"  [MISMATCH] {mismatch}")

        artifact = self.output_dir / f"{name}_{self.timestamp}.json"
        artifact.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

        return ScenarioResult(
            scenario=name,
            success=not mismatches and bundle.verified and audit.intact,
            overall_result=bundle.overall_result,
            bundle_intact=audit.intact,
            mismatches=mismatches,
            artifact=str(artifact),
        )

    def export_summary(self, results: list[ScenarioResult]) -> str:
        summary_file = self.output_dir / f"summary_{self.timestamp}.json"
        summary_file.write_text(json.dumps([asdict(r) for r in results], indent=2))
        return str(summary_file)


def main():
    """Main entry point for the scenario runner."""
    parser = argparse.ArgumentParser(description="Triadic verification reference scenarios")
    parser.add_argument(
        "scenario",
        choices=[*SCENARIOS, "all"],
        help="Which scenario to run",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("evidence"),
        help="Output directory for evidence artifacts",
    )

    args = parser.parse_args()
    setup_logging()
    runner = ScenarioRunner(output_dir=args.output_dir)

    names = list(SCENARIOS) if args.scenario == "all" else [args.scenario]
    results = [runner.run(name) for name in names]
    summary = runner.export_summary(results)

    print("\n" + "=" * 60)
    print("SCENARIOS COMPLETE")
    print("=" * 60)
    print(f"Scenarios run: {len(results)}")
    print(f"All passed: {all(r.success for r in results)}")
    print(f"Summary: {summary}")


if __name__ == "__main__":
    main()
