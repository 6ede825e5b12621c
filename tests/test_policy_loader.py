"""Tests for policy loading and sealing."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from triadic.core.crypto import Signer
from triadic.core.exceptions import PolicyIntegrityError
from triadic.engines import CreditEngine, MedicalEngine
from triadic.policies.loader import POLICIES_DIR, PolicyLoader, load_policy
from triadic.policies.models import Constraint, Policy, Severity, compute_policy_hash

POLICY_FILES = [
    "credit.yaml",
    "government.yaml",
    "hiring.yaml",
    "legal.yaml",
    "medical.yaml",
    "permit.yaml",
]


def _medical_declaration() -> dict:
    return yaml.safe_load((POLICIES_DIR / "medical.yaml").read_text(encoding="utf-8"))


def _write(tmp_path: Path, data: dict, name: str = "policy.yaml") -> str:
    (tmp_path / name).write_text(yaml.safe_dump(data), encoding="utf-8")
    return name


class TestPackagedPolicies:
    """Tests for the packaged policy declarations."""

    @pytest.mark.parametrize("filename", POLICY_FILES)
    def test_policy_loads_and_verifies(self, filename: str, signer: Signer) -> None:
        """Test that each packaged policy loads with a valid seal."""
        policy = load_policy(filename, signer=signer)

        assert len(policy.policy_hash) == 64
        assert len(policy.constraints) == 10
        assert policy.verify_signature(signer) is True

    def test_medical_policy_metadata(self, medical_policy: Policy) -> None:
        """Test the triage policy's identifying fields."""
        assert medical_policy.name == "Emergency Triage Protocol v3.0"
        assert medical_policy.declaration_timestamp == "2024-11-15T09:00:00Z"
        assert [c.id for c in medical_policy.constraints] == [f"C{i}" for i in range(1, 11)]

    def test_rule_text_renders_thresholds(self, medical_policy: Policy) -> None:
        """Test that rule text carries the declared threshold values."""
        c1 = medical_policy.constraint("C1")

        assert "0.5" in c1.rule
        assert "{" not in c1.rule
        assert medical_policy.param("C1", "vital_score") == 0.5

    def test_hash_is_stable_across_loads(self, signer: Signer) -> None:
        """Test that loading the same declaration twice gives the same hash."""
        first = load_policy("medical.yaml", signer=signer)
        second = load_policy("medical.yaml", signer=signer)

        assert first.policy_hash == second.policy_hash
        assert first.authority_signature == second.authority_signature

    def test_signature_depends_on_secret(self) -> None:
        """Test that the hash is secret-independent but the signature is not."""
        a = load_policy("medical.yaml", signer=Signer("a"))
        b = load_policy("medical.yaml", signer=Signer("b"))

        assert a.policy_hash == b.policy_hash
        assert a.authority_signature != b.authority_signature
        assert a.verify_signature(Signer("b")) is False

    def test_undeclared_constraint_raises(self, medical_policy: Policy) -> None:
        """Test that looking up a missing constraint fails loudly."""
        with pytest.raises(PolicyIntegrityError):
            medical_policy.constraint("C99")
        with pytest.raises(PolicyIntegrityError):
            medical_policy.param("C1", "missing")


class TestPolicyHash:
    """Tests for policy hash coverage."""

    def test_threshold_change_changes_hash(self, signer: Signer) -> None:
        """Test that editing a parameter edits the hash."""
        data = _medical_declaration()
        original = Policy.from_dict(data, signer=signer)

        data["constraints"][0]["params"]["vital_score"] = 0.4
        edited = Policy.from_dict(data, signer=signer)

        assert edited.policy_hash != original.policy_hash
        assert edited.param("C1", "vital_score") == 0.4

    def test_declaration_time_changes_hash(self, signer: Signer) -> None:
        """Test that the declaration timestamp is part of the hash."""
        data = _medical_declaration()
        original = Policy.from_dict(data, signer=signer)

        data["declaration_timestamp"] = "2024-11-16T09:00:00Z"
        assert Policy.from_dict(data, signer=signer).policy_hash != original.policy_hash

    def test_version_and_authority_not_hashed(self, signer: Signer) -> None:
        """Test that only name, declaration time and rules are hashed."""
        data = _medical_declaration()
        original = Policy.from_dict(data, signer=signer)

        data["version"] = "9.9.9"
        data["authority"] = "Someone Else"
        assert Policy.from_dict(data, signer=signer).policy_hash == original.policy_hash

    def test_hash_matches_documented_content(self, medical_policy: Policy) -> None:
        """Test the hash against a recomputation from the parts."""
        expected = compute_policy_hash(
            medical_policy.name,
            medical_policy.declaration_timestamp,
            medical_policy.constraints,
        )
        assert medical_policy.policy_hash == expected

    def test_unquoted_yaml_timestamp_accepted(self, tmp_path: Path, signer: Signer) -> None:
        """Test that a YAML datetime is normalized to an ISO string."""
        data = _medical_declaration()
        data["declaration_timestamp"] = datetime(2024, 11, 15, 9, 0, tzinfo=timezone.utc)
        name = _write(tmp_path, data)

        policy = load_policy(name, policies_dir=tmp_path, signer=signer)

        assert policy.declaration_timestamp == "2024-11-15T09:00:00Z"


class TestPolicyIntegrity:
    """Tests for rejected policy declarations."""

    def test_missing_file(self, tmp_path: Path, signer: Signer) -> None:
        """Test that a missing policy file is an integrity error."""
        with pytest.raises(PolicyIntegrityError, match="not found"):
            load_policy("absent.yaml", policies_dir=tmp_path, signer=signer)

    def test_invalid_yaml(self, tmp_path: Path, signer: Signer) -> None:
        """Test that unparsable YAML is an integrity error."""
        (tmp_path / "broken.yaml").write_text("name: [unclosed", encoding="utf-8")

        with pytest.raises(PolicyIntegrityError):
            load_policy("broken.yaml", policies_dir=tmp_path, signer=signer)

    def test_missing_top_level_keys(self, tmp_path: Path, signer: Signer) -> None:
        """Test that a declaration without constraints is rejected."""
        name = _write(tmp_path, {"name": "Partial", "version": "1"})

        with pytest.raises(PolicyIntegrityError, match="missing keys"):
            load_policy(name, policies_dir=tmp_path, signer=signer)

    def test_duplicate_constraint_ids(self, tmp_path: Path, signer: Signer) -> None:
        """Test that constraint ids must be unique."""
        data = _medical_declaration()
        data["constraints"][1]["id"] = "C1"
        name = _write(tmp_path, data)

        with pytest.raises(PolicyIntegrityError, match="twice"):
            load_policy(name, policies_dir=tmp_path, signer=signer)

    def test_unknown_severity(self, tmp_path: Path, signer: Signer) -> None:
        """Test that severity must be mandatory or warning."""
        data = _medical_declaration()
        data["constraints"][0]["severity"] = "optional"
        name = _write(tmp_path, data)

        with pytest.raises(PolicyIntegrityError, match="severity"):
            load_policy(name, policies_dir=tmp_path, signer=signer)

    def test_template_with_undeclared_param(self, tmp_path: Path, signer: Signer) -> None:
        """Test that rule text must render from its own params."""
        data = _medical_declaration()
        data["constraints"][0]["params"] = {}
        name = _write(tmp_path, data)

        with pytest.raises(PolicyIntegrityError, match="cannot be rendered"):
            load_policy(name, policies_dir=tmp_path, signer=signer)

    def test_future_declaration_rejected(self, signer: Signer) -> None:
        """Test that a policy cannot be declared after the current time."""
        constraint = Constraint("T1", "test", "x < {limit}", Severity.MANDATORY, {"limit": 1})

        with pytest.raises(PolicyIntegrityError, match="future"):
            Policy.declare(
                name="Future",
                authority="Test",
                version="1",
                declaration_timestamp="2030-01-01T00:00:00Z",
                constraints=[constraint],
                signer=signer,
                now=lambda: datetime(2025, 1, 1, tzinfo=timezone.utc),
            )

    def test_invalid_declaration_timestamp(self, signer: Signer) -> None:
        """Test that an unparsable declaration time is rejected."""
        constraint = Constraint("T1", "test", "x < {limit}", Severity.MANDATORY, {"limit": 1})

        with pytest.raises(PolicyIntegrityError, match="timestamp"):
            Policy.declare("Bad", "Test", "1", "yesterday", [constraint], signer)

    def test_engine_rejects_policy_without_its_constraints(self, signer: Signer) -> None:
        """Test that an engine cannot be built on another domain's policy."""
        credit_policy = load_policy("credit.yaml", signer=signer)

        with pytest.raises(PolicyIntegrityError):
            MedicalEngine(policy=credit_policy, signer=signer)

    def test_engine_reads_edited_threshold(self, signer: Signer, clock) -> None:
        """Test that engines take thresholds from the policy they are given."""
        data = yaml.safe_load((POLICIES_DIR / "credit.yaml").read_text(encoding="utf-8"))
        for constraint in data["constraints"]:
            if constraint["id"] == "F1":
                constraint["params"]["min_score"] = 700
        engine = CreditEngine(policy=Policy.from_dict(data, signer=signer), signer=signer, clock=clock)

        result = engine.evaluate({"credit_score": 650})

        assert result.decision.outcome == "DENIED"
        assert result.decision.fired("F1")


class TestPolicyLoader:
    """Tests for the caching loader."""

    def test_list_policies(self, signer: Signer) -> None:
        """Test that all packaged policies are listed in order."""
        assert PolicyLoader(signer=signer).list_policies() == POLICY_FILES

    def test_cache_returns_same_instance(self, signer: Signer) -> None:
        """Test cached loads and explicit bypass."""
        loader = PolicyLoader(signer=signer)

        first = loader.load("medical.yaml")
        assert loader.load("medical.yaml") is first
        assert loader.load("medical.yaml", use_cache=False) is not first

    def test_clear_cache(self, signer: Signer) -> None:
        """Test that clearing the cache forces a reload."""
        loader = PolicyLoader(signer=signer)
        first = loader.load("legal.yaml")

        loader.clear_cache()

        assert loader.load("legal.yaml") is not first

    def test_policy_info(self, signer: Signer) -> None:
        """Test the metadata summary of a policy."""
        info = PolicyLoader(signer=signer).get_policy_info("credit.yaml")

        assert info["filename"] == "credit.yaml"
        assert info["name"] == "Financial Credit Assessment Protocol v2.0"
        assert info["constraint_count"] == 10
        assert len(info["hash"]) == 64

    def test_custom_directory(self, tmp_path: Path, signer: Signer) -> None:
        """Test loading from a caller-supplied directory."""
        _write(tmp_path, _medical_declaration(), name="custom.yaml")
        loader = PolicyLoader(policies_dir=tmp_path, signer=signer)

        assert loader.list_policies() == ["custom.yaml"]
        assert loader.load("custom.yaml").name == "Emergency Triage Protocol v3.0"
