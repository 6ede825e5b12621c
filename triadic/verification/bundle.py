"""Verification bundle assembly and re-verification.

The bundle folds the three proofs into one Merkle root over
``[poo.hash, por.hash, poi.policy_hash]``. The verdict is VERIFIED iff
every mandatory constraint is satisfied and the reason graph has at
least one edge. FAILED is an ordinary result, not an error.
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Callable

from triadic.core.crypto import Signer, compute_merkle_root, default_signer
from triadic.utils.time import format_timestamp, parse_timestamp, utc_now
from triadic.verification.compliance import PoIResult
from triadic.verification.graph import ReasonGraph
from triadic.verification.proofs import ProofOfOperation, ProofOfReason, compute_state_hash

VERIFIED = "VERIFIED"
FAILED = "FAILED"


def _now() -> str:
    return format_timestamp(utc_now())


@dataclass(frozen=True)
class VerificationPredicate:
    signatures_valid: bool
    logic_valid: bool
    temporal_precedence: bool
    constraints_satisfied: bool
    merkle_verified: bool

    def to_dict(self) -> dict[str, bool]:
        return {
            "signatures_valid": self.signatures_valid,
            "logic_valid": self.logic_valid,
            "temporal_precedence": self.temporal_precedence,
            "constraints_satisfied": self.constraints_satisfied,
            "merkle_verified": self.merkle_verified,
        }


@dataclass(frozen=True)
class VerificationBundle:
    """Externally visible proof bundle for one decision."""
    bundle_id: str
    created_at: str
    poo: ProofOfOperation
    por: ProofOfReason
    poi: PoIResult
    merkle_root: str
    verification_predicate: VerificationPredicate
    overall_result: str

    @property
    def verified(self) -> bool:
        return self.overall_result == VERIFIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "bundle_id": self.bundle_id,
            "created_at": self.created_at,
            "poo": self.poo.to_dict(),
            "por": self.por.to_dict(),
            "poi": self.poi.to_dict(),
            "merkle_root": self.merkle_root,
            "verification_predicate": self.verification_predicate.to_dict(),
            "overall_result": self.overall_result,
        }


def overall_verdict(all_satisfied: bool, edge_count: int) -> str:
    """VERIFIED iff constraints hold and the reason graph is non-empty."""
    return VERIFIED if all_satisfied and edge_count > 0 else FAILED


def assemble_bundle(
    poo: ProofOfOperation,
    por: ProofOfReason,
    poi: PoIResult,
    signer: Signer | None = None,
    bundle_prefix: str = "VB",
    clock: Callable[[], str] = _now,
) -> VerificationBundle:
    """Fold the three proofs into a verification bundle.

    Both signatures are re-checked against the signer, and the graph
    hash is recomputed, before ``signatures_valid`` is reported.

    Args:
        poo: Proof of Operation
        por: Proof of Reason
        poi: Proof of Intent
        signer: Signer the proofs were produced with (defaults to settings)
        bundle_prefix: Prefix for the bundle id
        clock: Returns the creation timestamp

    Returns:
        Immutable VerificationBundle
    """
    signer = signer or default_signer()

    leaves = [poo.hash, por.hash, poi.policy_hash]
    merkle_root = compute_merkle_root(leaves)

    signatures_valid = (
        signer.verify(poo.hash + poo.timestamp, poo.signature)
        and por.graph.compute_hash() == por.hash
        and signer.verify(por.hash, por.signature)
    )
    logic_valid = por.edge_count > 0

    predicate = VerificationPredicate(
        signatures_valid=signatures_valid,
        logic_valid=logic_valid,
        temporal_precedence=poi.temporal_precedence,
        constraints_satisfied=poi.all_satisfied,
        # root was just folded from these leaves; verify_bundle re-checks it
        merkle_verified=True,
    )

    return VerificationBundle(
        bundle_id=f"{bundle_prefix}-{uuid.uuid4().hex[:12]}",
        created_at=clock(),
        poo=poo,
        por=por,
        poi=poi,
        merkle_root=merkle_root,
        verification_predicate=predicate,
        overall_result=overall_verdict(poi.all_satisfied, por.edge_count),
    )


@dataclass(frozen=True)
class BundleAudit:
    """Result of re-checking a bundle received from elsewhere.

    ``state_hash_valid`` is None unless the original input was supplied.
    """
    graph_hash_valid: bool
    poo_signature_valid: bool
    por_signature_valid: bool
    merkle_valid: bool
    temporal_precedence: bool
    verdict_consistent: bool
    state_hash_valid: bool | None = None

    @property
    def intact(self) -> bool:
        return not self.failures()

    def failures(self) -> list[str]:
        """Names of the checks that did not pass."""
        return [f.name for f in fields(self) if getattr(self, f.name) is False]


def verify_bundle(
    bundle: VerificationBundle | Mapping[str, Any],
    signer: Signer | None = None,
    data: Mapping[str, Any] | None = None,
) -> BundleAudit:
    """Re-verify a bundle, typically its JSON form.

    Args:
        bundle: Bundle object or its ``to_dict()`` form
        signer: Signer holding the shared secret (defaults to settings)
        data: Original input mapping; when given the PoO state hash is
            recomputed as well

    Returns:
        BundleAudit; ``intact`` is False if anything was altered

    Raises:
        ValueError: If the bundle is structurally malformed
    """
    signer = signer or default_signer()
    if isinstance(bundle, VerificationBundle):
        bundle = bundle.to_dict()

    try:
        poo = bundle["poo"]
        por = bundle["por"]
        poi = bundle["poi"]
        graph = ReasonGraph.from_dict(por["graph"])
        leaves = [poo["hash"], por["hash"], poi["policy_hash"]]
        merkle_root = bundle["merkle_root"]
        overall_result = bundle["overall_result"]
        all_satisfied = bool(poi["all_satisfied"])
        declared = poi["declaration_time"]
        timestamp = poo["timestamp"]
        checked = {"poo.hash": poo["hash"], "poo.timestamp": timestamp, "por.hash": por["hash"]}
        for name, value in checked.items():
            if not isinstance(value, str):
                raise TypeError(f"{name} must be a string")
        temporal_precedence = parse_timestamp(declared) < parse_timestamp(timestamp)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed verification bundle: {exc!r}") from exc

    state_hash_valid = None
    if data is not None:
        state_hash_valid = compute_state_hash(data, poi.get("policy", ""), timestamp) == poo["hash"]

    return BundleAudit(
        graph_hash_valid=graph.compute_hash() == por["hash"],
        poo_signature_valid=signer.verify(poo["hash"] + timestamp, poo["signature"]),
        por_signature_valid=signer.verify(por["hash"], por["signature"]),
        merkle_valid=compute_merkle_root(leaves) == merkle_root,
        temporal_precedence=temporal_precedence,
        verdict_consistent=overall_result == overall_verdict(all_satisfied, len(graph.edges)),
        state_hash_valid=state_hash_valid,
    )
