"""Proof of Operation and Proof of Reason generation."""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from triadic.core.crypto import HASH_ALGORITHM, Signer, canonical_json, sha256_hex
from triadic.verification.graph import ReasonGraph


@dataclass(frozen=True)
class ProofOfOperation:
    """Binds input state, policy name and decision time."""
    hash: str
    timestamp: str
    signature: str
    algorithm: str
    state_reference: str

    def to_dict(self) -> dict[str, str]:
        return {
            "hash": self.hash,
            "timestamp": self.timestamp,
            "signature": self.signature,
            "algorithm": self.algorithm,
            "state_reference": self.state_reference,
        }


@dataclass(frozen=True)
class ProofOfReason:
    """Reason graph with its hash and signature."""
    graph: ReasonGraph
    hash: str
    signature: str

    @property
    def edge_count(self) -> int:
        return len(self.graph.edges)

    def to_dict(self) -> dict[str, Any]:
        return {"graph": self.graph.to_dict(), "hash": self.hash, "signature": self.signature}


def compute_state_hash(data: Mapping[str, Any], policy_name: str, timestamp: str) -> str:
    """SHA-256 over ``{D: input, P: policy name, T: timestamp}``."""
    return sha256_hex(canonical_json({"D": dict(data), "P": policy_name, "T": timestamp}))


def generate_poo(
    data: Mapping[str, Any],
    policy_name: str,
    timestamp: str,
    signer: Signer,
    reference_prefix: str = "PoO",
) -> ProofOfOperation:
    """Generate a Proof of Operation.

    Hash and signature depend only on ``(data, policy_name, timestamp)``;
    the state reference is a fresh identifier per call.

    Args:
        data: Raw input mapping as supplied by the caller
        policy_name: Name of the governing policy
        timestamp: Decision timestamp
        signer: Signer for ``hash + timestamp``
        reference_prefix: Prefix for the state reference

    Returns:
        ProofOfOperation
    """
    state_hash = compute_state_hash(data, policy_name, timestamp)
    return ProofOfOperation(
        hash=state_hash,
        timestamp=timestamp,
        signature=signer.sign(state_hash + timestamp),
        algorithm=HASH_ALGORITHM,
        state_reference=f"{reference_prefix}-{uuid.uuid4().hex[:12]}",
    )


def generate_por(graph: ReasonGraph, signer: Signer) -> ProofOfReason:
    """Hash and sign a reason graph."""
    graph_hash = graph.compute_hash()
    return ProofOfReason(graph=graph, hash=graph_hash, signature=signer.sign(graph_hash))
