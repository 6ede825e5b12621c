"""Triadic verification: PoO, PoR, PoI and the Merkle-anchored bundle."""

from triadic.verification.bundle import (
    FAILED,
    VERIFIED,
    BundleAudit,
    VerificationBundle,
    VerificationPredicate,
    assemble_bundle,
    verify_bundle,
)
from triadic.verification.compliance import (
    TEMPORAL_PRECEDENCE,
    ComplianceChecker,
    ConstraintCheck,
    ConstraintResult,
    PoIResult,
)
from triadic.verification.graph import Edge, GraphBuilder, ReasonGraph, Relation, Vertex, VertexType
from triadic.verification.proofs import ProofOfOperation, ProofOfReason, generate_poo, generate_por

__all__ = [
    "VERIFIED",
    "FAILED",
    "TEMPORAL_PRECEDENCE",
    "BundleAudit",
    "ComplianceChecker",
    "ConstraintCheck",
    "ConstraintResult",
    "Edge",
    "GraphBuilder",
    "PoIResult",
    "ProofOfOperation",
    "ProofOfReason",
    "ReasonGraph",
    "Relation",
    "VerificationBundle",
    "VerificationPredicate",
    "Vertex",
    "VertexType",
    "assemble_bundle",
    "generate_poo",
    "generate_por",
    "verify_bundle",
]
