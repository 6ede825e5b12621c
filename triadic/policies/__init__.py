"""Declared, hash-sealed rule policies.

Policies are YAML declarations under ``data/``. Each is sealed once at
load: the SHA-256 hash covers the name, declaration time and every
constraint's rendered rule text, and the hash is HMAC-signed.
"""

from triadic.policies.loader import POLICIES_DIR, PolicyLoader, load_policy
from triadic.policies.models import Constraint, Policy, Severity, compute_policy_hash

__all__ = [
    "Constraint",
    "Policy",
    "Severity",
    "compute_policy_hash",
    "POLICIES_DIR",
    "PolicyLoader",
    "load_policy",
]
