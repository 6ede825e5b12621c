"""YAML policy loader with integrity sealing."""

from pathlib import Path
from typing import Any

import yaml

from triadic.core.config import get_settings
from triadic.core.crypto import Signer, default_signer
from triadic.core.exceptions import PolicyIntegrityError
from triadic.core.logging import get_logger
from triadic.policies.models import Policy

logger = get_logger(__name__)

# Packaged policy declarations
POLICIES_DIR = Path(__file__).parent / "data"


def resolve_policies_dir(policies_dir: Path | None = None) -> Path:
    """Pick the explicit directory, the configured override or the packaged one."""
    if policies_dir is not None:
        return policies_dir
    return get_settings().policies_dir or POLICIES_DIR


def load_policy(
    filename: str,
    policies_dir: Path | None = None,
    signer: Signer | None = None,
) -> Policy:
    """Load a policy YAML file and seal it.

    Args:
        filename: Name of the policy file (e.g., "medical.yaml")
        policies_dir: Directory containing policies (defaults to the packaged set)
        signer: Signer for the authority signature (defaults to settings)

    Returns:
        Sealed Policy with hash and authority signature

    Raises:
        PolicyIntegrityError: If the file is missing, unparsable or malformed
    """
    filepath = resolve_policies_dir(policies_dir) / filename

    if not filepath.exists():
        raise PolicyIntegrityError(f"Policy not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise PolicyIntegrityError(f"Policy {filename} is not valid YAML: {exc}") from exc

    policy = Policy.from_dict(data, signer=signer or default_signer())
    logger.info(
        f"Loaded policy '{policy.name}' v{policy.version} "
        f"({len(policy.constraints)} constraints, hash={policy.policy_hash[:12]})"
    )
    return policy


class PolicyLoader:
    """Stateful policy loader with caching."""

    def __init__(self, policies_dir: Path | None = None, signer: Signer | None = None) -> None:
        """Initialize loader.

        Args:
            policies_dir: Directory containing policies
            signer: Signer used to seal loaded policies
        """
        self.policies_dir = resolve_policies_dir(policies_dir)
        self.signer = signer
        self._cache: dict[str, Policy] = {}

    def load(self, filename: str, use_cache: bool = True) -> Policy:
        """Load a policy with optional caching.

        Args:
            filename: Policy filename
            use_cache: Whether to use cached version if available

        Returns:
            Sealed Policy
        """
        if use_cache and filename in self._cache:
            return self._cache[filename]

        policy = load_policy(filename, self.policies_dir, self.signer)
        self._cache[filename] = policy

        return policy

    def clear_cache(self) -> None:
        """Clear the policy cache."""
        self._cache.clear()

    def list_policies(self) -> list[str]:
        """List available policy files.

        Returns:
            Sorted list of policy filenames
        """
        return sorted(f.name for f in self.policies_dir.glob("*.yaml"))

    def get_policy_info(self, filename: str) -> dict[str, Any]:
        """Get metadata about a policy.

        Args:
            filename: Policy filename

        Returns:
            Dict with name, version, authority, declaration time, hash
        """
        policy = self.load(filename)

        return {
            "filename": filename,
            "name": policy.name,
            "version": policy.version,
            "authority": policy.authority,
            "declaration_timestamp": policy.declaration_timestamp,
            "constraint_count": len(policy.constraints),
            "hash": policy.policy_hash,
        }
