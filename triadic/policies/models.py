"""Policy and constraint data models."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable

from triadic.core.crypto import Signer, canonical_json, sha256_hex
from triadic.core.exceptions import PolicyIntegrityError
from triadic.utils.time import format_declaration_time, parse_timestamp, utc_now


class Severity(str, Enum):
    """Constraint severity."""
    MANDATORY = "mandatory"  # gates the PoI verdict
    WARNING = "warning"  # reported with a triggered flag only


@dataclass(frozen=True)
class Constraint:
    """A single declared constraint.

    The rule text is a template whose placeholders are filled from
    ``params``, so the thresholds the engines compare against are the
    same values that go into the policy hash.
    """
    id: str
    name: str
    rule_template: str
    severity: Severity
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def rule(self) -> str:
        """Rule text with thresholds filled in."""
        return self.rule_template.format(**self.params)

    @property
    def label(self) -> str:
        return f"{self.id}: {self.name}"

    @property
    def is_mandatory(self) -> bool:
        return self.severity == Severity.MANDATORY

    def param(self, key: str) -> Any:
        """Get a threshold parameter, failing loudly if undeclared."""
        try:
            return self.params[key]
        except KeyError:
            raise PolicyIntegrityError(
                f"Constraint {self.id} declares no parameter '{key}'"
            ) from None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rule": self.rule,
            "severity": self.severity.value,
            "params": dict(self.params),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Constraint":
        """Create Constraint from dictionary representation."""
        try:
            return cls(
                id=str(data["id"]),
                name=str(data["name"]),
                rule_template=str(data["rule"]),
                severity=Severity(data.get("severity", Severity.MANDATORY.value)),
                params=data.get("params") or {},
            )
        except KeyError as exc:
            raise PolicyIntegrityError(f"Constraint is missing required key {exc}") from exc
        except ValueError as exc:
            raise PolicyIntegrityError(
                f"Constraint {data.get('id', '?')} has invalid severity: {exc}"
            ) from exc


def compute_policy_hash(
    name: str,
    declaration_timestamp: str,
    constraints: Iterable[Constraint],
) -> str:
    """Compute SHA-256 hash over the policy's identifying content.

    Args:
        name: Policy name
        declaration_timestamp: ISO 8601 declaration time
        constraints: Ordered constraints; each contributes id + rule text

    Returns:
        SHA256 hex digest
    """
    content = {
        "name": name,
        "declaration_timestamp": declaration_timestamp,
        "constraints": [c.id + c.rule for c in constraints],
    }
    return sha256_hex(canonical_json(content))


@dataclass(frozen=True)
class Policy:
    """A declared, sealed rule policy.

    Instances are only created through :meth:`declare` (or
    :meth:`from_dict`), which computes ``policy_hash`` and
    ``authority_signature`` exactly once.
    """
    name: str
    authority: str
    version: str
    declaration_timestamp: str
    constraints: tuple[Constraint, ...]
    policy_hash: str
    authority_signature: str

    @classmethod
    def declare(
        cls,
        name: str,
        authority: str,
        version: str,
        declaration_timestamp: str,
        constraints: Iterable[Constraint],
        signer: Signer,
        now: Callable[[], datetime] = utc_now,
    ) -> "Policy":
        """Validate, hash and sign a policy declaration.

        Args:
            name: Policy name
            authority: Declaring authority
            version: Policy version string
            declaration_timestamp: ISO 8601 UTC declaration time
            constraints: Ordered constraint list
            signer: Signer for the authority signature
            now: Clock used to reject declarations dated in the future

        Returns:
            Sealed Policy

        Raises:
            PolicyIntegrityError: If the declaration is malformed
        """
        constraints = tuple(constraints)
        if not name:
            raise PolicyIntegrityError("Policy name must not be empty")
        if not constraints:
            raise PolicyIntegrityError(f"Policy '{name}' declares no constraints")

        seen: set[str] = set()
        for constraint in constraints:
            if constraint.id in seen:
                raise PolicyIntegrityError(
                    f"Policy '{name}' declares constraint {constraint.id} twice"
                )
            seen.add(constraint.id)
            try:
                constraint.rule
            except (KeyError, IndexError, ValueError) as exc:
                raise PolicyIntegrityError(
                    f"Constraint {constraint.id} rule text cannot be rendered: {exc!r}"
                ) from exc

        try:
            declared_at = parse_timestamp(declaration_timestamp)
        except (TypeError, ValueError) as exc:
            raise PolicyIntegrityError(
                f"Policy '{name}' has invalid declaration timestamp: {declaration_timestamp!r}"
            ) from exc
        if declared_at > now():
            raise PolicyIntegrityError(
                f"Policy '{name}' is declared in the future ({declaration_timestamp})"
            )

        policy_hash = compute_policy_hash(name, declaration_timestamp, constraints)
        return cls(
            name=name,
            authority=authority,
            version=version,
            declaration_timestamp=declaration_timestamp,
            constraints=constraints,
            policy_hash=policy_hash,
            authority_signature=signer.sign(policy_hash),
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        signer: Signer,
        now: Callable[[], datetime] = utc_now,
    ) -> "Policy":
        """Create a sealed Policy from its declaration mapping."""
        if not isinstance(data, Mapping):
            raise PolicyIntegrityError("Policy declaration must be a mapping")

        missing = [
            key
            for key in ("name", "authority", "version", "declaration_timestamp", "constraints")
            if key not in data
        ]
        if missing:
            raise PolicyIntegrityError(f"Policy declaration missing keys: {', '.join(missing)}")

        declared = data["declaration_timestamp"]
        # Unquoted YAML timestamps arrive as datetimes
        if isinstance(declared, datetime):
            declared = format_declaration_time(declared)

        return cls.declare(
            name=str(data["name"]),
            authority=str(data["authority"]),
            version=str(data["version"]),
            declaration_timestamp=str(declared),
            constraints=[Constraint.from_dict(c) for c in data["constraints"] or []],
            signer=signer,
            now=now,
        )

    def constraint(self, constraint_id: str) -> Constraint:
        """Look up a constraint by id."""
        for constraint in self.constraints:
            if constraint.id == constraint_id:
                return constraint
        raise PolicyIntegrityError(
            f"Policy '{self.name}' declares no constraint {constraint_id}"
        )

    def param(self, constraint_id: str, key: str) -> Any:
        """Get a threshold parameter of a constraint."""
        return self.constraint(constraint_id).param(key)

    def has_constraint(self, constraint_id: str) -> bool:
        return any(c.id == constraint_id for c in self.constraints)

    @property
    def mandatory_constraints(self) -> list[Constraint]:
        return [c for c in self.constraints if c.is_mandatory]

    def verify_signature(self, signer: Signer) -> bool:
        """Check the authority signature and that the hash matches content."""
        expected = compute_policy_hash(self.name, self.declaration_timestamp, self.constraints)
        return expected == self.policy_hash and signer.verify(self.policy_hash, self.authority_signature)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "authority": self.authority,
            "version": self.version,
            "declaration_timestamp": self.declaration_timestamp,
            "constraints": [c.to_dict() for c in self.constraints],
            "policy_hash": self.policy_hash,
            "authority_signature": self.authority_signature,
        }
