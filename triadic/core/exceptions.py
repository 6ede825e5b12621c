"""Error taxonomy for the verification core.

A FAILED verification bundle is a normal result and is never raised.
These exceptions cover requests that cannot be processed at all.
"""


class TriadicError(Exception):
    """Base class for all verification core errors."""


class InvalidInputError(TriadicError, ValueError):
    """An input record field is missing, malformed or out of range.

    Attributes:
        field: Name of the offending input field
        reason: Human readable description of the problem
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid input field '{field}': {reason}")


class PolicyIntegrityError(TriadicError):
    """A policy declaration cannot be loaded, hashed or sealed.

    Only raised while loading policies or constructing engines.
    """


class UnknownEngineError(TriadicError, KeyError):
    """No decision engine is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown decision engine: {self.name}"
