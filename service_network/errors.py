"""Topology synthesis error types."""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Standardized topology synthesis error codes."""

    CIDR_OVERFLOW = "CIDR_OVERFLOW"
    ALREADY_PROVISIONED = "ALREADY_PROVISIONED"
    CONFIGURATION_MISMATCH = "CONFIGURATION_MISMATCH"
    DEPENDENCY_UNRESOLVED = "DEPENDENCY_UNRESOLVED"
    INVALID_INPUT = "INVALID_INPUT"


class TopologyError(Exception):
    """Error raised while building the resource graph.

    Every subclass is detected at construction time and aborts synthesis,
    so a partially built graph is never handed to the provisioner.
    """

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def is_code(self, code: ErrorCode) -> bool:
        """Check if this error matches a specific code."""
        return self.code == code


class CidrOverflow(TopologyError, ValueError):
    """Requested subdivision does not fit in the parent block."""

    code = ErrorCode.CIDR_OVERFLOW

    def __init__(self, parent: str, new_prefix_bits: int, index: int, reason: str) -> None:
        super().__init__(
            f"Cannot take subnet {index} of {parent} with {new_prefix_bits} new bits: {reason}"
        )
        self.parent = parent
        self.new_prefix_bits = new_prefix_bits
        self.index = index


class AlreadyProvisioned(TopologyError):
    """A resource with the same name is already part of the graph."""

    code = ErrorCode.ALREADY_PROVISIONED

    def __init__(self, name: str) -> None:
        super().__init__(f"Resource already provisioned: {name}")
        self.name = name


class ConfigurationMismatch(TopologyError, ValueError):
    """Two configuration values that must agree do not."""

    code = ErrorCode.CONFIGURATION_MISMATCH

    def __init__(self, what: str, expected: object, actual: object) -> None:
        super().__init__(f"{what} mismatch: expected {expected!r}, got {actual!r}")
        self.what = what
        self.expected = expected
        self.actual = actual


class DependencyUnresolved(TopologyError):
    """A resource references something its owner has not created."""

    code = ErrorCode.DEPENDENCY_UNRESOLVED


class InvalidTopologyInput(TopologyError, ValueError):
    """An input value is outside its allowed range."""

    code = ErrorCode.INVALID_INPUT
