from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

Json = Dict[str, Any]


@dataclass
class DistributionError(RuntimeError):
    """Canonical error type for airdrop computation failures."""

    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class PreconditionError(DistributionError):
    """Inputs make the computation undefined (e.g. a division by zero)."""


class InvariantViolation(DistributionError):
    """The computation disagrees with its own audit trail. Never recoverable."""


class AddressConversionError(DistributionError):
    pass


class ExportError(DistributionError):
    """A chain export file is malformed."""
