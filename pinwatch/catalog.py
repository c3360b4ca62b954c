"""
Protected key catalog.

The fixed set of keys whose values Pinwatch pins. Each key carries the rule
describing what a freshly generated value for it looks like; the restore path
never generates values, it only puts captured ones back.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class ValueRule(str, Enum):
    """Shape of a generated value for a protected key."""
    UUID4 = "uuid4"               # e.g. 3f1c2a9e-...-4b7d
    SHA256_HEX = "sha256_hex"     # 64 lowercase hex characters


@dataclass(frozen=True)
class ProtectedKey:
    """A key whose value must stay at its captured value."""

    name: str
    rule: ValueRule

    def to_dict(self) -> dict:
        return {"name": self.name, "rule": self.rule.value}


DEFAULT_PROTECTED_KEYS: Tuple[ProtectedKey, ...] = (
    ProtectedKey("telemetry.machineId", ValueRule.SHA256_HEX),
    ProtectedKey("telemetry.devDeviceId", ValueRule.UUID4),
    ProtectedKey("telemetry.macMachineId", ValueRule.SHA256_HEX),
)


def protected_key_names() -> List[str]:
    """Names of the default protected keys, in catalog order."""
    return [key.name for key in DEFAULT_PROTECTED_KEYS]
