"""
Daemon types and enums for the Pinwatch daemon.

This module contains shared types, enums, and data classes used across
the daemon modules to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Dict, Any, Tuple

from ..catalog import protected_key_names


class DaemonState(str, Enum):
    """Daemon operational states."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class RestoreOutcome(str, Enum):
    """Result of reconciling one tracked file."""
    RESTORED = "restored"           # Drifted keys were written back
    UNCHANGED = "unchanged"         # Protected keys already match, no write
    UNREADABLE = "unreadable"       # File missing or locked, retry on next event
    MALFORMED = "malformed"         # Not a JSON object, probably mid-write
    NO_SNAPSHOT = "no_snapshot"     # File was never captured
    WRITE_FAILED = "write_failed"   # Restore write did not go through


@dataclass(frozen=True)
class ChangeEvent:
    """A modify-class filesystem event delivered by the change source."""

    kind: str
    paths: Tuple[Path, ...]


@dataclass
class ReconcileResult:
    """Outcome of a single reconciliation."""

    path: Path
    outcome: RestoreOutcome
    restored_keys: List[str] = field(default_factory=list)

    @property
    def wrote(self) -> bool:
        return self.outcome == RestoreOutcome.RESTORED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": str(self.path),
            "outcome": self.outcome.value,
            "restored_keys": list(self.restored_keys),
        }


@dataclass
class DaemonConfig:
    """Configuration for the Pinwatch daemon."""

    tracked_files: List[Path] = field(default_factory=list)
    protected_keys: List[str] = field(default_factory=protected_key_names)

    # Timing
    grace_period_seconds: float = 0.05
    idle_interval_seconds: float = 0.1

    @classmethod
    def from_settings(cls, settings, tracked_files: List[Path]) -> "DaemonConfig":
        """Build a daemon config from PinwatchSettings and located files."""
        return cls(
            tracked_files=list(tracked_files),
            protected_keys=list(settings.protected_keys),
            grace_period_seconds=settings.grace_period_seconds,
            idle_interval_seconds=settings.idle_interval_seconds,
        )

    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []

        if not self.protected_keys:
            issues.append("protected_keys cannot be empty")

        if self.grace_period_seconds < 0:
            issues.append("grace_period_seconds cannot be negative")

        if self.idle_interval_seconds <= 0:
            issues.append("idle_interval_seconds must be positive")

        for path in self.tracked_files:
            if not Path(path).is_absolute():
                issues.append(f"tracked file path must be absolute: {path}")

        return issues
