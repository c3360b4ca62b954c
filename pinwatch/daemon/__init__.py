"""
Pinwatch Daemon module for the watch-and-restore loop.

This module provides the PinwatchDaemon class and related functionality for:
- Capturing a frozen snapshot of protected keys
- Watching tracked files' directories for modification
- Restoring drifted protected keys while leaving other keys alone
"""

from .types import ChangeEvent, DaemonConfig, DaemonState, ReconcileResult, RestoreOutcome
from .snapshot import SnapshotStore, capture
from .watcher import ChangeSource, watched_directories
from .restore import RestoreEngine
from .loop import PinwatchDaemon

__all__ = [
    'PinwatchDaemon',
    'ChangeEvent',
    'ChangeSource',
    'DaemonConfig',
    'DaemonState',
    'ReconcileResult',
    'RestoreEngine',
    'RestoreOutcome',
    'SnapshotStore',
    'capture',
    'watched_directories',
]
