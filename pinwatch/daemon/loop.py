"""
Pinwatch Daemon Loop - Main daemon implementation for watch-and-restore.

This module implements the PinwatchDaemon class which provides:
- A one-time snapshot of protected keys taken before watching starts
- Directory watching for the tracked files
- A single drain/idle loop that reconciles changed files one at a time
"""

import logging
import signal
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..document import normalize_path
from ..errors import ConfigurationError
from .restore import RestoreEngine
from .snapshot import SnapshotStore, capture
from .types import ChangeEvent, DaemonConfig, DaemonState, ReconcileResult, RestoreOutcome
from .watcher import MODIFY, ChangeSource


logger = logging.getLogger(__name__)


class PinwatchDaemon:
    """
    Long-running monitor that keeps protected keys at their snapshot values.

    All reads and writes of tracked files happen on the loop thread. The
    change source's observer thread only produces events; the snapshot is
    read-only once captured.
    """

    def __init__(self, config: DaemonConfig,
                 snapshot: Optional[SnapshotStore] = None,
                 change_source: Optional[ChangeSource] = None,
                 engine: Optional[RestoreEngine] = None):
        """
        Initialize the Pinwatch daemon.

        Args:
            config: DaemonConfig with daemon settings
            snapshot: Pre-captured snapshot; captured on start() when omitted
            change_source: Event source; watches the tracked files' directories when omitted
            engine: Restore engine; built from config when omitted
        """
        config_issues = config.validate()
        if config_issues:
            raise ConfigurationError(f"Invalid daemon configuration: {'; '.join(config_issues)}")

        self.config = config
        self.state = DaemonState.STOPPED
        self.tracked_files: List[Path] = [normalize_path(p) for p in config.tracked_files]
        self._tracked_names = {path.name for path in self.tracked_files}

        self.snapshot = snapshot
        self.change_source = change_source or ChangeSource(self.tracked_files)
        self.engine = engine or RestoreEngine(config.protected_keys, config.grace_period_seconds)

        # Control flags
        self._stop_event = threading.Event()
        self._main_loop_thread: Optional[threading.Thread] = None

        self.metrics = {
            "events_received": 0,
            "reconciliations": 0,
            "restores": 0,
            "reconcile_errors": 0,
            "uptime_start": datetime.now(),
        }

        logger.info(f"PinwatchDaemon initialized for {len(self.tracked_files)} tracked file(s)")

    def start(self) -> None:
        """Capture the snapshot, start watching and start the loop thread."""
        if self.state != DaemonState.STOPPED:
            raise RuntimeError(f"Cannot start daemon in state: {self.state}")

        logger.info("Starting Pinwatch daemon...")
        self.state = DaemonState.STARTING

        try:
            if self.snapshot is None:
                self.snapshot = capture(self.tracked_files, self.config.protected_keys)

            self.change_source.start()

            self._stop_event.clear()
            self._main_loop_thread = threading.Thread(
                target=self._main_loop,
                name="PinwatchDaemon-MainLoop",
                daemon=False,
            )
            self._main_loop_thread.start()

            self.state = DaemonState.RUNNING
            logger.info("Pinwatch daemon started successfully")

        except Exception as e:
            logger.error(f"Failed to start daemon: {e}")
            self.change_source.stop()
            self.state = DaemonState.ERROR
            raise

    def stop(self, timeout: float = 30) -> None:
        """Stop the daemon."""
        if self.state in (DaemonState.STOPPED, DaemonState.STOPPING):
            return

        logger.info("Stopping Pinwatch daemon...")
        self.state = DaemonState.STOPPING

        self._stop_event.set()
        self.change_source.stop()

        if self._main_loop_thread and self._main_loop_thread.is_alive():
            self._main_loop_thread.join(timeout=timeout)
            if self._main_loop_thread.is_alive():
                logger.warning("Main loop thread did not stop within timeout")

        self.state = DaemonState.STOPPED
        logger.info("Pinwatch daemon stopped")

    def run_forever(self) -> None:
        """Start the daemon and block until it is stopped or interrupted."""
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

        self.start()
        try:
            while not self._stop_event.wait(timeout=1):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.stop()

    def drain(self) -> List[ReconcileResult]:
        """Process every pending change event and return the reconciliation results."""
        results: List[ReconcileResult] = []
        while True:
            event = self.change_source.poll()
            if event is None:
                return results
            self.metrics["events_received"] += 1
            results.extend(self.handle_event(event))

    def handle_event(self, event: ChangeEvent) -> List[ReconcileResult]:
        """Reconcile each tracked file an event refers to."""
        if event.kind != MODIFY:
            return []

        results = []
        for path in event.paths:
            if path.name not in self._tracked_names:
                continue
            result = self._reconcile(path)
            if result is not None:
                results.append(result)
        return results

    def get_status(self) -> Dict[str, Any]:
        """Get daemon status."""
        uptime = datetime.now() - self.metrics["uptime_start"]
        metrics = {key: value for key, value in self.metrics.items() if key != "uptime_start"}

        return {
            "state": self.state.value,
            "uptime_seconds": int(uptime.total_seconds()),
            "tracked_files": [str(p) for p in self.tracked_files],
            "snapshotted_files": len(self.snapshot) if self.snapshot is not None else 0,
            "watched_directories": [str(d) for d in self.change_source.directories],
            "protected_keys": list(self.config.protected_keys),
            "metrics": metrics,
        }

    def _reconcile(self, path: Path) -> Optional[ReconcileResult]:
        entry = self.snapshot.get(path) if self.snapshot is not None else None
        self.metrics["reconciliations"] += 1
        try:
            result = self.engine.reconcile(path, entry)
        except Exception:
            logger.exception(f"Reconciliation failed for {path}")
            self.metrics["reconcile_errors"] += 1
            return None

        if result.outcome == RestoreOutcome.RESTORED:
            self.metrics["restores"] += 1
        return result

    def _main_loop(self) -> None:
        """Main daemon loop: drain, then idle."""
        logger.info("Daemon main loop started")

        while not self._stop_event.is_set():
            try:
                self.drain()
            except Exception:
                logger.exception("Error in daemon main loop")

            self._stop_event.wait(timeout=self.config.idle_interval_seconds)

        logger.info("Daemon main loop stopped")

    def _signal_handler(self, signum, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        self._stop_event.set()
