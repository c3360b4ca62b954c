"""
Restore engine for the Pinwatch daemon.

Reconciliation of one tracked file: wait out the writer, read the document,
compare the protected keys against the snapshot and write the snapshot values
back if any of them drifted. A failed read or parse is not an error; the next
change event for the file will try again.
"""

import copy
import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

from ..document import json_equal, load_document, write_document
from ..errors import MalformedDocumentError, UnreadableDocumentError
from .types import ReconcileResult, RestoreOutcome

logger = logging.getLogger(__name__)


class RestoreEngine:
    """Puts drifted protected keys back to their snapshot values."""

    def __init__(self, protected_keys: Iterable[str], grace_period_seconds: float = 0.05,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the restore engine.

        Args:
            protected_keys: Key names to enforce
            grace_period_seconds: Delay before reading a file after it changed
            sleep: Sleep function (injectable for tests)
        """
        self.protected_keys = list(protected_keys)
        self.grace_period_seconds = grace_period_seconds
        self._sleep = sleep

    def reconcile(self, path: Path, snapshot_entry: Optional[Mapping[str, Any]]) -> ReconcileResult:
        """Reconcile *path* against its snapshot entry."""
        path = Path(path)

        if self.grace_period_seconds > 0:
            self._sleep(self.grace_period_seconds)

        try:
            document = load_document(path)
        except UnreadableDocumentError as e:
            logger.debug(f"Skipping unreadable file: {e}")
            return ReconcileResult(path, RestoreOutcome.UNREADABLE)
        except MalformedDocumentError as e:
            logger.debug(f"Skipping malformed file: {e}")
            return ReconcileResult(path, RestoreOutcome.MALFORMED)

        if snapshot_entry is None:
            logger.debug(f"No snapshot for {path}, nothing to enforce")
            return ReconcileResult(path, RestoreOutcome.NO_SNAPSHOT)

        restored = self.apply_snapshot(document, snapshot_entry)
        if not restored:
            return ReconcileResult(path, RestoreOutcome.UNCHANGED)

        try:
            write_document(path, document)
        except OSError as e:
            logger.warning(f"Failed to restore {path}: {e}")
            return ReconcileResult(path, RestoreOutcome.WRITE_FAILED, restored)

        logger.info(f"Restored {', '.join(restored)} in {path}")
        return ReconcileResult(path, RestoreOutcome.RESTORED, restored)

    def apply_snapshot(self, document: dict, snapshot_entry: Mapping[str, Any]) -> list:
        """
        Overwrite drifted protected keys in *document* with snapshot values.

        Only keys present on both sides are considered; nothing is added.

        Returns:
            Names of the keys that were changed
        """
        restored = []
        for key in self.protected_keys:
            if key not in snapshot_entry or key not in document:
                continue
            if json_equal(document[key], snapshot_entry[key]):
                continue
            document[key] = copy.deepcopy(snapshot_entry[key])
            restored.append(key)
        return restored
