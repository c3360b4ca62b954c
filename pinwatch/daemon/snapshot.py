"""
Snapshot store for the Pinwatch daemon.

The snapshot is captured once, before any change events are processed, and
is read-only afterwards. Restores always go back to these values, never to a
more recent state of the file.
"""

import copy
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ..document import load_document, normalize_path
from ..errors import DocumentError

logger = logging.getLogger(__name__)


class SnapshotStore(Mapping):
    """Frozen mapping of tracked path -> {protected key -> captured value}."""

    def __init__(self, entries: Dict[Path, Dict[str, Any]]):
        self._entries = MappingProxyType({
            normalize_path(path): MappingProxyType(copy.deepcopy(dict(values)))
            for path, values in entries.items()
        })

    def __getitem__(self, path) -> Mapping[str, Any]:
        return self._entries[normalize_path(path)]

    def __iter__(self) -> Iterator[Path]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path) -> bool:
        try:
            return normalize_path(path) in self._entries
        except TypeError:
            return False

    def get(self, path, default=None) -> Optional[Mapping[str, Any]]:
        return self._entries.get(normalize_path(path), default)

    @property
    def paths(self) -> List[Path]:
        return list(self._entries)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Plain-dict copy for display and serialization."""
        return {str(path): copy.deepcopy(dict(values)) for path, values in self._entries.items()}


def capture(tracked_files: Iterable[Path], protected_keys: Iterable[str]) -> SnapshotStore:
    """
    Capture the current protected key values of each tracked file.

    Files that cannot be read or are not JSON objects are left out of the
    snapshot and will never be enforced. Only keys present in a document
    are captured for it.

    Args:
        tracked_files: Absolute paths of the tracked files
        protected_keys: Key names to capture

    Returns:
        SnapshotStore with one entry per successfully parsed file
    """
    keys = list(protected_keys)
    entries: Dict[Path, Dict[str, Any]] = {}

    for path in tracked_files:
        path = normalize_path(path)
        try:
            document = load_document(path)
        except DocumentError as e:
            logger.warning(f"Not monitoring {path}: {e}")
            continue

        entries[path] = {key: copy.deepcopy(document[key]) for key in keys if key in document}
        logger.debug(f"Captured {len(entries[path])} protected key(s) from {path}")

    logger.info(f"Captured snapshot for {len(entries)} file(s)")
    return SnapshotStore(entries)
