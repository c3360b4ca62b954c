"""
Change source for the Pinwatch daemon.

Watches the parent directory of every tracked file with a watchdog observer.
The observer thread only ever puts events on a queue; the monitor loop is the
single consumer and the only code that touches tracked files.
"""

import logging
import queue
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..document import normalize_path
from ..errors import WatchRegistrationError
from .types import ChangeEvent

logger = logging.getLogger(__name__)

MODIFY = "modify"


def watched_directories(tracked_files: Iterable[Path]) -> List[Path]:
    """Unique parent directories of the tracked files, in first-seen order."""
    directories: List[Path] = []
    seen = set()
    for path in tracked_files:
        parent = normalize_path(path).parent
        if parent not in seen:
            seen.add(parent)
            directories.append(parent)
    return directories


class PinwatchEventHandler(FileSystemEventHandler):
    """Forwards modify-class file events to a queue."""

    def __init__(self, events: "queue.Queue[ChangeEvent]"):
        super().__init__()
        self.events = events

    def on_modified(self, event):
        """Handle file modification events."""
        if event.is_directory:
            return
        self.events.put(ChangeEvent(MODIFY, (normalize_path(event.src_path),)))

    def on_moved(self, event):
        """A rename onto a tracked file rewrites it just like an in-place write."""
        if event.is_directory:
            return
        self.events.put(ChangeEvent(MODIFY, (normalize_path(event.src_path), normalize_path(event.dest_path))))


class ChangeSource:
    """Directory-level filesystem notifier feeding the monitor loop."""

    def __init__(self, tracked_files: Iterable[Path],
                 observer_factory: Callable[[], Observer] = Observer):
        self.directories = watched_directories(tracked_files)
        self.events: "queue.Queue[ChangeEvent]" = queue.Queue()
        self.handler = PinwatchEventHandler(self.events)
        self._observer_factory = observer_factory
        self._observer = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Schedule one non-recursive watch per directory and start the observer.

        Raises:
            WatchRegistrationError: a directory could not be watched
        """
        if self._observer is not None:
            return

        observer = self._observer_factory()
        for directory in self.directories:
            try:
                observer.schedule(self.handler, str(directory), recursive=False)
            except Exception as e:
                logger.error(f"Cannot watch {directory}: {e}")
                self._abandon(observer)
                raise WatchRegistrationError(f"Cannot watch directory {directory}: {e}") from e
            logger.debug(f"Watching directory: {directory}")

        try:
            observer.start()
        except Exception as e:
            logger.error(f"Cannot start file watching: {e}")
            self._abandon(observer)
            raise WatchRegistrationError(f"Cannot start file watching: {e}") from e

        self._observer = observer
        logger.info(f"Watching {len(self.directories)} director{'y' if len(self.directories) == 1 else 'ies'}")

    def _abandon(self, observer, timeout: float = 5) -> None:
        """Tear down a partially started observer so no directory stays watched."""
        observer.unschedule_all()
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=timeout)
        while self.poll() is not None:
            pass

    def poll(self) -> Optional[ChangeEvent]:
        """Return the next pending event without blocking, or None."""
        try:
            return self.events.get_nowait()
        except queue.Empty:
            return None

    def stop(self, timeout: float = 5) -> None:
        """Stop file system watching."""
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=timeout)
        logger.info("File system watching stopped")
