"""Locating tracked files at startup.

The locator is deliberately simple: explicitly given paths plus glob patterns
evaluated under a few base directories (the platform's user config and data
directories and the home directory). It runs once; the daemon never looks for
new files afterwards.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import platformdirs

logger = logging.getLogger(__name__)


def default_search_roots() -> List[Path]:
    """Base directories application state usually lives under."""
    roots = [
        Path(platformdirs.user_config_dir()),
        Path(platformdirs.user_data_dir()),
        Path.home(),
    ]
    return _unique(roots)


def locate_tracked_files(
    explicit: Iterable[Path] = (),
    patterns: Sequence[str] = (),
    search_roots: Optional[Sequence[Path]] = None,
    file_name: str = "storage.json",
) -> List[Path]:
    """
    Return the absolute paths of existing tracked files.

    Args:
        explicit: Paths given directly by the user
        patterns: Globs relative to each search root; ``{name}`` is replaced by *file_name*
        search_roots: Directories to evaluate patterns under (default: :func:`default_search_roots`)
        file_name: Name substituted into the patterns

    Returns:
        Deduplicated list of existing files, explicit paths first
    """
    found: List[Path] = []

    for path in explicit:
        path = _absolute(Path(path).expanduser())
        if path.is_file():
            found.append(path)
        else:
            logger.warning(f"Tracked file does not exist: {path}")

    if patterns:
        roots = default_search_roots() if search_roots is None else list(search_roots)
        for root in roots:
            if not root.is_dir():
                continue
            for pattern in patterns:
                for match in sorted(root.glob(pattern.format(name=file_name))):
                    if match.is_file():
                        found.append(_absolute(match))

    found = _unique(found)
    logger.info(f"Located {len(found)} tracked file(s)")
    for path in found:
        logger.debug(f"Tracked file: {path}")
    return found


def _absolute(path: Path) -> Path:
    return Path(os.path.abspath(path))


def _unique(paths: Iterable[Path]) -> List[Path]:
    seen = set()
    result = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            result.append(path)
    return result


def locate_from_settings(settings, explicit: Sequence[Path] = ()) -> List[Path]:
    """Tracked files for a run: the explicit paths if any were given, otherwise the configured patterns."""
    if explicit:
        return locate_tracked_files(explicit=explicit, file_name=settings.tracked_file_name)
    return locate_tracked_files(
        patterns=settings.locator_patterns,
        file_name=settings.tracked_file_name,
    )
