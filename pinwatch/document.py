"""JSON document handling for tracked files.

Tracked files are JSON objects. This module reads them, compares JSON values
structurally and writes documents back in place without ever exposing a
half-written file to readers.

Structural comparison differs from ``==`` on decoded Python values in one
place: ``True == 1`` in Python, but a JSON boolean is never equal to a JSON
number. Numbers compare by value, so ``1``, ``1.0`` and ``1e0`` are equal.
"""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict

from .errors import MalformedDocumentError, UnreadableDocumentError

logger = logging.getLogger(__name__)

JSONDocument = Dict[str, Any]


def normalize_path(path) -> Path:
    """Absolute, lexically normalized form used to key tracked files."""
    if isinstance(path, bytes):
        path = os.fsdecode(path)
    return Path(os.path.abspath(path))


def load_document(path: Path) -> JSONDocument:
    """Read and parse a tracked file.

    Raises:
        UnreadableDocumentError: the file could not be read
        MalformedDocumentError: the content is not a JSON object
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedDocumentError(path, f"not valid UTF-8: {e}") from e
    except OSError as e:
        raise UnreadableDocumentError(path, str(e)) from e

    try:
        data = json.loads(content)
    except ValueError as e:
        raise MalformedDocumentError(path, f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedDocumentError(path, "JSON nested too deeply") from e

    if not isinstance(data, dict):
        raise MalformedDocumentError(path, f"expected a JSON object, got {type(data).__name__}")
    return data


def dump_document(document: JSONDocument) -> str:
    """Serialize a document the stable, human-readable way (2-space indent, key order kept)."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def write_document(path: Path, document: JSONDocument) -> None:
    """Replace *path* with the serialized document.

    The content goes to a temporary file in the same directory which is then
    renamed over the target, so readers see either the old or the new
    document. The target's permission bits are carried over. Symlinks are
    followed: the file they point to is replaced, the link stays a link.
    """
    path = Path(os.path.realpath(path))
    content = dump_document(document)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug(f"Wrote {len(content)} bytes to {path}")


def json_equal(left: Any, right: Any) -> bool:
    """Structural equality of two decoded JSON values."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right

    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)

    if isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            return False
        return all(json_equal(a, b) for a, b in zip(left, right))

    if type(left) is not type(right):
        return False
    return left == right
