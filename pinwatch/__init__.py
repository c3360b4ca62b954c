"""
Pinwatch - keep selected keys of JSON state files pinned.

Pinwatch captures the values of a fixed set of protected keys from one or
more JSON documents at startup, then watches the containing directories and
restores any of those keys that another process rewrites. Everything else in
the documents is left alone.
"""

from .catalog import DEFAULT_PROTECTED_KEYS, ProtectedKey, ValueRule
from .settings import PinwatchSettings, get_settings, reload_settings

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_PROTECTED_KEYS",
    "PinwatchSettings",
    "ProtectedKey",
    "ValueRule",
    "get_settings",
    "reload_settings",
]
