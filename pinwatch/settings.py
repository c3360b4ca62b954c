"""
Pinwatch Settings - Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .catalog import protected_key_names

# Find project root (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent


class PinwatchSettings(BaseSettings):
    """
    Pinwatch configuration settings.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="PINWATCH_",  # All Pinwatch env vars must start with PINWATCH_
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: PINWATCH_LOG_LEVEL)",
    )

    # Monitor loop timing
    grace_period_ms: int = Field(
        default=50,
        ge=0,
        description="Delay between a change event and reading the file (env: PINWATCH_GRACE_PERIOD_MS)",
    )

    idle_interval_ms: int = Field(
        default=100,
        gt=0,
        description="Sleep between event drain cycles (env: PINWATCH_IDLE_INTERVAL_MS)",
    )

    # What to enforce
    protected_keys: List[str] = Field(
        default_factory=protected_key_names,
        description="JSON keys to pin, as a JSON list (env: PINWATCH_PROTECTED_KEYS)",
    )

    tracked_file_name: str = Field(
        default="storage.json",
        description="File name of the tracked documents (env: PINWATCH_TRACKED_FILE_NAME)",
    )

    locator_patterns: List[str] = Field(
        default_factory=lambda: [
            "*/User/globalStorage/{name}",
            "*/data/User/globalStorage/{name}",
        ],
        description="Globs under each search root; {name} is the tracked file name (env: PINWATCH_LOCATOR_PATTERNS)",
    )

    # Process management
    pid_file: Path | None = Field(
        default=None,
        description="PID file for the background daemon (env: PINWATCH_PID_FILE)",
    )

    @field_validator("protected_keys")
    @classmethod
    def _keys_not_empty(cls, value: List[str]) -> List[str]:
        keys = [key for key in value if key]
        if not keys:
            raise ValueError("protected_keys must name at least one key")
        return keys

    @property
    def grace_period_seconds(self) -> float:
        return self.grace_period_ms / 1000

    @property
    def idle_interval_seconds(self) -> float:
        return self.idle_interval_ms / 1000


# Global settings instance
_settings: PinwatchSettings | None = None


def get_settings() -> PinwatchSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call, then returns cached instance.

    Returns:
        PinwatchSettings instance
    """
    global _settings
    if _settings is None:
        _settings = PinwatchSettings()
    return _settings


def reload_settings() -> PinwatchSettings:
    """
    Reload settings from environment/files.

    Useful for testing or when .env file changes.

    Returns:
        Fresh PinwatchSettings instance
    """
    global _settings
    _settings = PinwatchSettings()
    return _settings
