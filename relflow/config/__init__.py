"""Configuration management using environment variables."""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "RELFLOW_"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value: Union[str, bool, None]) -> bool:
    """Parse boolean value from various formats."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on", "enabled")
    return bool(value)


def _getenv(key: str, default: str = "") -> str:
    """Get a ``RELFLOW_`` environment variable with default."""
    return os.getenv(ENV_PREFIX + key, default)


def _getenv_bool(key: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + key)
    if value is None:
        return default
    return _parse_bool(value)


def _getenv_int(key: str, default: int) -> int:
    """Get integer environment variable with validation.

    Args:
        key: Variable name without the ``RELFLOW_`` prefix
        default: Default value if not set

    Returns:
        Parsed integer value

    Raises:
        ValueError: If value cannot be parsed as integer
    """
    value = os.getenv(ENV_PREFIX + key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid integer value for {ENV_PREFIX}{key}='{value}'. "
            f"Expected integer, got: {value}"
        ) from e


def load_env_files(paths: Optional[Sequence[Path]] = None) -> Optional[Path]:
    """Load the first ``.env`` file found; existing variables are not overridden.

    Returns:
        The file that was loaded, or None
    """
    candidates = paths if paths is not None else [Path(".env"), Path.home() / ".env"]
    for env_path in candidates:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded environment from {env_path}")
            return env_path
    return None


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # ========== Logging ==========
    log_level: str = field(default_factory=lambda: _getenv("LOG_LEVEL", "INFO").upper())
    log_format: str = field(
        default_factory=lambda: _getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    log_dir: Optional[Path] = field(default_factory=lambda: Path(_getenv("LOG_DIR")) if _getenv("LOG_DIR") else None)
    verbose: bool = field(default_factory=lambda: _getenv_bool("VERBOSE", False))

    # ========== Execution ==========
    dry_run: bool = field(default_factory=lambda: _getenv_bool("DRY_RUN", False))
    enable_rollback: bool = field(default_factory=lambda: _getenv_bool("ENABLE_ROLLBACK", True))
    base_path: Optional[str] = field(default_factory=lambda: _getenv("BASE_PATH") or None)

    # ========== UI Settings ==========
    rich_output: bool = field(default_factory=lambda: _getenv_bool("RICH_OUTPUT", True))
    show_graph_statistics: bool = field(default_factory=lambda: _getenv_bool("SHOW_GRAPH_STATISTICS", False))
    console_width: int = field(default_factory=lambda: _getenv_int("CONSOLE_WIDTH", 0))

    def __post_init__(self):
        """Normalize and validate values."""
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{self.log_level}'. Expected one of: {', '.join(_LOG_LEVELS)}"
            )
        if self.console_width < 0:
            raise ValueError(f"console_width must be >= 0, got {self.console_width}")

    @property
    def log_level_value(self) -> int:
        """Numeric logging level; verbose forces DEBUG."""
        if self.verbose:
            return logging.DEBUG
        return getattr(logging, self.log_level)


_config_instance: Optional[Config] = None
_config_lock = threading.Lock()


def get_config() -> Config:
    """Get global config instance (singleton pattern, thread-safe)."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            # Double-check pattern to prevent race conditions
            if _config_instance is None:
                load_env_files()
                _config_instance = Config()
    return _config_instance


def reset_config() -> None:
    """Drop the cached config so the next ``get_config()`` re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = ["Config", "get_config", "load_env_files", "reset_config"]
