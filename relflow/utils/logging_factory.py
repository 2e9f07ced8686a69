"""Centralized logging factory for consistent logger creation across relflow.

The factory configures the root logger once: a console handler (or handlers
supplied by the caller, such as a rich handler), an optional file handler,
and per-component levels for the engine packages.

Usage:
    # Explicit initialization (optional - auto-initializes on first use)
    LoggingFactory.initialize(log_dir=Path("logs"), level=logging.INFO)

    # Get a logger for your module
    logger = LoggingFactory.get_logger(__name__)
    logger.info("Run started")
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "relflow.log"

# Engine components and their level relative to verbosity
COMPONENT_LOGGERS = (
    "relflow.orchestration.workflow_engine.graph",
    "relflow.orchestration.workflow_engine.executors",
    "relflow.orchestration.workflow_engine.core",
    "relflow.orchestration.registry",
)


class LoggingFactory:
    """Factory for creating and configuring loggers consistently.

    Class Attributes:
        _initialized: Flag to ensure single initialization
        _log_dir: Directory for the log file, or None for console-only logging
    """

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[Path] = None,
        level: int = logging.INFO,
        format_string: Optional[str] = None,
        handlers: Optional[Sequence[logging.Handler]] = None,
        component_levels: Optional[Dict[str, int]] = None,
    ) -> None:
        """Initialize the logging system once.

        Subsequent calls are ignored until ``reset()``.

        Args:
            log_dir: Directory for ``relflow.log``. If None, no file is written.
            level: Root logging level
            format_string: Format for the file and default console handlers
            handlers: Console handlers to use instead of a plain StreamHandler
            component_levels: Extra logger-name -> level overrides
        """
        if cls._initialized:
            return

        if format_string is None:
            format_string = DEFAULT_FORMAT

        all_handlers: List[logging.Handler] = list(handlers) if handlers else [logging.StreamHandler()]
        if log_dir is not None:
            cls._log_dir = Path(log_dir)
            cls._log_dir.mkdir(parents=True, exist_ok=True)
            all_handlers.append(logging.FileHandler(cls._log_dir / LOG_FILE_NAME))

        logging.basicConfig(level=level, format=format_string, handlers=all_handlers, force=True)

        for name, component_level in (component_levels or {}).items():
            logging.getLogger(name).setLevel(component_level)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger, initializing the logging system with defaults if needed."""
        if not cls._initialized:
            cls.initialize()

        return logging.getLogger(name)

    @classmethod
    def set_level(cls, name: str, level: int) -> None:
        """Set the logging level for a specific logger.

        Example:
            # Trace graph resolution only
            LoggingFactory.set_level("relflow.orchestration.workflow_engine.graph", logging.DEBUG)
        """
        logging.getLogger(name).setLevel(level)

    @classmethod
    def configure_verbose(cls, verbose: bool = False) -> None:
        """Switch the root, ``relflow`` and engine component loggers between DEBUG and INFO."""
        level = logging.DEBUG if verbose else logging.INFO

        logging.getLogger().setLevel(level)
        logging.getLogger("relflow").setLevel(level)
        for name in COMPONENT_LOGGERS:
            logging.getLogger(name).setLevel(level)

    @classmethod
    def log_file(cls) -> Optional[Path]:
        if cls._log_dir is None:
            return None
        return cls._log_dir / LOG_FILE_NAME

    @classmethod
    def reset(cls) -> None:
        """Forget the previous initialization so ``initialize()`` applies again."""
        cls._initialized = False
        cls._log_dir = None


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for the given module name.

    Delegates to ``LoggingFactory.get_logger()``.
    """
    return LoggingFactory.get_logger(name)
