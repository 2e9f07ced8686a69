"""Synchronous entry point for running a command from a CLI handler."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from rich.console import Console

from .config import Config, get_config
from .errors import CommandExecutionError
from .orchestration.registry import CommandRegistry, ServiceRegistry
from .orchestration.workflow_engine.core import WorkflowOrchestrator
from .orchestration.workflow_engine.executors import ExecutionResult
from .orchestration.workflow_engine.tasks import Command
from .ui.console import ConsoleManager
from .utils.logging_factory import LoggingFactory

logger = logging.getLogger(__name__)


def configure_logging(config: Config, console: ConsoleManager) -> None:
    """Initialize logging once, routing console output through ``console``."""
    LoggingFactory.initialize(
        log_dir=config.log_dir,
        level=config.log_level_value,
        format_string=config.log_format,
        handlers=[console.create_log_handler()],
    )
    if config.verbose:
        LoggingFactory.configure_verbose(True)


def run(
    command: Union[Command, str],
    command_config: Any = None,
    initial_data: Optional[Mapping] = None,
    service_registry: Optional[ServiceRegistry] = None,
    command_registry: Optional[CommandRegistry] = None,
    config: Optional[Config] = None,
    console: Optional[ConsoleManager] = None,
) -> ExecutionResult:
    """Run a command and render its result.

    Args:
        command: Command instance or name registered in ``command_registry``
        command_config: Configuration handed to the command
        initial_data: Optional initial context data
        service_registry: Services the command may require
        command_registry: Commands addressable by name
        config: Application config; defaults to ``get_config()``
        console: Output manager; built from ``config`` when omitted

    Returns:
        ExecutionResult of the run

    Raises:
        CommandExecutionError: If the command could not run
    """
    config = config or get_config()
    console = console or ConsoleManager(
        verbose=config.verbose,
        rich_output=config.rich_output,
        console=Console(stderr=True, width=config.console_width or None) if config.rich_output else None,
    )
    configure_logging(config, console)

    orchestrator = WorkflowOrchestrator.from_config(config, service_registry, command_registry)
    try:
        result = orchestrator.run_command(command, command_config, initial_data)
    except CommandExecutionError as e:
        console.print_error(e.message)
        raise

    name = command if isinstance(command, str) else command.name
    console.render_execution_result(result, title=name)
    if not result.success:
        logger.debug(f"Metrics: {orchestrator.get_metrics()}")
    return result
