"""
Command orchestration.

The orchestrator resolves a command's services, builds the workflow context,
runs the lifecycle hooks, orders the command's tasks and delegates their
execution to the executor.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from ...errors import CommandExecutionError, ErrorCode, WorkflowError
from .context import WorkflowContext
from .executors import ExecutionResult, SequentialExecutor
from .graph import GraphResolver
from .tasks import Command, Task

if TYPE_CHECKING:
    from ...config import Config
    from ..registry import CommandRegistry, ServiceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorOptions:
    """Run-wide orchestrator settings."""

    enable_rollback: bool = True
    dry_run: bool = False
    base_path: Optional[str] = None
    show_graph_statistics: bool = False


async def _call(fn, *args) -> Any:
    """Call a hook that may be synchronous or a coroutine function."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class WorkflowOrchestrator:
    """Entry point for running commands."""

    def __init__(
        self,
        service_registry: Optional["ServiceRegistry"] = None,
        command_registry: Optional["CommandRegistry"] = None,
        options: Optional[OrchestratorOptions] = None,
        resolver: Optional[GraphResolver] = None,
    ):
        """Initialize workflow orchestrator.

        Args:
            service_registry: Registry services are resolved from
            command_registry: Registry used when commands are given by name
            options: Run-wide settings
            resolver: Graph resolver used to order tasks
        """
        # Import here to avoid circular imports
        from ..registry import CommandRegistry, ServiceRegistry

        self.service_registry = service_registry or ServiceRegistry()
        self.command_registry = command_registry or CommandRegistry()
        self.options = options or OrchestratorOptions()
        self.resolver = resolver or GraphResolver()
        self._lock = Lock()

        # Metrics
        self._metrics = {
            "commands_started": 0,
            "commands_succeeded": 0,
            "commands_failed": 0,
            "commands_errored": 0,
            "tasks_executed": 0,
            "tasks_skipped": 0,
            "total_duration_ms": 0.0,
        }

    @classmethod
    def from_config(
        cls,
        config: "Config",
        service_registry: Optional["ServiceRegistry"] = None,
        command_registry: Optional["CommandRegistry"] = None,
    ) -> "WorkflowOrchestrator":
        """Create an orchestrator whose options come from application config."""
        options = OrchestratorOptions(
            enable_rollback=config.enable_rollback,
            dry_run=config.dry_run,
            base_path=config.base_path,
            show_graph_statistics=config.show_graph_statistics,
        )
        return cls(service_registry, command_registry, options)

    async def execute_command(
        self,
        command: Union[Command, str],
        config: Any = None,
        initial_data: Optional[Mapping] = None,
    ) -> ExecutionResult:
        """Execute a command through its full lifecycle.

        before_execute -> build_tasks -> order -> execute -> after_execute.
        A failing task does not raise: the returned result has ``success`` False.

        Args:
            command: Command instance or registered command name
            config: Command configuration, validated against ``config_schema`` if declared
            initial_data: Optional initial context data

        Returns:
            ExecutionResult

        Raises:
            CommandExecutionError: If the command is unknown, or a hook, config
                validation, service resolution, task building or graph
                validation fails
        """
        if isinstance(command, str):
            try:
                command = self.command_registry.get(command)
            except WorkflowError as e:
                raise CommandExecutionError(command, e) from e

        logger.info(f"Executing command: {command.name}")
        with self._lock:
            self._metrics["commands_started"] += 1

        # Bare context so on_error always has something to look at
        context = WorkflowContext.create(config, None, initial_data, self.options.dry_run)
        try:
            context = self._create_context(command, config, initial_data)
            if command.before_execute:
                await _call(command.before_execute, context)

            tasks = await self._build_and_order_tasks(command, context)

            executor = SequentialExecutor(
                enable_rollback=self.options.enable_rollback, dry_run=self.options.dry_run
            )
            result = await executor.execute(tasks, context)
            self._record(result)

            if command.after_execute:
                await _call(command.after_execute, result, context)
        except Exception as e:
            await self._handle_command_error(command, context, e)
            raise CommandExecutionError(command.name, e) from e

        return result

    def run_command(
        self,
        command: Union[Command, str],
        config: Any = None,
        initial_data: Optional[Mapping] = None,
    ) -> ExecutionResult:
        """Synchronous wrapper around ``execute_command``."""
        return asyncio.run(self.execute_command(command, config, initial_data))

    def get_metrics(self) -> Dict[str, Any]:
        """Get orchestrator metrics.

        Returns:
            Metrics dictionary
        """
        with self._lock:
            return self._metrics.copy()

    def _create_context(
        self, command: Command, config: Any, initial_data: Optional[Mapping]
    ) -> WorkflowContext:
        config = self._validate_config(command, config)

        services = None
        required = command.meta.required_services
        if required:
            services = self.service_registry.resolve(required, base_path=self.options.base_path)
            logger.debug(f"Resolved services: [{', '.join(required)}]")

        return WorkflowContext.create(config, services, initial_data, self.options.dry_run)

    def _validate_config(self, command: Command, config: Any) -> Any:
        """Validate plain-dict config against the command's schema.

        Raises:
            WorkflowError: If validation fails
        """
        schema = command.meta.config_schema
        if schema is None or isinstance(config, BaseModel):
            return config
        try:
            return schema.model_validate(config or {})
        except ValidationError as e:
            raise WorkflowError(
                f"Invalid configuration for command '{command.name}': {e}",
                code=ErrorCode.VALIDATION,
                source="WorkflowOrchestrator.validate_config",
            ) from e

    async def _build_and_order_tasks(self, command: Command, context: WorkflowContext) -> List[Task]:
        """Build the command's tasks and order them for execution.

        Raises:
            WorkflowError: If no tasks were built
            GraphValidationError: If the task graph is invalid
        """
        # Import here to avoid circular imports
        from ..registry import TaskRegistry

        items = await _call(command.build_tasks, context)
        items = list(items or ())
        if not items:
            raise WorkflowError(
                f"Command '{command.name}' produced no tasks",
                code=ErrorCode.VALIDATION,
                source="WorkflowOrchestrator.build_tasks",
            )

        registry = TaskRegistry().register_all(items)
        tasks = registry.build_execution_order(self.resolver)
        logger.debug(f"Execution order: {[task.id for task in tasks]}")

        if self.options.show_graph_statistics:
            self.resolver.log_statistics(self.resolver.statistics(tasks))
        return tasks

    async def _handle_command_error(self, command: Command, context: WorkflowContext, error: Exception):
        """Report an error to the command's on_error hook.

        A failing hook is logged; the caller still raises the original error.
        """
        with self._lock:
            self._metrics["commands_errored"] += 1
        logger.error(f"Command {command.name} failed: {error}")

        if not command.on_error:
            return
        try:
            await _call(command.on_error, error, context)
        except Exception as hook_error:
            logger.error(f"on_error hook of {command.name} failed: {hook_error}")

    def _record(self, result: ExecutionResult):
        with self._lock:
            if result.success:
                self._metrics["commands_succeeded"] += 1
            else:
                self._metrics["commands_failed"] += 1
            self._metrics["tasks_executed"] += len(result.executed_tasks)
            self._metrics["tasks_skipped"] += len(result.skipped_tasks)
            self._metrics["total_duration_ms"] += result.execution_time_ms
