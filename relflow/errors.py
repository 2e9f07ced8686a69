"""Error taxonomy for the workflow engine.

Every failure the engine reports is a ``WorkflowError`` subclass carrying a
machine-readable ``ErrorCode`` plus the component that raised it.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .orchestration.workflow_engine.graph import GraphValidationResult


class ErrorCode(Enum):
    """Classification of workflow errors."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID = "invalid"
    FAILED = "failed"
    UNEXPECTED = "unexpected"


class WorkflowError(Exception):
    """Base class for all engine errors.

    Attributes:
        message: Human-readable description
        code: Error classification
        source: Component that raised the error
        details: Optional structured context
    """

    default_code = ErrorCode.UNEXPECTED

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        source: Optional[str] = None,
        details: Any = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.source = source
        self.details = details
        super().__init__(message)


class GraphValidationError(WorkflowError):
    """Raised when a task set fails graph validation."""

    default_code = ErrorCode.VALIDATION

    def __init__(self, result: "GraphValidationResult", source: Optional[str] = None) -> None:
        self.result = result
        self.errors: List[str] = list(result.errors)
        super().__init__(
            "Task graph validation failed: " + "; ".join(self.errors),
            source=source,
            details={"errors": self.errors, "warnings": list(result.warnings)},
        )


class CycleError(WorkflowError):
    """Raised when the dependency graph contains a cycle."""

    default_code = ErrorCode.INVALID

    def __init__(self, message: str, cycle: Sequence[str] = (), source: Optional[str] = None) -> None:
        self.cycle = tuple(cycle)
        super().__init__(message, source=source)


class ContextKeyError(WorkflowError, KeyError):
    """Raised when a key is absent from the workflow context data."""

    default_code = ErrorCode.NOT_FOUND

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f'Key "{key}" not found in context', source="WorkflowContext.get")

    def __str__(self) -> str:
        return self.message


class TaskBuildError(WorkflowError):
    """Raised when a task or task group definition is incomplete."""

    default_code = ErrorCode.INVALID


class TaskExecutionError(WorkflowError):
    """Raised (or recorded) when a task fails during execution.

    Attributes:
        task_id: Id of the task that was running when the error occurred
    """

    default_code = ErrorCode.FAILED

    def __init__(self, task_id: str, message: str, source: Optional[str] = None) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' failed: {message}", source=source)


class RollbackError(WorkflowError):
    """Aggregates every compensation that failed during a rollback pass."""

    default_code = ErrorCode.FAILED

    def __init__(self, failures: Sequence[Tuple[str, Exception]]) -> None:
        self.failures = tuple(failures)
        summary = ", ".join(f"{task_id}: {error}" for task_id, error in self.failures)
        super().__init__(
            f"Rollback completed with {len(self.failures)} error(s): {summary}",
            source="SequentialExecutor.rollback",
        )


class ServiceResolutionError(WorkflowError):
    """Raised when requested services cannot be resolved."""

    default_code = ErrorCode.NOT_FOUND


class RegistryError(WorkflowError):
    """Raised on registry conflicts or failed lookups."""

    default_code = ErrorCode.CONFLICT


class CommandExecutionError(WorkflowError):
    """Final error surfaced by the orchestrator when a command cannot run."""

    default_code = ErrorCode.FAILED

    def __init__(self, command: str, error: Exception) -> None:
        self.command = command
        self.original_error = error
        message = error.message if isinstance(error, WorkflowError) else str(error)
        code = error.code if isinstance(error, WorkflowError) else ErrorCode.UNEXPECTED
        super().__init__(
            f"Command execution failed: {message}",
            code=code,
            source="WorkflowOrchestrator.execute_command",
            details={"command": command},
        )
