"""relflow: dependency-ordered command workflows with skip conditions and rollback."""

from .errors import (
    CommandExecutionError,
    ContextKeyError,
    CycleError,
    ErrorCode,
    GraphValidationError,
    RegistryError,
    RollbackError,
    ServiceResolutionError,
    TaskBuildError,
    TaskExecutionError,
    WorkflowError,
)
from .orchestration import (
    Command,
    CommandMetadata,
    CommandRegistry,
    ExecutionResult,
    GraphResolver,
    OrchestratorOptions,
    SequentialExecutor,
    ServiceRegistry,
    SkipDecision,
    Task,
    TaskBuilder,
    TaskGroup,
    TaskGroupBuilder,
    TaskMetadata,
    TaskRegistry,
    WorkflowContext,
    WorkflowOrchestrator,
    build_task_group,
    create_task,
)
from .orchestration.workflow_engine import helpers, skip_conditions

__version__ = "0.1.0"

__all__ = [
    "Command",
    "CommandExecutionError",
    "CommandMetadata",
    "CommandRegistry",
    "ContextKeyError",
    "CycleError",
    "ErrorCode",
    "ExecutionResult",
    "GraphResolver",
    "GraphValidationError",
    "OrchestratorOptions",
    "RegistryError",
    "RollbackError",
    "SequentialExecutor",
    "ServiceRegistry",
    "ServiceResolutionError",
    "SkipDecision",
    "Task",
    "TaskBuildError",
    "TaskBuilder",
    "TaskExecutionError",
    "TaskGroup",
    "TaskGroupBuilder",
    "TaskMetadata",
    "TaskRegistry",
    "WorkflowContext",
    "WorkflowError",
    "WorkflowOrchestrator",
    "build_task_group",
    "create_task",
    "helpers",
    "skip_conditions",
]
