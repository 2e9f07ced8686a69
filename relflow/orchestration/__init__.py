"""Command orchestration and workflow management."""

from .registry import (
    CommandRegistry,
    ServiceBundle,
    ServiceFactoryContext,
    ServiceRegistry,
    TaskRegistry,
)
from .workflow_engine import (
    Command,
    CommandMetadata,
    ExecutionResult,
    GraphResolver,
    OrchestratorOptions,
    SequentialExecutor,
    SkipDecision,
    Task,
    TaskBuilder,
    TaskGroup,
    TaskGroupBuilder,
    TaskMetadata,
    WorkflowContext,
    WorkflowOrchestrator,
    build_task_group,
    create_task,
)

__all__ = [
    "Command",
    "CommandMetadata",
    # Registries
    "CommandRegistry",
    "ExecutionResult",
    "GraphResolver",
    "OrchestratorOptions",
    "SequentialExecutor",
    "ServiceBundle",
    "ServiceFactoryContext",
    "ServiceRegistry",
    "SkipDecision",
    "Task",
    "TaskBuilder",
    "TaskGroup",
    "TaskGroupBuilder",
    "TaskMetadata",
    "TaskRegistry",
    "WorkflowContext",
    # Core workflow classes
    "WorkflowOrchestrator",
    "build_task_group",
    "create_task",
]
