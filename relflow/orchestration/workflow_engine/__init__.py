"""
Workflow engine.

This package contains the engine components:
- context: Immutable, fork-based workflow context
- tasks: Task and command models
- builder: Fluent task and task group builders
- helpers: Factories for common task shapes
- skip_conditions: Skip predicate combinators
- groups: Task groups and their expansion
- graph: Dependency validation and topological ordering
- executors: Sequential execution and rollback
- core: Command orchestration
"""

from __future__ import annotations

# Export main public API
from .context import WorkflowContext

from .tasks import (
    Command,
    CommandMetadata,
    SkipDecision,
    Task,
    TaskMetadata,
    create_task,
)

from .builder import TaskBuilder, TaskGroupBuilder, build_task_group

from .helpers import (
    ValidationCheck,
    collect_tasks,
    collect_tasks_conditionally,
    create_side_effect_task,
    create_transform_task,
    create_validation_task,
    pipeline,
    run_checks,
)

from .groups import TaskGroup, expand_group

from .graph import GraphResolver, GraphStatistics, GraphValidationResult

from .executors import ExecutionResult, SequentialExecutor, TaskExecutor

from .core import OrchestratorOptions, WorkflowOrchestrator

__all__ = [
    # Context
    "WorkflowContext",

    # Task models
    "Command",
    "CommandMetadata",
    "SkipDecision",
    "Task",
    "TaskBuilder",
    "TaskMetadata",
    "create_task",

    # Task helpers
    "ValidationCheck",
    "collect_tasks",
    "collect_tasks_conditionally",
    "create_side_effect_task",
    "create_transform_task",
    "create_validation_task",
    "pipeline",
    "run_checks",

    # Groups
    "TaskGroup",
    "TaskGroupBuilder",
    "build_task_group",
    "expand_group",

    # Graph
    "GraphResolver",
    "GraphStatistics",
    "GraphValidationResult",

    # Executors
    "ExecutionResult",
    "SequentialExecutor",
    "TaskExecutor",

    # Core orchestrator
    "OrchestratorOptions",
    "WorkflowOrchestrator",
]
