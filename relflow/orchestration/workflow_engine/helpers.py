"""
Task factories for common task shapes.

Side-effect, validation and transform tasks wrap plain callables into built
tasks; ``collect_tasks`` and ``collect_tasks_conditionally`` assemble a
command's task list from factories; ``pipeline`` and ``run_checks`` chain
operations inside a single ``execute`` function. Every callable may be
synchronous or a coroutine function.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .builder import TaskBuilder
from .context import WorkflowContext
from .skip_conditions import SkipPredicate
from .tasks import Task, UndoFn

logger = logging.getLogger(__name__)

ContextOp = Callable[[WorkflowContext], Any]
TaskFactory = Callable[[], Task]


async def _call(fn: Callable, *args) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass(frozen=True)
class ValidationCheck:
    """A named check; ``validate`` raises to fail."""

    name: str
    validate: ContextOp


def _builder(
    task_id: str,
    description: str,
    dependencies: Optional[Sequence[str]],
    skip_when: Optional[SkipPredicate],
) -> TaskBuilder:
    builder = TaskBuilder.create(task_id).description(description)
    if dependencies:
        builder.depends_on_all(*dependencies)
    if skip_when is not None:
        builder.skip_when(skip_when)
    return builder


def create_side_effect_task(
    task_id: str,
    description: str,
    effect: ContextOp,
    dependencies: Optional[Sequence[str]] = None,
    skip_when: Optional[SkipPredicate] = None,
    undo: Optional[UndoFn] = None,
) -> Task:
    """Create a task that performs ``effect`` and passes the context through unchanged.

    Raises:
        TaskBuildError: If the description is missing
    """

    async def execute(ctx: WorkflowContext) -> WorkflowContext:
        await _call(effect, ctx)
        return ctx

    builder = _builder(task_id, description, dependencies, skip_when).execute(execute)
    if undo is not None:
        builder.with_undo(undo)
    return builder.build()


def create_validation_task(
    task_id: str,
    description: str,
    validations: Iterable[ValidationCheck],
    dependencies: Optional[Sequence[str]] = None,
    skip_when: Optional[SkipPredicate] = None,
) -> Task:
    """Create a task running ``validations`` in order; the first failing check fails the task.

    Raises:
        TaskBuildError: If the description is missing
    """
    checks = tuple(validations)

    async def execute(ctx: WorkflowContext) -> WorkflowContext:
        for check in checks:
            logger.debug(f"Validating {check.name}")
            await _call(check.validate, ctx)
        return ctx

    return _builder(task_id, description, dependencies, skip_when).execute(execute).build()


def create_transform_task(
    task_id: str,
    description: str,
    output_key: str,
    transform: ContextOp,
    dependencies: Optional[Sequence[str]] = None,
    skip_when: Optional[SkipPredicate] = None,
    undo: Optional[UndoFn] = None,
) -> Task:
    """Create a task that stores the result of ``transform`` under ``output_key``.

    Raises:
        TaskBuildError: If the description is missing
    """

    async def execute(ctx: WorkflowContext) -> WorkflowContext:
        return ctx.fork(output_key, await _call(transform, ctx))

    builder = _builder(task_id, description, dependencies, skip_when).execute(execute)
    if undo is not None:
        builder.with_undo(undo)
    return builder.build()


def collect_tasks(*factories: TaskFactory) -> List[Task]:
    """Call each factory in order and return the tasks; the first error propagates."""
    return [factory() for factory in factories]


def collect_tasks_conditionally(*entries: Union[TaskFactory, Tuple[bool, TaskFactory]]) -> List[Task]:
    """Like ``collect_tasks``, but ``(condition, factory)`` entries are only called when the condition holds.

    Example:
        collect_tasks_conditionally(
            lambda: preflight_task(ctx),
            (ctx.config.bump, lambda: bump_task(ctx)),
        )
    """
    factories: List[TaskFactory] = []
    for entry in entries:
        if callable(entry):
            factories.append(entry)
            continue
        condition, factory = entry
        if condition:
            factories.append(factory)
    return collect_tasks(*factories)


async def pipeline(ctx: WorkflowContext, *operations: ContextOp) -> WorkflowContext:
    """Thread the context through ``operations``; each returns the next context."""
    for operation in operations:
        ctx = await _call(operation, ctx)
    return ctx


async def run_checks(ctx: WorkflowContext, *checks: ContextOp) -> WorkflowContext:
    """Run ``checks`` in order against the same context and return it unchanged."""
    for check in checks:
        await _call(check, ctx)
    return ctx
