"""
Task and command models.

This module defines the unit-of-work contract (task metadata, skip decisions,
tasks) and the command contract consumed by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .context import WorkflowContext


class TaskMetadata(BaseModel):
    """Identity and static dependencies of a task."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    description: str = ""
    dependencies: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        """Reject blank task ids."""
        if not v.strip():
            raise ValueError("Task id must not be blank")
        return v

    @field_validator("dependencies")
    @classmethod
    def validate_dependencies(cls, v):
        """Reject blank dependency ids."""
        for dep in v:
            if not dep or not dep.strip():
                raise ValueError("Dependency ids must not be blank")
        return v



def task_id_tuple(task_ids: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """Normalize one id or an iterable of ids to a tuple; a bare string is a single id."""
    if not task_ids:
        return ()
    if isinstance(task_ids, str):
        return (task_ids,)
    return tuple(task_ids)


@dataclass(frozen=True)
class SkipDecision:
    """Outcome of evaluating a task's skip condition."""

    should_skip: bool
    reason: Optional[str] = None
    skip_to_tasks: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "skip_to_tasks", task_id_tuple(self.skip_to_tasks))


SkipFn = Callable[[WorkflowContext], SkipDecision]
ExecuteFn = Callable[[WorkflowContext], Union[WorkflowContext, Awaitable[WorkflowContext]]]
UndoFn = Callable[[WorkflowContext], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class Task:
    """A single unit of work.

    ``execute`` returns the (possibly forked) context; ``undo`` compensates a
    successful ``execute`` during rollback. Both may be coroutine functions.
    """

    meta: TaskMetadata
    execute: ExecuteFn
    should_skip: Optional[SkipFn] = None
    undo: Optional[UndoFn] = None

    @property
    def id(self) -> str:
        return self.meta.id

    @property
    def dependencies(self) -> Tuple[str, ...]:
        return self.meta.dependencies

    def __hash__(self):
        """Make task hashable for use in sets."""
        return hash(self.meta.id)


def create_task(
    task_id: str,
    execute: ExecuteFn,
    description: str = "",
    dependencies: Tuple[str, ...] = (),
    should_skip: Optional[SkipFn] = None,
    undo: Optional[UndoFn] = None,
) -> Task:
    """Create a task from plain values.

    Unlike ``TaskBuilder.build()`` this does not require a description; a blank
    description is reported as a warning by graph validation.
    """
    meta = TaskMetadata(id=task_id, description=description, dependencies=tuple(dependencies))
    return Task(meta=meta, execute=execute, should_skip=should_skip, undo=undo)


class CommandMetadata(BaseModel):
    """Metadata describing a command and the services it needs."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str
    required_services: Tuple[str, ...] = ()
    config_schema: Optional[Type[BaseModel]] = None
    examples: Tuple[str, ...] = ()


@dataclass
class Command:
    """A complete workflow operation: a task factory plus lifecycle hooks.

    Every callable may be synchronous or a coroutine function.
    """

    meta: CommandMetadata
    build_tasks: Callable[[WorkflowContext], Any]
    before_execute: Optional[Callable[[WorkflowContext], Any]] = None
    after_execute: Optional[Callable[[Any, WorkflowContext], Any]] = None
    on_error: Optional[Callable[[Exception, WorkflowContext], Any]] = None

    @property
    def name(self) -> str:
        return self.meta.name
