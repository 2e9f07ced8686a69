"""Fluent builders for validated tasks and task groups."""

from __future__ import annotations

from typing import Iterable, List, Optional

from ...errors import TaskBuildError
from .groups import TaskGroup
from .skip_conditions import SkipPredicate, to_skip_condition, to_skip_condition_with_jump
from .tasks import ExecuteFn, SkipFn, Task, TaskMetadata, UndoFn


class TaskBuilder:
    """Chainable task definition.

    Example:
        task = (
            TaskBuilder.create("bump-version")
            .description("Writes the next version to the manifest")
            .depends_on("determine-version")
            .skip_when(from_config("skip_bump"))
            .execute(bump)
            .with_undo(restore_manifest)
            .build()
        )
    """

    def __init__(self, task_id: str):
        self._task_id = task_id
        self._description: Optional[str] = None
        self._dependencies: List[str] = []
        self._tags: List[str] = []
        self._skip_fn: Optional[SkipFn] = None
        self._execute_fn: Optional[ExecuteFn] = None
        self._undo_fn: Optional[UndoFn] = None

    @classmethod
    def create(cls, task_id: str) -> "TaskBuilder":
        return cls(task_id)

    def description(self, text: str) -> "TaskBuilder":
        self._description = text
        return self

    def depends_on(self, task_id: str) -> "TaskBuilder":
        self._dependencies.append(task_id)
        return self

    def depends_on_all(self, *task_ids: str) -> "TaskBuilder":
        self._dependencies.extend(task_ids)
        return self

    def tagged(self, *tags: str) -> "TaskBuilder":
        self._tags.extend(tags)
        return self

    def skip_when(self, predicate: SkipPredicate) -> "TaskBuilder":
        self._skip_fn = to_skip_condition(predicate, "condition not met")
        return self

    def skip_when_with_reason(self, predicate: SkipPredicate, reason: str) -> "TaskBuilder":
        self._skip_fn = to_skip_condition(predicate, reason)
        return self

    def skip_when_and_jump_to(self, predicate: SkipPredicate, *task_ids: str) -> "TaskBuilder":
        self._skip_fn = to_skip_condition_with_jump(predicate, task_ids)
        return self

    def should_skip(self, fn: SkipFn) -> "TaskBuilder":
        self._skip_fn = fn
        return self

    def execute(self, fn: ExecuteFn) -> "TaskBuilder":
        self._execute_fn = fn
        return self

    def with_undo(self, fn: UndoFn) -> "TaskBuilder":
        self._undo_fn = fn
        return self

    def build(self) -> Task:
        """Build the task.

        Raises:
            TaskBuildError: If the execute function or the description is missing
        """
        if self._execute_fn is None:
            raise TaskBuildError(
                f'Task "{self._task_id}" must have an execute function', source="TaskBuilder.build"
            )
        if not self._description or not self._description.strip():
            raise TaskBuildError(
                f'Task "{self._task_id}" must have a description', source="TaskBuilder.build"
            )

        meta = TaskMetadata(
            id=self._task_id,
            description=self._description,
            dependencies=tuple(self._dependencies),
            tags=tuple(self._tags),
        )
        return Task(meta=meta, execute=self._execute_fn, should_skip=self._skip_fn, undo=self._undo_fn)


class TaskGroupBuilder:
    """Chainable task group definition.

    Example:
        group = (
            TaskGroupBuilder.create("git")
            .description("Commit and tag the release")
            .depends_on_group("changelog")
            .skip_when(from_config("skip_git"))
            .skip_reason("git operations disabled")
            .tasks([commit_task, tag_task])
            .build()
        )
    """

    def __init__(self, group_id: str):
        self._group_id = group_id
        self._description: Optional[str] = None
        self._depends_on_groups: List[str] = []
        self._skip_condition: Optional[SkipFn] = None
        self._skip_when: Optional[SkipPredicate] = None
        self._skip_reason: Optional[str] = None
        self._tasks: List[Task] = []

    @classmethod
    def create(cls, group_id: str) -> "TaskGroupBuilder":
        return cls(group_id)

    def description(self, text: str) -> "TaskGroupBuilder":
        self._description = text
        return self

    def depends_on_group(self, group_id: str) -> "TaskGroupBuilder":
        self._depends_on_groups.append(group_id)
        return self

    def depends_on_groups(self, *group_ids: str) -> "TaskGroupBuilder":
        self._depends_on_groups.extend(group_ids)
        return self

    def skip_when(self, predicate: SkipPredicate) -> "TaskGroupBuilder":
        self._skip_when = predicate
        return self

    def skip_reason(self, reason: str) -> "TaskGroupBuilder":
        self._skip_reason = reason
        return self

    def should_skip(self, fn: SkipFn) -> "TaskGroupBuilder":
        self._skip_condition = fn
        return self

    def tasks(self, tasks: Iterable[Task]) -> "TaskGroupBuilder":
        self._tasks = list(tasks)
        return self

    def add_task(self, task: Task) -> "TaskGroupBuilder":
        self._tasks.append(task)
        return self

    def build(self) -> TaskGroup:
        """Build the group.

        Raises:
            TaskBuildError: If the description is missing or the group has no tasks
        """
        if not self._description or not self._description.strip():
            raise TaskBuildError(
                f'Task group "{self._group_id}" must have a description', source="TaskGroupBuilder.build"
            )
        if not self._tasks:
            raise TaskBuildError(
                f'Task group "{self._group_id}" must have at least one task', source="TaskGroupBuilder.build"
            )

        return TaskGroup(
            id=self._group_id,
            description=self._description,
            tasks=tuple(self._tasks),
            depends_on_groups=tuple(self._depends_on_groups),
            skip_condition=self._skip_condition,
            skip_when=self._skip_when,
            skip_reason=self._skip_reason,
        )


def build_task_group(group_id: str) -> TaskGroupBuilder:
    """Shorthand for ``TaskGroupBuilder.create``."""
    return TaskGroupBuilder.create(group_id)
