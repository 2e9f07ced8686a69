"""
Task groups.

A group bundles related tasks under a shared skip condition. Registering a
group expands it into plain tasks with ``group:task`` ids; the first task of
the group waits for the last task of every group it depends on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from ...errors import RegistryError
from .context import WorkflowContext
from .skip_conditions import SkipPredicate
from .tasks import SkipDecision, SkipFn, Task, TaskMetadata

GROUP_TASK_SEPARATOR = ":"


def namespaced_task_id(group_id: str, task_id: str) -> str:
    return f"{group_id}{GROUP_TASK_SEPARATOR}{task_id}"


@dataclass(frozen=True)
class TaskGroup:
    """A named bundle of tasks sharing an optional skip condition."""

    id: str
    description: str
    tasks: Tuple[Task, ...]
    depends_on_groups: Tuple[str, ...] = ()
    skip_condition: Optional[SkipFn] = None
    skip_when: Optional[SkipPredicate] = None
    skip_reason: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "depends_on_groups", tuple(self.depends_on_groups))

    def group_skip_condition(self) -> Optional[SkipFn]:
        """The group-level ``should_skip`` function, if one is configured."""
        if self.skip_condition is not None:
            return self.skip_condition
        if self.skip_when is None:
            return None

        predicate = self.skip_when
        reason = self.skip_reason or f'Group "{self.id}" skip condition met'

        def should_skip(ctx: WorkflowContext) -> SkipDecision:
            return SkipDecision(should_skip=predicate(ctx), reason=reason)

        return should_skip


def merge_skip_conditions(task_skip: Optional[SkipFn], group_skip: Optional[SkipFn]) -> Optional[SkipFn]:
    """Combine group and task skip conditions; a group skip wins."""
    if group_skip is None:
        return task_skip
    if task_skip is None:
        return group_skip

    def should_skip(ctx: WorkflowContext) -> SkipDecision:
        decision = group_skip(ctx)
        if decision.should_skip:
            return decision
        return task_skip(ctx)

    return should_skip


def expand_group(group: TaskGroup, last_task_by_group: Mapping[str, str]) -> List[Task]:
    """Expand a group into namespaced tasks.

    Args:
        group: Group to expand
        last_task_by_group: Last task id of every group registered so far

    Returns:
        Expanded tasks in group order

    Raises:
        RegistryError: If the group depends on a group that is not registered
    """
    inter_group_deps: List[str] = []
    for dep_group in group.depends_on_groups:
        if dep_group not in last_task_by_group:
            raise RegistryError(
                f'Group "{group.id}" depends on group "{dep_group}" which is not registered',
                source="expand_group",
            )
        inter_group_deps.append(last_task_by_group[dep_group])

    local_ids = {task.id for task in group.tasks}
    group_skip = group.group_skip_condition()
    expanded: List[Task] = []

    for index, task in enumerate(group.tasks):
        dependencies = [_remap_dependency(dep, group.id, local_ids) for dep in task.dependencies]
        if index == 0:
            dependencies.extend(inter_group_deps)

        meta = TaskMetadata(
            id=namespaced_task_id(group.id, task.id),
            description=task.meta.description,
            dependencies=tuple(dependencies),
            tags=task.meta.tags,
        )
        expanded.append(
            Task(
                meta=meta,
                execute=task.execute,
                should_skip=merge_skip_conditions(task.should_skip, group_skip),
                undo=task.undo,
            )
        )

    return expanded


def _remap_dependency(dep_id: str, group_id: str, local_ids: Sequence[str]) -> str:
    if dep_id in local_ids:
        return namespaced_task_id(group_id, dep_id)
    # Already namespaced or a top-level task id
    return dep_id
