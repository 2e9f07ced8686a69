"""
Task execution strategies and rollback.

This module walks an ordered task list against a workflow context, evaluates
skip conditions (including skip-to jumps), and on failure compensates the
executed tasks in reverse order.
"""

from __future__ import annotations

import inspect
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...errors import RollbackError, TaskExecutionError, WorkflowError
from .context import WorkflowContext
from .tasks import SkipDecision, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one workflow run."""

    success: bool
    executed_tasks: Tuple[str, ...]
    skipped_tasks: Tuple[str, ...]
    start_time: datetime
    end_time: datetime
    execution_time_ms: float
    failed_task: Optional[str] = None
    error: Optional[WorkflowError] = None
    rollback_executed: bool = False
    rollback_errors: Tuple[Tuple[str, Exception], ...] = ()
    context: Optional[WorkflowContext] = None

    @property
    def rollback_error(self) -> Optional[RollbackError]:
        """Aggregate of the failed compensations, if any."""
        if not self.rollback_errors:
            return None
        return RollbackError(self.rollback_errors)


async def _resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it."""
    if inspect.isawaitable(value):
        return await value
    return value


def find_skip_target(remaining: Sequence[Task], targets: Sequence[str]) -> Optional[int]:
    """Index of the first remaining task whose id is a skip-to target."""
    if not targets:
        return None
    wanted = set(targets)
    for index, task in enumerate(remaining):
        if task.id in wanted:
            return index
    return None


class TaskExecutor(ABC):
    """Abstract base class for task executors."""

    @abstractmethod
    async def execute(self, tasks: Sequence[Task], initial_context: WorkflowContext) -> ExecutionResult:
        """Run tasks in the given order.

        Args:
            tasks: Tasks in execution order
            initial_context: Context the first task receives

        Returns:
            ExecutionResult
        """
        pass


class SequentialExecutor(TaskExecutor):
    """Runs tasks one at a time, awaiting each before the next."""

    def __init__(self, enable_rollback: bool = True, dry_run: bool = False):
        """Initialize sequential executor.

        Args:
            enable_rollback: Compensate executed tasks when a task fails
            dry_run: Announce that the run is simulated; tasks read ``ctx.dry_run``
        """
        self.enable_rollback = enable_rollback
        self.dry_run = dry_run
        self._metrics = {
            "tasks_executed": 0,
            "tasks_skipped": 0,
            "tasks_failed": 0,
            "rollbacks": 0,
        }

    async def execute(self, tasks: Sequence[Task], initial_context: WorkflowContext) -> ExecutionResult:
        """Execute tasks sequentially with skip handling and rollback.

        A failed task does not raise; the returned result carries the error.

        Args:
            tasks: Tasks in execution order
            initial_context: Context the first task receives

        Returns:
            ExecutionResult
        """
        start_time = datetime.now()
        started = time.perf_counter()
        if self.dry_run or initial_context.dry_run:
            logger.warning("Dry run: tasks are expected to simulate side effects")

        context = initial_context
        executed: List[Task] = []
        skipped: List[str] = []
        failed_task: Optional[str] = None
        error: Optional[WorkflowError] = None

        remaining = list(tasks)
        while remaining:
            task = remaining.pop(0)

            try:
                decision = self._evaluate_skip(task, context)
            except Exception as e:
                failed_task, error = task.id, self._task_error(task, f"skip condition raised: {e}", e)
                break

            if decision is not None and decision.should_skip:
                skipped.append(task.id)
                self._metrics["tasks_skipped"] += 1
                logger.info(f"Skipping task {task.id}: {decision.reason or 'no reason given'}")

                target = find_skip_target(remaining, decision.skip_to_tasks)
                if target is not None:
                    jumped = [t.id for t in remaining[:target]]
                    if jumped:
                        logger.debug(f"Jumping to {remaining[target].id}, bypassing {jumped}")
                    remaining = remaining[target:]
                elif decision.skip_to_tasks:
                    logger.debug(
                        f"Skip targets {list(decision.skip_to_tasks)} not found after {task.id}; continuing"
                    )
                continue

            logger.debug(f"Executing task {task.id}")
            try:
                new_context = await _resolve(task.execute(context))
            except Exception as e:
                failed_task, error = task.id, self._task_error(task, str(e), e)
                break

            if not isinstance(new_context, WorkflowContext):
                failed_task = task.id
                error = TaskExecutionError(
                    task.id,
                    f"execute returned {type(new_context).__name__} instead of a WorkflowContext",
                    source="SequentialExecutor.execute",
                )
                break

            context = new_context
            executed.append(task)
            self._metrics["tasks_executed"] += 1

        rollback_executed = False
        rollback_errors: Tuple[Tuple[str, Exception], ...] = ()
        if error is not None:
            self._metrics["tasks_failed"] += 1
            logger.error(error.message)
            if self.enable_rollback and executed:
                rollback_errors = await self.rollback(executed, context)
                rollback_executed = not rollback_errors

        end_time = datetime.now()
        result = ExecutionResult(
            success=error is None,
            executed_tasks=tuple(t.id for t in executed),
            skipped_tasks=tuple(skipped),
            start_time=start_time,
            end_time=end_time,
            execution_time_ms=(time.perf_counter() - started) * 1000,
            failed_task=failed_task,
            error=error,
            rollback_executed=rollback_executed,
            rollback_errors=rollback_errors,
            context=context,
        )

        logger.info(
            f"Run finished: success={result.success}, executed={len(result.executed_tasks)}, "
            f"skipped={len(result.skipped_tasks)}, {result.execution_time_ms:.1f}ms"
        )
        return result

    async def rollback(
        self, executed: Sequence[Task], context: WorkflowContext
    ) -> Tuple[Tuple[str, Exception], ...]:
        """Compensate executed tasks in reverse order.

        Every compensation is attempted even if an earlier one fails.

        Args:
            executed: Successfully executed tasks, in execution order
            context: Working context at rollback time

        Returns:
            (task_id, error) pairs for compensations that failed
        """
        self._metrics["rollbacks"] += 1
        logger.info(f"Rolling back {len(executed)} task(s)")

        failures: List[Tuple[str, Exception]] = []
        for task in reversed(executed):
            if task.undo is None:
                logger.debug(f"Task {task.id} has no undo; nothing to compensate")
                continue
            try:
                await _resolve(task.undo(context))
                logger.debug(f"Rolled back task {task.id}")
            except Exception as e:
                logger.error(f"Rollback of task {task.id} failed: {e}")
                failures.append((task.id, e))

        if failures:
            logger.warning(f"Rollback completed with {len(failures)} error(s)")
        return tuple(failures)

    def get_metrics(self) -> Dict[str, Any]:
        """Get executor metrics.

        Returns:
            Metrics dictionary
        """
        return self._metrics.copy()

    def _evaluate_skip(self, task: Task, context: WorkflowContext) -> Optional[SkipDecision]:
        if task.should_skip is None:
            return None
        decision = task.should_skip(context)
        if isinstance(decision, bool):
            return SkipDecision(should_skip=decision)
        return decision

    def _task_error(self, task: Task, message: str, cause: Exception) -> TaskExecutionError:
        error = TaskExecutionError(task.id, message, source="SequentialExecutor.execute")
        error.__cause__ = cause
        return error
