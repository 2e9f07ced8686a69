"""Global pytest fixtures and configuration.

This module provides shared fixtures for all tests including:
- A recording task factory
- A fresh workflow context
- Logging state reset between tests
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import pytest

from relflow.config import reset_config
from relflow.orchestration.workflow_engine.context import WorkflowContext
from relflow.orchestration.workflow_engine.tasks import SkipFn, Task, create_task
from relflow.utils.logging_factory import COMPONENT_LOGGERS, LoggingFactory


class CallLog:
    """Ordered record of task side effects."""

    def __init__(self):
        self.calls: List[str] = []

    def record(self, entry: str) -> None:
        self.calls.append(entry)

    def __contains__(self, entry: str) -> bool:
        return entry in self.calls


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def make_task(call_log: CallLog) -> Callable[..., Task]:
    """Factory for tasks that record ``execute:<id>`` / ``undo:<id>`` and fork ``<id>=True``.

    Args (of the returned factory):
        task_id: Task id
        deps: Dependency ids
        should_skip: Optional skip function
        fail: Raise from execute
        undo: Give the task an undo function
        undo_fails: Raise from undo
    """

    def factory(
        task_id: str,
        deps: Sequence[str] = (),
        should_skip: Optional[SkipFn] = None,
        fail: bool = False,
        undo: bool = True,
        undo_fails: bool = False,
    ) -> Task:
        def execute(ctx: WorkflowContext) -> WorkflowContext:
            call_log.record(f"execute:{task_id}")
            if fail:
                raise RuntimeError(f"{task_id} exploded")
            return ctx.fork(task_id, True)

        def compensate(ctx: WorkflowContext) -> None:
            call_log.record(f"undo:{task_id}")
            if undo_fails:
                raise RuntimeError(f"undo of {task_id} exploded")

        return create_task(
            task_id,
            execute,
            description=f"Task {task_id}",
            dependencies=tuple(deps),
            should_skip=should_skip,
            undo=compensate if undo else None,
        )

    return factory


@pytest.fixture
def context() -> WorkflowContext:
    return WorkflowContext.create({"dry_run": False, "skip_changelog": True})


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset config and logging singletons around each test."""
    reset_config()
    LoggingFactory.reset()
    yield
    reset_config()
    LoggingFactory.reset()
    logging.getLogger().setLevel(logging.WARNING)
    for name in ("relflow",) + COMPONENT_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)

    # Drop handlers installed by LoggingFactory; keep pytest capture handlers
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if not type(handler).__module__.startswith("_pytest"):
            handler.close()
            root.removeHandler(handler)
