"""
Skip predicates and their combinators.

A predicate is a pure function of the workflow context returning True when a
task should be skipped. Combinators compose predicates without subclassing;
``all_of`` and ``any_of`` short-circuit.
"""

from __future__ import annotations

import weakref
from typing import Callable, Iterable, Optional, Union

from .context import WorkflowContext
from .tasks import SkipDecision, SkipFn, task_id_tuple

SkipPredicate = Callable[[WorkflowContext], bool]


def _always_true(ctx: WorkflowContext) -> bool:
    return True


def _always_false(ctx: WorkflowContext) -> bool:
    return False


def all_of(*predicates: SkipPredicate) -> SkipPredicate:
    """Skip only if every predicate is true; stops at the first false."""
    if not predicates:
        return _always_false
    if len(predicates) == 1:
        return predicates[0]

    def combined(ctx: WorkflowContext) -> bool:
        for predicate in predicates:
            if not predicate(ctx):
                return False
        return True

    return combined


def any_of(*predicates: SkipPredicate) -> SkipPredicate:
    """Skip if any predicate is true; stops at the first true."""
    if not predicates:
        return _always_false
    if len(predicates) == 1:
        return predicates[0]

    def combined(ctx: WorkflowContext) -> bool:
        for predicate in predicates:
            if predicate(ctx):
                return True
        return False

    return combined


def negate(predicate: SkipPredicate) -> SkipPredicate:
    """Invert a predicate ("skip unless")."""

    def negated(ctx: WorkflowContext) -> bool:
        return not predicate(ctx)

    return negated


def from_config(key: str) -> SkipPredicate:
    """Predicate reading a boolean from the context config (mapping or attribute)."""

    def predicate(ctx: WorkflowContext) -> bool:
        config = ctx.config
        if hasattr(config, "get") and callable(config.get):
            return bool(config.get(key))
        return bool(getattr(config, key, False))

    return predicate


def from_data(key: str) -> SkipPredicate:
    """Predicate reading a boolean from the context data."""

    def predicate(ctx: WorkflowContext) -> bool:
        return bool(ctx.get_or(key))

    return predicate


def always(value: bool) -> SkipPredicate:
    """Predicate with a fixed result."""
    return _always_true if value else _always_false


def never() -> SkipPredicate:
    return _always_false


def memoize(predicate: SkipPredicate) -> SkipPredicate:
    """Cache a predicate's result per context instance.

    Contexts are immutable, so a result computed for one instance stays valid.
    """
    cache: "weakref.WeakKeyDictionary[WorkflowContext, bool]" = weakref.WeakKeyDictionary()

    def memoized(ctx: WorkflowContext) -> bool:
        try:
            return cache[ctx]
        except KeyError:
            result = predicate(ctx)
            cache[ctx] = result
            return result

    return memoized


def to_skip_condition(predicate: SkipPredicate, reason: str) -> SkipFn:
    """Wrap a predicate into a task ``should_skip`` function."""

    def should_skip(ctx: WorkflowContext) -> SkipDecision:
        return SkipDecision(should_skip=predicate(ctx), reason=reason)

    return should_skip


def to_skip_condition_with_jump(
    predicate: SkipPredicate, skip_to_tasks: Union[str, Iterable[str]], reason: Optional[str] = None
) -> SkipFn:
    """Wrap a predicate into a ``should_skip`` function that jumps ahead when it fires.

    ``skip_to_tasks`` may be a single task id.
    """
    targets = task_id_tuple(skip_to_tasks)

    def should_skip(ctx: WorkflowContext) -> SkipDecision:
        return SkipDecision(
            should_skip=predicate(ctx),
            reason=reason or "Skip condition met",
            skip_to_tasks=targets,
        )

    return should_skip


def group_skip_when(predicate: SkipPredicate, reason: str) -> SkipFn:
    """Group-level skip condition for ``TaskGroup.skip_condition``."""
    return to_skip_condition(predicate, reason)


def group_skip_when_any(predicates: Iterable[SkipPredicate], reason: str) -> SkipFn:
    """Skip the group if any predicate is true."""
    return to_skip_condition(any_of(*predicates), reason)


def group_skip_when_all(predicates: Iterable[SkipPredicate], reason: str) -> SkipFn:
    """Skip the group only if every predicate is true."""
    return to_skip_condition(all_of(*predicates), reason)
