"""
Task dependency graph resolution.

This module validates a task set (duplicate ids, unknown dependencies,
cycles), computes the execution order with Kahn's algorithm and derives
diagnostic statistics. The graph is a networkx DiGraph whose edges point from
a dependency to its dependent.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Sequence, Set, Tuple

import networkx as nx

from ...errors import CycleError, GraphValidationError
from .tasks import Task

logger = logging.getLogger(__name__)

CYCLE_ARROW = " → "


@dataclass(frozen=True)
class GraphValidationResult:
    """Outcome of validating a task graph."""

    is_valid: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    execution_order: Tuple[str, ...] = ()
    depth_map: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class GraphStatistics:
    """Diagnostic statistics about a task graph."""

    total_tasks: int
    root_tasks: Tuple[str, ...]
    leaf_tasks: Tuple[str, ...]
    max_depth: int
    total_edges: int
    avg_dependencies: float
    max_fan_in_tasks: Tuple[str, ...]
    max_fan_out_tasks: Tuple[str, ...]


class GraphResolver:
    """Validates task sets and orders them for execution."""

    def build_graph(self, tasks: Sequence[Task]) -> nx.DiGraph:
        """Build the dependency graph.

        Nodes keep declaration order; the first declaration of a duplicate id
        wins. Dependencies on unknown ids are not added as edges.

        Args:
            tasks: Tasks to index

        Returns:
            DiGraph with edges dependency -> dependent
        """
        graph = nx.DiGraph()
        for task in tasks:
            if task.id not in graph:
                graph.add_node(task.id, task=task)

        for task in tasks:
            if graph.nodes[task.id]["task"] is not task:
                continue
            for dep_id in task.dependencies:
                if dep_id in graph:
                    graph.add_edge(dep_id, task.id)
        return graph

    def validate(self, tasks: Sequence[Task]) -> GraphValidationResult:
        """Validate a task set and compute its execution order.

        All errors are collected; the order is only computed when none was found.

        Args:
            tasks: Tasks in declaration order

        Returns:
            GraphValidationResult
        """
        errors: List[str] = []
        warnings: List[str] = []

        task_map = self._build_task_map(tasks, errors)
        self._check_missing_dependencies(tasks, task_map, errors, warnings)
        self._check_cycles(tasks, task_map, errors)

        execution_order: List[str] = []
        depth_map: Dict[str, int] = {}
        if not errors:
            try:
                execution_order = self.topological_sort(tasks)
            except CycleError as e:
                errors.append(e.message)
            else:
                depth_map = self._compute_depths(execution_order, task_map)

        if errors:
            logger.debug(f"Task graph invalid: {errors}")

        return GraphValidationResult(
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            execution_order=tuple(execution_order),
            depth_map=MappingProxyType(depth_map),
        )

    def topological_sort(self, tasks: Sequence[Task]) -> List[str]:
        """Order task ids so that every dependency precedes its dependents.

        Kahn's algorithm with a FIFO queue; ties are broken by declaration order.

        Raises:
            CycleError: If not every task could be ordered
        """
        graph = self.build_graph(tasks)
        in_degree = {node: graph.in_degree(node) for node in graph.nodes}

        queue = deque(node for node in graph.nodes if in_degree[node] == 0)
        order: List[str] = []
        while queue:
            current = queue.popleft()
            order.append(current)
            for dependent in graph.successors(current):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(order) != len(tasks):
            blocked = [node for node, degree in in_degree.items() if degree > 0]
            raise CycleError(
                "Circular dependency detected in task graph",
                cycle=blocked,
                source="GraphResolver.topological_sort",
            )
        return order

    def order_tasks(self, tasks: Sequence[Task]) -> List[Task]:
        """Validate tasks and return them in execution order.

        Raises:
            GraphValidationError: If validation reports any error
        """
        result = self.validate(tasks)
        for warning in result.warnings:
            logger.warning(warning)
        if not result.is_valid:
            raise GraphValidationError(result, source="GraphResolver.order_tasks")

        by_id = {task.id: task for task in tasks}
        return [by_id[task_id] for task_id in result.execution_order]

    def statistics(self, tasks: Sequence[Task]) -> GraphStatistics:
        """Compute diagnostic statistics; never used for control flow."""
        graph = self.build_graph(tasks)
        validation = self.validate(tasks)
        # First declaration of a duplicated id only
        unique = [graph.nodes[node]["task"] for node in graph.nodes]

        total_edges = sum(len(task.dependencies) for task in unique)
        dependency_counts = {task.id: len(task.dependencies) for task in unique}
        dependent_counts = {node: graph.out_degree(node) for node in graph.nodes}

        roots = tuple(task.id for task in unique if not task.dependencies)
        leaves = tuple(node for node in graph.nodes if dependent_counts[node] == 0)

        return GraphStatistics(
            total_tasks=len(unique),
            root_tasks=roots,
            leaf_tasks=leaves,
            max_depth=max(validation.depth_map.values(), default=0),
            total_edges=total_edges,
            avg_dependencies=total_edges / len(unique) if unique else 0.0,
            max_fan_in_tasks=_argmax(dependency_counts),
            max_fan_out_tasks=_argmax(dependent_counts),
        )

    def log_statistics(self, stats: GraphStatistics) -> None:
        logger.debug("Task graph statistics:")
        logger.debug(f"  Total tasks: {stats.total_tasks}")
        logger.debug(f"  Root tasks: {len(stats.root_tasks)}")
        logger.debug(f"  Leaf tasks: {len(stats.leaf_tasks)}")
        logger.debug(f"  Max depth: {stats.max_depth}")
        logger.debug(f"  Avg dependencies: {stats.avg_dependencies:.2f}")
        if stats.max_fan_in_tasks:
            logger.debug(f"  Most dependent tasks: {', '.join(stats.max_fan_in_tasks)}")
        if stats.max_fan_out_tasks:
            logger.debug(f"  Most depended-upon tasks: {', '.join(stats.max_fan_out_tasks)}")

    def _build_task_map(self, tasks: Sequence[Task], errors: List[str]) -> Dict[str, Task]:
        task_map: Dict[str, Task] = {}
        for task in tasks:
            if task.id in task_map:
                errors.append(f'Duplicate task ID: "{task.id}"')
            else:
                task_map[task.id] = task
        return task_map

    def _check_missing_dependencies(
        self,
        tasks: Sequence[Task],
        task_map: Dict[str, Task],
        errors: List[str],
        warnings: List[str],
    ) -> None:
        for task in tasks:
            for dep_id in task.dependencies:
                if dep_id not in task_map:
                    errors.append(f'Task "{task.id}" depends on unknown task "{dep_id}"')
            if not task.meta.description.strip():
                warnings.append(f'Task "{task.id}" has no description')

    def _check_cycles(self, tasks: Sequence[Task], task_map: Dict[str, Task], errors: List[str]) -> None:
        """Depth-first search with an explicit stack, following dependency edges.

        Each start point reports at most one cycle; start points follow declaration order.
        """
        visited: Set[str] = set()

        for task in tasks:
            if task.id in visited:
                continue

            visited.add(task.id)
            path: List[str] = [task.id]
            on_stack: Set[str] = {task.id}
            pending: List[Iterator[str]] = [iter(task_map[task.id].dependencies)]

            while pending:
                dep_id = next(pending[-1], None)
                if dep_id is None:
                    pending.pop()
                    on_stack.discard(path.pop())
                    continue
                if dep_id not in task_map:
                    continue
                if dep_id in on_stack:
                    cycle = path[path.index(dep_id):] + [dep_id]
                    errors.append(f"Circular dependency detected: {CYCLE_ARROW.join(cycle)}")
                    break
                if dep_id in visited:
                    continue

                visited.add(dep_id)
                on_stack.add(dep_id)
                path.append(dep_id)
                pending.append(iter(task_map[dep_id].dependencies))

    def _compute_depths(self, order: Sequence[str], task_map: Dict[str, Task]) -> Dict[str, int]:
        depths: Dict[str, int] = {}
        for task_id in order:
            deps = task_map[task_id].dependencies
            depths[task_id] = 1 + max((depths.get(dep, 0) for dep in deps), default=-1)
        return depths


def _argmax(counts: Dict[str, int]) -> Tuple[str, ...]:
    """Ids sharing the highest non-zero count, in insertion order."""
    highest = max(counts.values(), default=0)
    if highest == 0:
        return ()
    return tuple(task_id for task_id, count in counts.items() if count == highest)
