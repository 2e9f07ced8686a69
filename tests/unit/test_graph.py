"""Tests for relflow.orchestration.workflow_engine.graph module."""

import pytest

from relflow.errors import CycleError, ErrorCode, GraphValidationError
from relflow.orchestration.workflow_engine.graph import GraphResolver


@pytest.fixture
def resolver():
    return GraphResolver()


def _assert_dependencies_first(order, tasks):
    position = {task_id: index for index, task_id in enumerate(order)}
    for task in tasks:
        for dep in task.dependencies:
            assert position[dep] < position[task.id]


class TestValidate:
    """Tests for GraphResolver.validate()."""

    def test_valid_graph_orders_every_task(self, resolver, make_task):
        tasks = [
            make_task("publish", deps=["tag", "changelog"]),
            make_task("tag", deps=["bump"]),
            make_task("bump"),
            make_task("changelog", deps=["bump"]),
        ]
        result = resolver.validate(tasks)

        assert result.is_valid
        assert result.errors == ()
        assert sorted(result.execution_order) == sorted(t.id for t in tasks)
        _assert_dependencies_first(result.execution_order, tasks)

    def test_ties_broken_by_declaration_order(self, resolver, make_task):
        tasks = [make_task("c"), make_task("a"), make_task("b")]
        assert resolver.validate(tasks).execution_order == ("c", "a", "b")

    def test_diamond_order(self, resolver, make_task):
        tasks = [
            make_task("root"),
            make_task("left", deps=["root"]),
            make_task("right", deps=["root"]),
            make_task("join", deps=["left", "right"]),
        ]
        result = resolver.validate(tasks)

        assert result.execution_order == ("root", "left", "right", "join")
        assert dict(result.depth_map) == {"root": 0, "left": 1, "right": 1, "join": 2}

    def test_depth_is_longest_path(self, resolver, make_task):
        tasks = [
            make_task("a"),
            make_task("b", deps=["a"]),
            make_task("c", deps=["b"]),
            make_task("d", deps=["a", "c"]),
        ]
        assert resolver.validate(tasks).depth_map["d"] == 3

    def test_deterministic(self, resolver, make_task):
        tasks = [make_task("x"), make_task("y"), make_task("z", deps=["x"]), make_task("w", deps=["y"])]
        assert resolver.validate(tasks).execution_order == resolver.validate(tasks).execution_order

    def test_two_node_cycle(self, resolver, make_task):
        result = resolver.validate([make_task("A", deps=["B"]), make_task("B", deps=["A"])])

        assert not result.is_valid
        assert result.execution_order == ()
        cycle_errors = [e for e in result.errors if "Circular dependency" in e]
        assert cycle_errors
        assert "A" in cycle_errors[0] and "B" in cycle_errors[0]
        assert "A → B → A" in cycle_errors[0]

    def test_three_node_cycle_trace(self, resolver, make_task):
        tasks = [
            make_task("A", deps=["C"]),
            make_task("B", deps=["A"]),
            make_task("C", deps=["B"]),
        ]
        result = resolver.validate(tasks)
        assert any("A → C → B → A" in e for e in result.errors)

    def test_self_dependency(self, resolver, make_task):
        result = resolver.validate([make_task("A", deps=["A"])])
        assert any("A → A" in e for e in result.errors)

    def test_cycle_reported_once_with_downstream_task(self, resolver, make_task):
        tasks = [
            make_task("A", deps=["B"]),
            make_task("B", deps=["A"]),
            make_task("C", deps=["A"]),
        ]
        result = resolver.validate(tasks)

        assert len([e for e in result.errors if "Circular" in e]) == 1

    def test_long_chain_declared_leaf_first(self, resolver, make_task):
        tasks = [make_task("t0")] + [make_task(f"t{i}", deps=[f"t{i - 1}"]) for i in range(1, 1500)]
        result = resolver.validate(list(reversed(tasks)))

        assert result.is_valid
        assert result.execution_order[0] == "t0"
        assert result.execution_order[-1] == "t1499"
        assert result.depth_map["t1499"] == 1499

    def test_cycle_at_end_of_long_chain(self, resolver, make_task):
        tasks = [make_task("t0", deps=["t1499"])] + [
            make_task(f"t{i}", deps=[f"t{i - 1}"]) for i in range(1, 1500)
        ]
        result = resolver.validate(list(reversed(tasks)))

        cycle_errors = [e for e in result.errors if "Circular" in e]
        assert len(cycle_errors) == 1
        assert cycle_errors[0].startswith("Circular dependency detected: t1499 → t1498")
        assert cycle_errors[0].endswith("t0 → t1499")

    def test_duplicate_ids(self, resolver, make_task):
        result = resolver.validate([make_task("x"), make_task("x")])

        assert not result.is_valid
        assert 'Duplicate task ID: "x"' in result.errors
        assert list(result.execution_order).count("x") == 0

    def test_unknown_dependencies_all_collected(self, resolver, make_task):
        tasks = [make_task("a", deps=["ghost"]), make_task("b", deps=["phantom"])]
        result = resolver.validate(tasks)

        assert 'Task "a" depends on unknown task "ghost"' in result.errors
        assert 'Task "b" depends on unknown task "phantom"' in result.errors
        assert result.execution_order == ()

    def test_blank_description_is_warning(self, resolver):
        from relflow.orchestration.workflow_engine.tasks import create_task

        result = resolver.validate([create_task("a", lambda ctx: ctx)])

        assert result.is_valid
        assert result.warnings == ('Task "a" has no description',)

    def test_empty_task_list_is_valid(self, resolver):
        result = resolver.validate([])
        assert result.is_valid
        assert result.execution_order == ()


class TestTopologicalSort:
    def test_returns_ids(self, resolver, make_task):
        order = resolver.topological_sort([make_task("b", deps=["a"]), make_task("a")])
        assert order == ["a", "b"]

    def test_cycle_raises(self, resolver, make_task):
        with pytest.raises(CycleError) as exc_info:
            resolver.topological_sort([make_task("a", deps=["b"]), make_task("b", deps=["a"])])

        assert "Circular dependency detected in task graph" in exc_info.value.message
        assert set(exc_info.value.cycle) == {"a", "b"}
        assert exc_info.value.code == ErrorCode.INVALID


class TestOrderTasks:
    def test_returns_tasks_in_order(self, resolver, make_task):
        a, b = make_task("a"), make_task("b", deps=["a"])
        assert resolver.order_tasks([b, a]) == [a, b]

    def test_invalid_graph_raises(self, resolver, make_task):
        with pytest.raises(GraphValidationError) as exc_info:
            resolver.order_tasks([make_task("a", deps=["missing"])])

        assert exc_info.value.code == ErrorCode.VALIDATION
        assert exc_info.value.errors == ['Task "a" depends on unknown task "missing"']
        assert not exc_info.value.result.is_valid


class TestStatistics:
    def test_statistics(self, resolver, make_task):
        tasks = [
            make_task("a"),
            make_task("b", deps=["a"]),
            make_task("c", deps=["a"]),
            make_task("d", deps=["b", "c"]),
        ]
        stats = resolver.statistics(tasks)

        assert stats.total_tasks == 4
        assert stats.root_tasks == ("a",)
        assert stats.leaf_tasks == ("d",)
        assert stats.max_depth == 2
        assert stats.total_edges == 4
        assert stats.avg_dependencies == 1.0
        assert stats.max_fan_in_tasks == ("d",)
        assert stats.max_fan_out_tasks == ("a",)

    def test_statistics_no_edges(self, resolver, make_task):
        stats = resolver.statistics([make_task("a"), make_task("b")])

        assert stats.total_edges == 0
        assert stats.max_fan_in_tasks == ()
        assert stats.max_fan_out_tasks == ()
        assert stats.leaf_tasks == ("a", "b")

    def test_statistics_count_duplicate_ids_once(self, resolver, make_task):
        stats = resolver.statistics([make_task("a"), make_task("a"), make_task("b", deps=["a"])])

        assert stats.total_tasks == 2
        assert stats.root_tasks == ("a",)
        assert stats.leaf_tasks == ("b",)
        assert stats.total_edges == 1

    def test_statistics_empty(self, resolver):
        stats = resolver.statistics([])
        assert stats.total_tasks == 0
        assert stats.avg_dependencies == 0.0

    def test_build_graph_edges_point_to_dependents(self, resolver, make_task):
        graph = resolver.build_graph([make_task("a"), make_task("b", deps=["a", "ghost"])])

        assert list(graph.edges) == [("a", "b")]
        assert "ghost" not in graph
