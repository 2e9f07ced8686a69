"""Tests for task models and the fluent task builder."""

import pytest
from pydantic import ValidationError

from relflow.errors import ErrorCode, TaskBuildError
from relflow.orchestration.workflow_engine.builder import TaskBuilder
from relflow.orchestration.workflow_engine.context import WorkflowContext
from relflow.orchestration.workflow_engine.skip_conditions import always, from_config
from relflow.orchestration.workflow_engine.tasks import (
    CommandMetadata,
    SkipDecision,
    TaskMetadata,
    create_task,
)


def _identity(ctx):
    return ctx


class TestTaskMetadata:
    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError):
            TaskMetadata(id="   ")

    def test_blank_dependency_rejected(self):
        with pytest.raises(ValidationError):
            TaskMetadata(id="a", dependencies=("",))

    def test_frozen(self):
        meta = TaskMetadata(id="a")
        with pytest.raises(ValidationError):
            meta.id = "b"

    def test_dependencies_coerced_to_tuple(self):
        meta = TaskMetadata(id="a", dependencies=["x", "y"])
        assert meta.dependencies == ("x", "y")


class TestSkipDecision:
    def test_skip_to_tasks_stored_as_tuple(self):
        decision = SkipDecision(should_skip=True, skip_to_tasks=["a", "b"])
        assert decision.skip_to_tasks == ("a", "b")

    def test_defaults(self):
        decision = SkipDecision(should_skip=False)
        assert decision.reason is None
        assert decision.skip_to_tasks == ()


class TestCreateTask:
    def test_properties(self):
        task = create_task("bump", _identity, description="Bump", dependencies=["detect"])

        assert task.id == "bump"
        assert task.dependencies == ("detect",)
        assert task.should_skip is None
        assert task.undo is None

    def test_tasks_hash_by_id(self):
        a = create_task("a", _identity)
        assert len({a, a}) == 1


class TestTaskBuilder:
    def test_full_chain(self):
        def undo(ctx):
            return None

        task = (
            TaskBuilder.create("bump-version")
            .description("Writes the next version")
            .depends_on("determine-version")
            .depends_on_all("read-manifest", "check-clean")
            .tagged("release")
            .execute(_identity)
            .with_undo(undo)
            .build()
        )

        assert task.id == "bump-version"
        assert task.dependencies == ("determine-version", "read-manifest", "check-clean")
        assert task.meta.tags == ("release",)
        assert task.undo is undo

    def test_missing_execute(self):
        builder = TaskBuilder.create("a").description("A")
        with pytest.raises(TaskBuildError) as exc_info:
            builder.build()
        assert "execute function" in exc_info.value.message
        assert exc_info.value.code == ErrorCode.INVALID

    def test_missing_description(self):
        with pytest.raises(TaskBuildError, match="must have a description"):
            TaskBuilder.create("a").execute(_identity).build()

    def test_blank_description(self):
        with pytest.raises(TaskBuildError):
            TaskBuilder.create("a").description("  ").execute(_identity).build()

    def test_skip_when_uses_default_reason(self):
        task = TaskBuilder.create("a").description("A").skip_when(always(True)).execute(_identity).build()
        decision = task.should_skip(WorkflowContext.create())

        assert decision.should_skip is True
        assert decision.reason == "condition not met"

    def test_skip_when_with_reason(self):
        task = (
            TaskBuilder.create("changelog")
            .description("Generate changelog")
            .skip_when_with_reason(from_config("skip_changelog"), "changelog disabled")
            .execute(_identity)
            .build()
        )
        decision = task.should_skip(WorkflowContext.create({"skip_changelog": True}))

        assert decision.should_skip is True
        assert decision.reason == "changelog disabled"

    def test_skip_when_and_jump_to(self):
        task = (
            TaskBuilder.create("a")
            .description("A")
            .skip_when_and_jump_to(always(True), "d", "e")
            .execute(_identity)
            .build()
        )
        decision = task.should_skip(WorkflowContext.create())
        assert decision.skip_to_tasks == ("d", "e")


class TestCommandMetadata:
    def test_defaults(self):
        meta = CommandMetadata(name="release", description="Cut a release")
        assert meta.required_services == ()
        assert meta.config_schema is None

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            CommandMetadata(name="", description="x")
