"""Tests for service, command and task registries."""

import pytest

from relflow.errors import ErrorCode, GraphValidationError, RegistryError, ServiceResolutionError
from relflow.orchestration.registry import CommandRegistry, ServiceBundle, ServiceRegistry, TaskRegistry
from relflow.orchestration.workflow_engine.groups import TaskGroup
from relflow.orchestration.workflow_engine.tasks import Command, CommandMetadata


class FakeFileSystem:
    def __init__(self, base_path):
        self.base_path = base_path


class FakeGit:
    def __init__(self, fs):
        self.fs = fs


class TestServiceRegistry:
    def test_resolves_dependencies_first(self):
        order = []

        def make_fs(ctx):
            order.append("fs")
            return FakeFileSystem(ctx.base_path)

        def make_git(ctx):
            order.append("git")
            return FakeGit(ctx.get_service("fs"))

        registry = ServiceRegistry().register("fs", make_fs).register("git", make_git, dependencies=["fs"])
        bundle = registry.resolve(["git"], base_path="/repo")

        assert order == ["fs", "git"]
        assert bundle.git.fs.base_path == "/repo"
        assert list(bundle) == ["git"]

    def test_each_service_built_once_per_resolve(self):
        calls = []

        def make_fs(ctx):
            calls.append("fs")
            return FakeFileSystem(ctx.base_path)

        registry = (
            ServiceRegistry()
            .register("fs", make_fs)
            .register("git", lambda ctx: FakeGit(ctx.get_service("fs")), dependencies=["fs"])
        )
        bundle = registry.resolve(["fs", "git"])

        assert calls == ["fs"]
        assert bundle["git"].fs is bundle["fs"]

    def test_unknown_service(self):
        with pytest.raises(ServiceResolutionError) as exc_info:
            ServiceRegistry().resolve(["git"])
        assert exc_info.value.code == ErrorCode.NOT_FOUND
        assert "git" in exc_info.value.message

    def test_unknown_dependency(self):
        registry = ServiceRegistry().register("git", lambda ctx: None, dependencies=["fs"])
        with pytest.raises(ServiceResolutionError, match="Unknown service: fs"):
            registry.resolve(["git"])

    def test_circular_dependency(self):
        registry = (
            ServiceRegistry()
            .register("a", lambda ctx: None, dependencies=["b"])
            .register("b", lambda ctx: None, dependencies=["a"])
        )
        with pytest.raises(ServiceResolutionError, match="Circular service dependency: a → b → a"):
            registry.resolve(["a"])

    def test_long_dependency_chain(self):
        registry = ServiceRegistry().register("s0", lambda ctx: 0)
        for i in range(1, 1500):
            registry.register(f"s{i}", lambda ctx, i=i: ctx.get_service(f"s{i - 1}") + 1, dependencies=[f"s{i - 1}"])

        assert registry.resolve(["s1499"]).s1499 == 1499

    def test_factory_requesting_itself_is_circular(self):
        registry = ServiceRegistry().register("a", lambda ctx: ctx.get_service("a"))
        with pytest.raises(ServiceResolutionError, match="Circular service dependency: a → a"):
            registry.resolve(["a"])

    def test_has_and_keys(self):
        registry = ServiceRegistry().register("fs", lambda ctx: None)
        assert registry.has("fs")
        assert registry.keys() == ["fs"]


class TestServiceBundle:
    def test_read_only_mapping(self):
        bundle = ServiceBundle({"fs": 1})

        assert bundle["fs"] == 1
        assert bundle.fs == 1
        assert len(bundle) == 1
        with pytest.raises(TypeError):
            bundle["fs"] = 2

    def test_missing_attribute(self):
        with pytest.raises(AttributeError, match="No service named 'git'"):
            ServiceBundle({}).git


def _command(name="release"):
    return Command(meta=CommandMetadata(name=name, description="Cut a release"), build_tasks=lambda ctx: [])


class TestCommandRegistry:
    def test_register_and_get(self):
        command = _command()
        registry = CommandRegistry([command])

        assert registry.get("release") is command
        assert registry.has("release")
        assert registry.names() == ["release"]

    def test_duplicate_rejected(self):
        registry = CommandRegistry([_command()])
        with pytest.raises(RegistryError) as exc_info:
            registry.register(_command())
        assert exc_info.value.code == ErrorCode.CONFLICT

    def test_missing_command(self):
        with pytest.raises(RegistryError) as exc_info:
            CommandRegistry().get("nope")
        assert exc_info.value.code == ErrorCode.NOT_FOUND


class TestTaskRegistry:
    def test_keeps_declaration_order_and_expands_groups(self, make_task):
        registry = TaskRegistry().register_all(
            [
                make_task("bump"),
                TaskGroup(id="git", description="Git", tasks=[make_task("commit", deps=["bump"]), make_task("tag")]),
                TaskGroup(id="publish", description="Publish", tasks=[make_task("push")], depends_on_groups=["git"]),
            ]
        )

        assert [t.id for t in registry.tasks()] == ["bump", "git:commit", "git:tag", "publish:push"]
        assert registry.group_ids() == ["git", "publish"]
        assert registry.has_group("git")
        assert registry.group_task_ids("git") == ["git:commit", "git:tag"]
        assert registry.tasks()[3].dependencies == ("git:tag",)
        assert len(registry) == 4

    def test_duplicate_group_rejected(self, make_task):
        registry = TaskRegistry().register_group(TaskGroup(id="g", description="G", tasks=[make_task("a")]))
        with pytest.raises(RegistryError, match="already registered"):
            registry.register_group(TaskGroup(id="g", description="G", tasks=[make_task("b")]))

    def test_unknown_group(self):
        with pytest.raises(RegistryError) as exc_info:
            TaskRegistry().group_task_ids("missing")
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_rejects_other_items(self):
        with pytest.raises(RegistryError, match="Expected Task or TaskGroup"):
            TaskRegistry().register_all(["not a task"])

    def test_duplicate_task_ids_reported_by_validation(self, make_task):
        registry = TaskRegistry().register_all([make_task("a"), make_task("a")])

        assert len(registry) == 2
        with pytest.raises(GraphValidationError, match='Duplicate task ID: "a"'):
            registry.build_execution_order()

    def test_build_execution_order(self, make_task):
        registry = TaskRegistry().register_all([make_task("b", deps=["a"]), make_task("a")])
        assert [t.id for t in registry.build_execution_order()] == ["a", "b"]
