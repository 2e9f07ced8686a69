"""
Registries for services, commands and per-run tasks.

Registries are plain values handed to the orchestrator; nothing here is a
module-level singleton.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from ..errors import ErrorCode, RegistryError, ServiceResolutionError
from .workflow_engine.graph import GraphResolver
from .workflow_engine.groups import TaskGroup, expand_group
from .workflow_engine.tasks import Command, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceFactoryContext:
    """What a service factory receives when it is invoked."""

    base_path: Optional[str]
    get_service: Callable[[str], Any]


ServiceFactory = Callable[[ServiceFactoryContext], Any]


class ServiceBundle(Mapping):
    """Read-only mapping of resolved services with attribute access."""

    def __init__(self, services: Dict[str, Any]):
        self._services = dict(services)

    def __getitem__(self, key: str) -> Any:
        return self._services[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._services)

    def __len__(self) -> int:
        return len(self._services)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal attribute lookup fails
        services = self.__dict__.get("_services", {})
        if name in services:
            return services[name]
        raise AttributeError(f"No service named '{name}'")

    def __repr__(self) -> str:
        return f"ServiceBundle({sorted(self._services)!r})"


@dataclass(frozen=True)
class _ServiceEntry:
    factory: ServiceFactory
    dependencies: Tuple[str, ...]


class ServiceRegistry:
    """Lazily instantiates services in dependency order."""

    def __init__(self):
        self._entries: Dict[str, _ServiceEntry] = {}

    def register(self, key: str, factory: ServiceFactory, dependencies: Sequence[str] = ()) -> "ServiceRegistry":
        """Register a service factory.

        Args:
            key: Service key
            factory: Callable building the service from a ServiceFactoryContext
            dependencies: Keys of services that must be built first

        Returns:
            The registry, for chaining
        """
        if key in self._entries:
            logger.debug(f"Replacing service factory for '{key}'")
        self._entries[key] = _ServiceEntry(factory=factory, dependencies=tuple(dependencies))
        return self

    def has(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> List[str]:
        return list(self._entries)

    def resolve(self, keys: Iterable[str], base_path: Optional[str] = None) -> ServiceBundle:
        """Instantiate the requested services and their dependencies.

        Each service is built at most once per call.

        Args:
            keys: Service keys to resolve
            base_path: Passed to every factory

        Returns:
            ServiceBundle with the requested services

        Raises:
            ServiceResolutionError: On unknown keys or circular service dependencies
        """
        requested = list(keys)
        unknown = [key for key in requested if key not in self._entries]
        if unknown:
            raise ServiceResolutionError(
                f"Unknown service(s): {', '.join(unknown)}", source="ServiceRegistry.resolve"
            )

        instances: Dict[str, Any] = {}
        resolving: List[str] = []

        def build(key: str) -> Any:
            if key in instances:
                return instances[key]
            if key in resolving:
                raise _circular(resolving, key)
            if key not in self._entries:
                raise ServiceResolutionError(f"Unknown service: {key}", source="ServiceRegistry.resolve")

            # Shared with nested get_service calls made by factories
            base_depth = len(resolving)
            resolving.append(key)
            pending: List[Iterator[str]] = [iter(self._entries[key].dependencies)]
            try:
                while pending:
                    dep = next(pending[-1], None)
                    if dep is None:
                        pending.pop()
                        current = resolving[-1]
                        factory_context = ServiceFactoryContext(base_path=base_path, get_service=build)
                        instances[current] = self._entries[current].factory(factory_context)
                        resolving.pop()
                        logger.debug(f"Resolved service '{current}'")
                        continue
                    if dep in instances:
                        continue
                    if dep in resolving:
                        raise _circular(resolving, dep)
                    entry = self._entries.get(dep)
                    if entry is None:
                        raise ServiceResolutionError(f"Unknown service: {dep}", source="ServiceRegistry.resolve")
                    resolving.append(dep)
                    pending.append(iter(entry.dependencies))
            finally:
                del resolving[base_depth:]
            return instances[key]

        for key in requested:
            build(key)

        return ServiceBundle({key: instances[key] for key in requested})


class CommandRegistry:
    """Commands available to an orchestrator, by name."""

    def __init__(self, commands: Iterable[Command] = ()):
        self._commands: Dict[str, Command] = {}
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> "CommandRegistry":
        """Register a command.

        Raises:
            RegistryError: If a command with the same name exists
        """
        if command.name in self._commands:
            raise RegistryError(
                f'Command "{command.name}" is already registered', source="CommandRegistry.register"
            )
        self._commands[command.name] = command
        return self

    def get(self, name: str) -> Command:
        """Look up a command.

        Raises:
            RegistryError: If no command has that name
        """
        try:
            return self._commands[name]
        except KeyError:
            raise RegistryError(
                f'Command "{name}" not found',
                code=ErrorCode.NOT_FOUND,
                source="CommandRegistry.get",
            ) from None

    def has(self, name: str) -> bool:
        return name in self._commands

    def names(self) -> List[str]:
        return list(self._commands)


class TaskRegistry:
    """Collects the tasks of one run in declaration order.

    Groups are expanded as they are registered. Duplicate task ids are kept
    and left for graph validation to report.
    """

    def __init__(self):
        self._tasks: List[Task] = []
        self._groups: Dict[str, List[str]] = {}

    def register(self, task: Task) -> "TaskRegistry":
        self._tasks.append(task)
        return self

    def register_group(self, group: TaskGroup) -> "TaskRegistry":
        """Expand a group and register its tasks.

        Raises:
            RegistryError: If the group id is taken, or a dependency group is unknown
        """
        if group.id in self._groups:
            raise RegistryError(
                f'Task group "{group.id}" is already registered', source="TaskRegistry.register_group"
            )

        last_tasks = {gid: ids[-1] for gid, ids in self._groups.items() if ids}
        expanded = expand_group(group, last_tasks)
        self._groups[group.id] = [task.id for task in expanded]
        self._tasks.extend(expanded)
        logger.debug(f"Registered group {group.id} with {len(expanded)} task(s)")
        return self

    def register_all(self, items: Iterable[Union[Task, TaskGroup]]) -> "TaskRegistry":
        """Register tasks and groups in order."""
        for item in items:
            if isinstance(item, TaskGroup):
                self.register_group(item)
            elif isinstance(item, Task):
                self.register(item)
            else:
                raise RegistryError(
                    f"Expected Task or TaskGroup, got {type(item).__name__}",
                    code=ErrorCode.INVALID,
                    source="TaskRegistry.register_all",
                )
        return self

    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def group_ids(self) -> List[str]:
        return list(self._groups)

    def has_group(self, group_id: str) -> bool:
        return group_id in self._groups

    def group_task_ids(self, group_id: str) -> List[str]:
        """Namespaced task ids of a group.

        Raises:
            RegistryError: If the group is not registered
        """
        if group_id not in self._groups:
            raise RegistryError(
                f'Task group "{group_id}" not found',
                code=ErrorCode.NOT_FOUND,
                source="TaskRegistry.group_task_ids",
            )
        return list(self._groups[group_id])

    def build_execution_order(self, resolver: Optional[GraphResolver] = None) -> List[Task]:
        """Validate the registered tasks and return them in execution order.

        Raises:
            GraphValidationError: If the task graph is invalid
        """
        return (resolver or GraphResolver()).order_tasks(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)


def _circular(resolving: Sequence[str], key: str) -> ServiceResolutionError:
    chain = " → ".join(list(resolving[resolving.index(key):]) + [key])
    return ServiceResolutionError(f"Circular service dependency: {chain}", source="ServiceRegistry.resolve")
