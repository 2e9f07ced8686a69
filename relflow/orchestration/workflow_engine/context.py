"""
Immutable workflow context.

A context carries the read-only configuration, the resolved services and the
data accumulated by tasks. Tasks never mutate a context: every update forks a
new instance that shares config and services with its parent and owns a
fresh copy of the data map.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Optional

from ...errors import ContextKeyError

_MISSING = object()


class WorkflowContext:
    """Immutable context that flows through task execution."""

    __slots__ = ("_start_time", "_config", "_services", "_data", "_dry_run", "_frozen_data", "__weakref__")

    def __init__(
        self,
        start_time: datetime,
        config: Any,
        data: Dict[str, Any],
        services: Any = None,
        dry_run: bool = False,
    ):
        # Callers go through create(); fork() reuses config and services as-is.
        self._start_time = start_time
        self._config = config
        self._services = services
        self._data = data
        self._dry_run = dry_run
        self._frozen_data: Optional[MappingProxyType] = None

    @classmethod
    def create(
        cls,
        config: Any = None,
        services: Any = None,
        initial_data: Optional[Mapping] = None,
        dry_run: bool = False,
    ) -> "WorkflowContext":
        """Create the root context of a run.

        Args:
            config: Workflow configuration; mappings are frozen into a read-only view
            services: Resolved services bundle
            initial_data: Optional starting data values
            dry_run: Whether tasks should simulate side effects

        Returns:
            New WorkflowContext
        """
        if config is None:
            config = {}
        if isinstance(config, Mapping):
            config = MappingProxyType(dict(config))
        return cls(datetime.now(), config, dict(initial_data or {}), services, dry_run)

    @property
    def start_time(self) -> datetime:
        return self._start_time

    @property
    def config(self) -> Any:
        return self._config

    @property
    def services(self) -> Any:
        return self._services

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def data(self) -> Mapping:
        """Read-only view of the accumulated data."""
        if self._frozen_data is None:
            self._frozen_data = MappingProxyType(self._data)
        return self._frozen_data

    def get(self, key: str) -> Any:
        """Get a data value.

        Raises:
            ContextKeyError: If the key is absent
        """
        if key not in self._data:
            raise ContextKeyError(key)
        return self._data[key]

    def get_or(self, key: str, default: Any = None) -> Any:
        """Get a data value, falling back to ``default`` when absent."""
        return self._data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._data

    def fork(self, key: str, value: Any) -> "WorkflowContext":
        """Return a new context with one data key replaced.

        The same instance is returned when the stored value is the identical object.
        """
        if self._data.get(key, _MISSING) is value:
            return self

        updated = dict(self._data)
        updated[key] = value
        return self._derive(updated)

    def fork_multiple(self, updates: Mapping) -> "WorkflowContext":
        """Return a new context with several data keys replaced."""
        if not updates:
            return self

        if all(self._data.get(key, _MISSING) is value for key, value in updates.items()):
            return self

        updated = dict(self._data)
        updated.update(updates)
        return self._derive(updated)

    def snapshot(self) -> Mapping:
        """Read-only snapshot of the current data."""
        return self.data

    def _derive(self, data: Dict[str, Any]) -> "WorkflowContext":
        return WorkflowContext(self._start_time, self._config, data, self._services, self._dry_run)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"WorkflowContext(keys={sorted(self._data)!r}, dry_run={self._dry_run})"
