"""Reducer registry and discovery utilities."""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from collections.abc import Iterable
from importlib import metadata

from manifold_embedding_toolkit.errors import UnsupportedMethodError
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.reducer import Reducer


class ReducerRegistry:
    """Registry that discovers and stores reducer classes."""

    def __init__(self) -> None:
        self._reducers: dict[Method, type[Reducer]] = {}

    def register(self, reducer_cls: type[Reducer]) -> None:
        self._reducers[reducer_cls.method] = reducer_cls

    def discover_entry_points(self, group: str = "met.reducers") -> None:
        for entry_point in metadata.entry_points(group=group):
            loaded = entry_point.load()
            if inspect.isclass(loaded) and issubclass(loaded, Reducer):
                self.register(loaded)

    def discover_modules(
        self,
        package: str = "manifold_embedding_toolkit.reducers",
    ) -> None:
        pkg = importlib.import_module(package)
        for module_info in pkgutil.walk_packages(pkg.__path__, prefix=f"{package}."):
            module = importlib.import_module(module_info.name)
            for _, member in inspect.getmembers(module, inspect.isclass):
                if member is Reducer or not issubclass(member, Reducer):
                    continue
                # Intermediate base classes do not declare a method.
                if not hasattr(member, "method"):
                    continue
                self.register(member)

    def discover(self) -> None:
        self.discover_modules()
        self.discover_entry_points()

    def list_methods(self) -> list[Method]:
        return sorted(self._reducers, key=lambda method: method.value)

    def has(self, method: Method) -> bool:
        return method in self._reducers

    def get(self, method: Method) -> type[Reducer]:
        if method not in self._reducers:
            available = ", ".join(m.value for m in self.list_methods())
            raise UnsupportedMethodError(
                f"No reducer registered for '{method.value}'. Available: {available}"
            )
        return self._reducers[method]

    def items(self) -> Iterable[tuple[Method, type[Reducer]]]:
        return self._reducers.items()


_default_registry: ReducerRegistry | None = None


def default_registry() -> ReducerRegistry:
    """Registry of the built-in reducers plus installed plugins, built once."""
    global _default_registry
    if _default_registry is None:
        registry = ReducerRegistry()
        registry.discover()
        _default_registry = registry
    return _default_registry
