"""Directed graph of binding dependencies with a dependencies-first ordering."""

from typing import Hashable, Iterable

from bindery.errors import CircularDependency

__all__ = ["DependencyGraph"]


class DependencyGraph:
    """
    Graph of keys and the keys they depend on.

    Only keys passed to :meth:`add` are declared nodes. A dependency that is
    never declared is a leaf: it has no dependencies of its own, but still
    appears in the ordering.
    """

    def __init__(self):
        self._dependencies: dict[Hashable, list[Hashable]] = {}

    def add(self, key: Hashable, dependencies: Iterable[Hashable] = ()):
        """
        Declare a node and the keys it depends on.

        Declaring the same key again adds to its dependencies.
        """
        known = self._dependencies.setdefault(key, [])
        for dependency in dependencies:
            if dependency not in known:
                known.append(dependency)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._dependencies

    def order(self) -> list[Hashable]:
        """
        Order every key so that each key's dependencies precede it.

        Declared nodes are visited in declaration order, and dependencies in
        the order they were added, so the result is deterministic.

        Raises:
            CircularDependency: With the path of the first cycle found,
                starting and ending with the repeated key.
        """
        ordered: list[Hashable] = []
        done: set = set()
        for key in self._dependencies:
            self._visit(key, (), done, ordered)
        return ordered

    def _visit(self, key, path: tuple, done: set, ordered: list):
        if key in done:
            return
        if key in path:
            raise CircularDependency(path[path.index(key):] + (key,))

        for dependency in self._dependencies.get(key, ()):
            self._visit(dependency, path + (key,), done, ordered)

        done.add(key)
        ordered.append(key)
