"""Resource hierarchy navigation.

A package's parent is its owning project.  A project's parent is derived
from its name: ``"A:B:C"`` has parent ``"A:B"`` if such a project exists.
Names without a colon, or with an empty segment at either end of the last
separator (``"A:"``, ``":A"``), have no parent.

The naming scheme cannot produce cycles, but :meth:`HierarchyWalker.ancestors`
still tracks visited resources and stops at a depth bound, so a misbehaving
store can never send a permission check into an endless walk.

Example
-------
>>> store = ResourceStore()
>>> store.add_project(Project(id=1, name="devel"))
>>> store.add_project(Project(id=2, name="devel:tools"))
>>> walker = HierarchyWalker(store)
>>> walker.parent_of(store.find_project("devel:tools")).name
'devel'
>>> walker.parent_name("devel") is None
True
"""
from __future__ import annotations

import logging
from typing import Iterator

from buildservice_access.resources.models import (
    PROJECT_SEPARATOR,
    Package,
    Project,
    Resource,
)
from buildservice_access.resources.store import ResourceStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH: int = 32


class HierarchyWalker:
    """Yields the parent of a resource, terminating at a root project.

    Parameters
    ----------
    store:
        Used to resolve a derived parent name to an existing project.
    max_depth:
        Upper bound on the number of parents :meth:`ancestors` yields.
    """

    def __init__(self, store: ResourceStore, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1; got {max_depth}.")
        self._store = store
        self._max_depth = max_depth

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @staticmethod
    def parent_name(name: str) -> str | None:
        """Return the name one level up, or ``None`` for root/malformed names."""
        head, separator, tail = name.rpartition(PROJECT_SEPARATOR)
        if not separator or not head or not tail:
            return None
        return head

    def parent_of_name(self, name: str) -> Project | None:
        """Resolve the project that would directly contain a project named *name*.

        Works for names that do not exist yet, which is what project
        creation checks need.
        """
        parent = self.parent_name(name)
        if parent is None:
            return None
        return self._store.find_project(parent)

    def parent_of(self, resource: Resource) -> Project | None:
        """Return the parent of *resource*, or ``None`` at the root."""
        if isinstance(resource, Package):
            return resource.owning_project()
        if isinstance(resource, Project):
            return self.parent_of_name(resource.name)
        return None

    def ancestors(self, resource: Resource) -> Iterator[Project]:
        """Yield every ancestor of *resource*, nearest first.

        Stops silently at the root.  Stops with a warning when a resource
        repeats or the depth bound is reached.
        """
        seen: set[tuple[str, str]] = {resource.key}
        current: Resource = resource
        for _ in range(self._max_depth):
            parent = self.parent_of(current)
            if parent is None:
                return
            if parent.key in seen:
                logger.warning(
                    "Cycle in resource hierarchy at %s (reached from %s); stopping.",
                    parent.name,
                    current,
                )
                return
            seen.add(parent.key)
            yield parent
            current = parent
        if self.parent_of(current) is None:
            return
        logger.warning(
            "Resource hierarchy above %s deeper than %d levels; stopping.",
            resource,
            self._max_depth,
        )
