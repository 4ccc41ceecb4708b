"""In-memory registry of principals and resources.

ResourceStore is the read side the engine and the hierarchy walker use to
resolve names to objects: project by name, package by project and name,
user by login, group by title or id.  Writes come from the
resource-management layer (or a :class:`StateLoader` snapshot) and are
guarded by a lock so that a permission check issued after a write sees it.

Example
-------
>>> store = ResourceStore()
>>> store.add_project(Project(id=1, name="openSUSE:Factory"))
>>> store.find_project("openSUSE:Factory").id
1
>>> store.find_project("openSUSE") is None
True
"""
from __future__ import annotations

import threading
from dataclasses import replace

from buildservice_access.resources.models import Group, Package, Project, User


class ResourceStore:
    """Thread-safe lookup tables for users, groups, projects and packages."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._groups_by_id: dict[int, Group] = {}
        self._groups_by_title: dict[str, Group] = {}
        self._projects: dict[str, Project] = {}
        self._packages: dict[tuple[str, str], Package] = {}

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def add_user(self, user: User) -> None:
        with self._lock:
            self._users[user.login] = user

    def add_group(self, group: Group) -> None:
        with self._lock:
            self._groups_by_id[group.id] = group
            self._groups_by_title[group.title] = group

    def add_project(self, project: Project) -> None:
        with self._lock:
            self._projects[project.name] = project

    def add_package(self, package: Package) -> None:
        with self._lock:
            self._packages[(package.project.name, package.name)] = package

    def add_user_to_group(self, login: str, group_title: str) -> User:
        """Record local group membership and return the updated user.

        Raises
        ------
        KeyError
            If the user or the group is unknown.
        """
        with self._lock:
            user = self._users[login]
            group = self._groups_by_title[group_title]
            updated = replace(user, groups=user.groups | {group})
            self._users[login] = updated
            return updated

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def find_user(self, login: str) -> User | None:
        with self._lock:
            return self._users.get(login)

    def find_group(self, group_id: int) -> Group | None:
        with self._lock:
            return self._groups_by_id.get(group_id)

    def find_group_by_title(self, title: str) -> Group | None:
        with self._lock:
            return self._groups_by_title.get(title)

    def find_project(self, name: str) -> Project | None:
        with self._lock:
            return self._projects.get(name)

    def find_package(self, project_name: str, name: str) -> Package | None:
        with self._lock:
            return self._packages.get((project_name, name))

    def users(self) -> list[User]:
        with self._lock:
            return sorted(self._users.values(), key=lambda u: u.login)

    def groups(self) -> list[Group]:
        with self._lock:
            return sorted(self._groups_by_id.values(), key=lambda g: g.title)

    def projects(self) -> list[Project]:
        with self._lock:
            return sorted(self._projects.values(), key=lambda p: p.name)

    def packages(self) -> list[Package]:
        with self._lock:
            return sorted(self._packages.values(), key=lambda p: p.full_name)
