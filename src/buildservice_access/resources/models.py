"""Principals and resources seen by the permission engine.

The engine only reads these objects.  Creating users, groups, projects and
packages belongs to the resource-management layer; here they are plain
immutable value objects.

Resources form a closed set: :class:`Project` and :class:`Package`.  A
``None`` resource is meaningful in a few places (global-only checks, remote
packages) and is spelled out as ``Resource | None`` where it is accepted.

Example
-------
>>> alice = User(id=1, login="alice")
>>> home = Project(id=10, name=home_project_name(alice))
>>> home.name
'home:alice'
>>> Package(id=20, name="bar", project=Project(id=11, name="foo")).key
('package', 'foo/bar')
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

HOME_PREFIX: str = "home:"
PROJECT_SEPARATOR: str = ":"


@dataclass(frozen=True)
class Group:
    """A named set of users that can hold roles on resources."""

    id: int
    title: str

    def __str__(self) -> str:
        return self.title


@dataclass(frozen=True)
class User:
    """A user principal.

    Attributes
    ----------
    id:
        Unique identifier.
    login:
        Unique login name; also determines the home project name.
    global_roles:
        Titles of the roles held globally (not scoped to any resource).
        Holding the configured admin role makes the user an administrator.
    groups:
        Groups the user is a member of in the local database.
    """

    id: int
    login: str
    global_roles: frozenset[str] = field(default_factory=frozenset)
    groups: frozenset[Group] = field(default_factory=frozenset)

    @property
    def group_ids(self) -> frozenset[int]:
        return frozenset(g.id for g in self.groups)

    def __str__(self) -> str:
        return self.login


@dataclass(frozen=True)
class Project:
    """A project; its parent is derived from the colon-delimited name."""

    id: int
    name: str
    locked: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return ("project", self.name)

    def is_locked(self) -> bool:
        return self.locked

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Package:
    """A package; always owned by exactly one project."""

    id: int
    name: str
    project: Project
    locked: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return ("package", f"{self.project.name}/{self.name}")

    @property
    def full_name(self) -> str:
        return f"{self.project.name}/{self.name}"

    def owning_project(self) -> Project:
        return self.project

    def is_locked(self) -> bool:
        return self.locked

    def __str__(self) -> str:
        return self.full_name


Resource = Union[Project, Package]
Principal = Union[User, Group]


def home_project_name(user: User) -> str:
    """Return the name of the user's home project (``home:<login>``)."""
    return f"{HOME_PREFIX}{user.login}"


def branch_project_name(user: User, branch: str) -> str:
    """Return the name of a branch project below the user's home project."""
    return f"{home_project_name(user)}{PROJECT_SEPARATOR}branches{PROJECT_SEPARATOR}{branch}"
