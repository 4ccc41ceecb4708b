"""Roles and the permission → role lookup.

A Role is a named bundle of static permission names.  Roles are
configuration data: they are loaded once at startup (see
:mod:`buildservice_access.permissions.role_loader`) and never change while
the process runs, so the reverse lookup "which roles grant permission X"
can be memoised safely.

Example
-------
>>> registry = RoleRegistry.defaults()
>>> sorted(registry.ids_with_permission("change_package"))
['Admin', 'maintainer']
>>> registry.ids_with_permission("no_such_permission")
frozenset()
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stock roles
# ---------------------------------------------------------------------------

_ALL_PERMISSIONS: tuple[str, ...] = (
    "access",
    "change_package",
    "change_project",
    "create_package",
    "create_project",
    "download_binaries",
    "source_access",
    "status_message_create",
)

_DEFAULT_ROLES: tuple[tuple[str, bool, tuple[str, ...]], ...] = (
    ("Admin", True, _ALL_PERMISSIONS),
    ("Staff", True, ("access", "download_binaries", "source_access", "status_message_create")),
    (
        "maintainer",
        False,
        (
            "access",
            "change_package",
            "change_project",
            "create_package",
            "create_project",
            "download_binaries",
            "source_access",
        ),
    ),
    ("bugowner", False, ()),
    ("reviewer", False, ()),
    ("downloader", False, ("download_binaries",)),
    ("reader", False, ("access", "source_access")),
)


@dataclass(frozen=True)
class Role:
    """A named permission bundle.

    Attributes
    ----------
    title:
        Unique role name; also the role identifier used in relationships.
    global_role:
        Whether the role is meant to be held globally rather than on a
        project or package.
    permissions:
        Static permission names the role grants.
    """

    title: str
    global_role: bool = False
    permissions: frozenset[str] = field(default_factory=frozenset)

    def grants(self, permission: str) -> bool:
        return permission in self.permissions


class RoleRegistry:
    """Maps permission names to the roles that grant them.

    Parameters
    ----------
    roles:
        The complete role set.  Titles must be unique.

    Raises
    ------
    ValueError
        If two roles share a title.
    """

    def __init__(self, roles: Iterable[Role]) -> None:
        self._roles: dict[str, Role] = {}
        for role in roles:
            if role.title in self._roles:
                raise ValueError(f"Duplicate role title {role.title!r}.")
            self._roles[role.title] = role
        self._lock = threading.Lock()
        self._by_permission: dict[str, frozenset[str]] = {}

    @classmethod
    def defaults(cls) -> RoleRegistry:
        """Return a registry holding the build service's stock roles."""
        return cls(
            Role(title=title, global_role=global_role, permissions=frozenset(perms))
            for title, global_role, perms in _DEFAULT_ROLES
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, title: str) -> Role | None:
        return self._roles.get(title)

    def __contains__(self, title: object) -> bool:
        return title in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def roles(self) -> list[Role]:
        """Return all roles sorted by title."""
        return sorted(self._roles.values(), key=lambda r: r.title)

    def ids_with_permission(self, permission: str) -> frozenset[str]:
        """Return the titles of all roles granting *permission*.

        Unknown permission names yield an empty set.  Results are cached
        per permission name.
        """
        with self._lock:
            cached = self._by_permission.get(permission)
            if cached is not None:
                return cached
        found = frozenset(
            title for title, role in self._roles.items() if role.grants(permission)
        )
        with self._lock:
            self._by_permission[permission] = found
        logger.debug("Roles granting %r: %s", permission, sorted(found))
        return found

    def any_grants(self, role_titles: Iterable[str], permission: str) -> bool:
        """Return True if any of the named roles grants *permission*."""
        granting = self.ids_with_permission(permission)
        return any(title in granting for title in role_titles)

    def summary(self) -> dict[str, object]:
        """Return a plain dict describing the registry contents."""
        return {
            "role_count": len(self._roles),
            "global_roles": sorted(t for t, r in self._roles.items() if r.global_role),
            "permissions": sorted({p for r in self._roles.values() for p in r.permissions}),
        }
