"""Convenience API for buildservice-access — 3-line quickstart.

Example
-------
::

    from buildservice_access import AccessGuard
    guard = AccessGuard({"users": [{"login": "alice"}], "projects": [{"name": "home:alice"}]})
    print(guard.can_modify("alice", "home:alice"))  # True

"""
from __future__ import annotations

from typing import Any

from buildservice_access.config.loader import AccessConfig
from buildservice_access.permissions.engine import PermissionEngine
from buildservice_access.resources.models import Package, Project, Resource, User
from buildservice_access.resources.state_loader import State, StateLoader


class AccessGuard:
    """Name-based façade over a PermissionEngine built from a state snapshot.

    Parameters
    ----------
    state:
        Snapshot dict in the :class:`StateLoader` schema.  ``None`` means an
        empty world with the stock roles.
    config:
        Access configuration; defaults apply when omitted.
    """

    def __init__(
        self,
        state: dict[str, Any] | None = None,
        config: AccessConfig | None = None,
    ) -> None:
        self._state: State = StateLoader().load_from_dict(state or {})
        self._engine = PermissionEngine.from_config(
            config or AccessConfig(),
            self._state.store,
            self._state.relationships,
            roles=self._state.roles,
        )

    # ------------------------------------------------------------------
    # Name resolution
    # ------------------------------------------------------------------

    def user(self, login: str) -> User:
        user = self._state.store.find_user(login)
        if user is None:
            raise KeyError(f"Unknown user {login!r}")
        return user

    def resource(self, project: str | None, package: str | None = None) -> Resource | None:
        """Resolve names to a Project, a Package, or ``None`` when *project* is ``None``."""
        if project is None:
            return None
        found: Project | None = self._state.store.find_project(project)
        if found is None:
            raise KeyError(f"Unknown project {project!r}")
        if package is None:
            return found
        pkg: Package | None = self._state.store.find_package(project, package)
        if pkg is None:
            raise KeyError(f"Unknown package {project}/{package}")
        return pkg

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def has_permission(
        self,
        login: str,
        permission: str,
        project: str | None = None,
        package: str | None = None,
    ) -> bool:
        """Local permission check; global when *project* is omitted."""
        return self._engine.has_local_permission(
            self.user(login), permission, self.resource(project, package)
        )

    def can_modify(
        self,
        login: str,
        project: str,
        package: str | None = None,
        ignore_lock: bool = False,
    ) -> bool:
        return self._engine.can_modify(
            self.user(login), self.resource(project, package), ignore_lock=ignore_lock
        )

    def can_create_project(self, login: str, project_name: str) -> bool:
        return self._engine.can_create_project(self.user(login), project_name)

    @property
    def engine(self) -> PermissionEngine:
        return self._engine

    @property
    def state(self) -> State:
        return self._state

    def __repr__(self) -> str:
        return f"AccessGuard(engine={self._engine!r})"
