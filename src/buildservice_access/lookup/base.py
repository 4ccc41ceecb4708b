"""Group membership and role resolution interface.

Some deployments keep group membership in the local database; others
resolve it through an external directory whose facts never reach the
local relationship tables.  PermissionEngine asks a LookupStrategy only
after its own checks against the local index came up empty.

Every method returns a definite boolean.  Implementations that talk to an
external system must turn failures into ``False`` themselves.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection

from buildservice_access.resources.models import Group, Resource, User


class LookupStrategy(ABC):
    """Resolves group membership and role facts not materialised locally."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and audit records."""

    @abstractmethod
    def is_in_group(self, user: User, group: Group) -> bool:
        """Return True if *user* is a member of *group*."""

    @abstractmethod
    def local_role_check(self, user: User, role: str, resource: Resource) -> bool:
        """Return True if *user* holds *role* on *resource* through this strategy."""

    @abstractmethod
    def local_permission_check(
        self,
        user: User,
        roles: Collection[str],
        resource: Resource,
    ) -> bool:
        """Return True if *user* holds any of *roles* on *resource* through this strategy."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
