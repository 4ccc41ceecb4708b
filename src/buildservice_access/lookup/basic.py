"""Lookup strategy for deployments that keep everything in the local database.

Group membership is read from the user record.  Role and permission
checks add nothing: the engine has already consulted the relationship
index directly and indirectly through groups, which is all the local
database knows.
"""
from __future__ import annotations

from collections.abc import Collection

from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.resources.models import Group, Resource, User


class DatabaseLookupStrategy(LookupStrategy):
    """Answers from locally stored group membership only."""

    @property
    def name(self) -> str:
        return "database"

    def is_in_group(self, user: User, group: Group) -> bool:
        return group.id in user.group_ids

    def local_role_check(self, user: User, role: str, resource: Resource) -> bool:
        return False

    def local_permission_check(
        self,
        user: User,
        roles: Collection[str],
        resource: Resource,
    ) -> bool:
        return False
