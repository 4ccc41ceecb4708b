"""Per-resource role grants.

A Relationship is the fact "principal holds role on resource", where the
principal is a user or a group and the resource a project or a package.
Several relationships may exist for the same (resource, principal) pair as
long as their roles differ.

The permission engine only reads the index.  ``grant``/``revoke`` exist for
the resource-administration layer and for loading snapshots; they take the
same lock as the readers, so a check issued after a write sees the write.

Example
-------
>>> index = RelationshipIndex()
>>> foo = Project(id=1, name="foo")
>>> packagers = Group(id=7, title="packagers")
>>> index.grant(foo, packagers, "maintainer")
Relationship(resource=('project', 'foo'), principal_kind='group', principal_id=7, principal_name='packagers', role='maintainer')
>>> carol = User(id=3, login="carol", groups=frozenset({packagers}))
>>> index.has_group_grant(foo, carol, {"maintainer"})
True
"""
from __future__ import annotations

import threading
from collections.abc import Collection
from dataclasses import dataclass
from typing import Literal

from buildservice_access.resources.models import Group, Principal, Resource, User

PrincipalKind = Literal["user", "group"]


@dataclass(frozen=True)
class Relationship:
    """One (resource, principal, role) grant."""

    resource: tuple[str, str]
    principal_kind: PrincipalKind
    principal_id: int
    principal_name: str
    role: str


def _principal_fields(principal: Principal) -> tuple[PrincipalKind, int, str]:
    if isinstance(principal, User):
        return "user", principal.id, principal.login
    if isinstance(principal, Group):
        return "group", principal.id, principal.title
    raise TypeError(
        f"Relationship principal must be a User or a Group; got {type(principal).__name__}."
    )


class RelationshipIndex:
    """Collection of role grants keyed by resource."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_resource: dict[tuple[str, str], set[Relationship]] = {}

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def grant(self, resource: Resource, principal: Principal, role: str) -> Relationship:
        """Record that *principal* holds *role* on *resource*.  Idempotent."""
        kind, principal_id, name = _principal_fields(principal)
        relationship = Relationship(
            resource=resource.key,
            principal_kind=kind,
            principal_id=principal_id,
            principal_name=name,
            role=role,
        )
        with self._lock:
            self._by_resource.setdefault(resource.key, set()).add(relationship)
        return relationship

    def revoke(self, resource: Resource, principal: Principal, role: str) -> bool:
        """Remove a grant.  Returns True if it existed."""
        kind, principal_id, name = _principal_fields(principal)
        relationship = Relationship(resource.key, kind, principal_id, name, role)
        with self._lock:
            grants = self._by_resource.get(resource.key)
            if not grants or relationship not in grants:
                return False
            grants.discard(relationship)
            return True

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def for_resource(self, resource: Resource) -> list[Relationship]:
        with self._lock:
            grants = list(self._by_resource.get(resource.key, ()))
        return sorted(grants, key=lambda r: (r.principal_kind, r.principal_name, r.role))

    def has_user_grant(self, resource: Resource, user: User, roles: Collection[str]) -> bool:
        """Return True if *user* directly holds one of *roles* on *resource*."""
        with self._lock:
            return any(
                rel.principal_kind == "user"
                and rel.principal_id == user.id
                and rel.role in roles
                for rel in self._by_resource.get(resource.key, ())
            )

    def has_group_grant(self, resource: Resource, user: User, roles: Collection[str]) -> bool:
        """Return True if a group *user* belongs to holds one of *roles* on *resource*."""
        group_ids = user.group_ids
        if not group_ids:
            return False
        with self._lock:
            return any(
                rel.principal_kind == "group"
                and rel.principal_id in group_ids
                and rel.role in roles
                for rel in self._by_resource.get(resource.key, ())
            )

    def groups_with_role(self, resource: Resource, roles: Collection[str]) -> list[str]:
        """Return titles of the groups holding one of *roles* on *resource*."""
        with self._lock:
            titles = {
                rel.principal_name
                for rel in self._by_resource.get(resource.key, ())
                if rel.principal_kind == "group" and rel.role in roles
            }
        return sorted(titles)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(grants) for grants in self._by_resource.values())
