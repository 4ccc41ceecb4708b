"""Permission resolution engine.

PermissionEngine answers "may this user do that to this resource?" by
combining four collaborators:

- :class:`RoleRegistry`: which roles grant a permission name
- :class:`RelationshipIndex`: which users and groups hold roles on a resource
- :class:`HierarchyWalker`: package → project → parent project ...
- :class:`LookupStrategy`: group facts the local index does not hold

The asking user is always an explicit argument; the engine keeps no
per-request state and can be shared by all request threads.

Local permission checks walk the whole ancestor chain: a permission held on
a project covers its packages and every project below it.  Local *role*
checks deliberately do not: a package falls back to its own project only.

Example
-------
::

    engine = PermissionEngine(RoleRegistry.defaults(), index, store)
    engine.has_local_permission(carol, "change_project", store.find_project("foo"))
    engine.can_modify(alice, store.find_project("home:alice"))
"""
from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.lookup.basic import DatabaseLookupStrategy
from buildservice_access.permissions.relationships import RelationshipIndex
from buildservice_access.permissions.roles import Role, RoleRegistry
from buildservice_access.resources.hierarchy import DEFAULT_MAX_DEPTH, HierarchyWalker
from buildservice_access.resources.models import (
    PROJECT_SEPARATOR,
    Group,
    Package,
    Project,
    Resource,
    User,
    branch_project_name,
    home_project_name,
)
from buildservice_access.resources.store import ResourceStore

if TYPE_CHECKING:
    from buildservice_access.audit.logger import AuditLogger
    from buildservice_access.config.loader import AccessConfig
    from buildservice_access.lookup.client import DirectoryClient

logger = logging.getLogger(__name__)


class InvalidResourceTypeError(TypeError):
    """Raised when a policy receives a resource kind it does not handle.

    Attributes
    ----------
    operation:
        The policy that rejected the resource.
    resource_type:
        Name of the offending type.
    """

    def __init__(self, operation: str, resource: object) -> None:
        self.operation = operation
        self.resource_type = type(resource).__name__
        super().__init__(
            f"{operation}: wrong type of object {self.resource_type!r} "
            "instead of Project or Package."
        )


class PermissionEngine:
    """Answers global and local permission and role questions.

    Parameters
    ----------
    roles:
        Role → permission configuration.
    relationships:
        Per-resource grants.
    store:
        Resolves project names (parent lookup) and group titles/ids.
    lookup:
        Group/role resolver for facts outside the local index.  Defaults to
        :class:`DatabaseLookupStrategy`.
    admin_role:
        Title of the global role that makes a user an administrator.
    staff_role:
        Title of the global staff role.
    allow_home_project_creation:
        Whether users may create their home project and projects below it
        without any other permission.
    max_depth:
        Bound on the number of ancestor levels a permission check visits.
    """

    def __init__(
        self,
        roles: RoleRegistry,
        relationships: RelationshipIndex,
        store: ResourceStore,
        lookup: LookupStrategy | None = None,
        *,
        admin_role: str = "Admin",
        staff_role: str = "Staff",
        allow_home_project_creation: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._roles = roles
        self._relationships = relationships
        self._store = store
        self._lookup = lookup if lookup is not None else DatabaseLookupStrategy()
        self._walker = HierarchyWalker(store, max_depth=max_depth)
        self._admin_role = admin_role
        self._staff_role = staff_role
        self._allow_home_project_creation = allow_home_project_creation

    @classmethod
    def from_config(
        cls,
        config: "AccessConfig",
        store: ResourceStore,
        relationships: RelationshipIndex,
        roles: RoleRegistry | None = None,
        audit_logger: "AuditLogger | None" = None,
        directory_client: "DirectoryClient | None" = None,
    ) -> PermissionEngine:
        """Build an engine and its lookup strategy from configuration.

        Roles come from *roles*, else ``config.roles_file``, else the stock
        role set.
        """
        from buildservice_access.lookup.factory import build_lookup_strategy
        from buildservice_access.permissions.role_loader import RoleLoader

        if roles is None:
            if config.roles_file is not None:
                roles = RoleLoader().load(config.roles_file)
            else:
                roles = RoleRegistry.defaults()

        lookup = build_lookup_strategy(
            config.directory, relationships, audit_logger=audit_logger, client=directory_client
        )
        return cls(
            roles,
            relationships,
            store,
            lookup,
            admin_role=config.admin_role,
            staff_role=config.staff_role,
            allow_home_project_creation=config.home_project.allow_user_to_create,
            max_depth=config.max_hierarchy_depth,
        )

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def roles(self) -> RoleRegistry:
        return self._roles

    @property
    def relationships(self) -> RelationshipIndex:
        return self._relationships

    @property
    def lookup(self) -> LookupStrategy:
        return self._lookup

    @property
    def walker(self) -> HierarchyWalker:
        return self._walker

    # ------------------------------------------------------------------
    # Principal queries
    # ------------------------------------------------------------------

    def is_admin(self, user: User) -> bool:
        return self._admin_role in user.global_roles

    def is_staff(self, user: User) -> bool:
        return self._staff_role in user.global_roles

    def has_role(self, user: User, *role_titles: str) -> bool:
        """Return True if the user holds a global role with one of the titles."""
        return any(title in user.global_roles for title in role_titles)

    def is_in_group(self, user: User, group: Group | str | int | None) -> bool:
        """Return True if *user* is a member of *group*.

        *group* may be a Group, a group title or a group id.  Unknown
        titles/ids and ``None`` are not an error; they have no members.

        Raises
        ------
        TypeError
            For any other argument type.
        """
        match group:
            case None:
                return False
            case Group():
                resolved: Group | None = group
            case bool():
                raise TypeError(f"illegal parameter type to is_in_group: {type(group).__name__}")
            case str():
                resolved = self._store.find_group_by_title(group)
            case int():
                resolved = self._store.find_group(group)
            case _:
                raise TypeError(f"illegal parameter type to is_in_group: {type(group).__name__}")
        return resolved is not None and self._lookup.is_in_group(user, resolved)

    def home_project_name(self, user: User) -> str:
        return home_project_name(user)

    def branch_project_name(self, user: User, branch: str) -> str:
        return branch_project_name(user, branch)

    # ------------------------------------------------------------------
    # Permission checks
    # ------------------------------------------------------------------

    def has_global_permission(self, user: User, permission: str) -> bool:
        """Return True if a globally held role grants *permission*.

        Administrators hold every global permission.
        """
        logger.debug("has_global_permission? user %s, permission %r", user.login, permission)
        if self.is_admin(user):
            return True
        return self._roles.any_grants(user.global_roles, permission)

    def has_local_permission(
        self,
        user: User,
        permission: str,
        resource: Resource | None,
    ) -> bool:
        """Return True if *user* holds *permission* on *resource* or an ancestor.

        For each resource on the chain (the resource itself, then its
        owning project, then parent projects up to the root) the user
        qualifies through a direct grant, a grant to one of the user's
        groups, or the lookup strategy.  A ``None`` resource means a global
        check.  Permission names no role grants are simply never held.
        """
        if resource is None:
            return self.has_global_permission(user, permission)

        roles = self._roles.ids_with_permission(permission)
        if not roles:
            return False

        if not isinstance(resource, (Project, Package)):
            logger.debug(
                "local permission check on unsupported %s; not granted",
                type(resource).__name__,
            )
            return False

        for current in itertools.chain([resource], self._walker.ancestors(resource)):
            logger.debug(
                "running local permission check: user %s, %s %s, permission %r",
                user.login,
                current.key[0],
                current,
                permission,
            )
            if self._holds_any_role(user, roles, current):
                return True
            logger.debug("permission %r not found on %s, trying parent", permission, current)
        return False

    def has_local_role(self, user: User, role: Role | str, resource: Resource | None) -> bool:
        """Return True if *user* holds *role* on *resource*.

        A package falls back to its owning project, one level only; parent
        projects of that project are not consulted.
        """
        title = role.title if isinstance(role, Role) else role
        if not isinstance(resource, (Project, Package)):
            return False

        logger.debug(
            "running local role check: user %s, %s %s, role %r",
            user.login,
            resource.key[0],
            resource,
            title,
        )
        if self._holds_role(user, title, resource):
            return True
        if isinstance(resource, Package):
            project = resource.owning_project()
            logger.debug("role %r not found on %s, trying project %s", title, resource, project)
            return self._holds_role(user, title, project)
        return False

    def can(self, user: User, key: str, package: Resource | None) -> bool:
        """Return True if *user* holds permission *key* globally or on *package*."""
        return (
            self.is_admin(user)
            or self.has_global_permission(user, key)
            or self.has_local_permission(user, key, package)
        )

    def can_download_binaries(self, user: User, package: Resource | None) -> bool:
        return self.can(user, "download_binaries", package)

    def can_source_access(self, user: User, package: Resource | None) -> bool:
        return self.can(user, "source_access", package)

    # ------------------------------------------------------------------
    # Modification policies
    # ------------------------------------------------------------------

    def can_modify(
        self,
        user: User,
        resource: Resource | None,
        ignore_lock: bool = False,
    ) -> bool:
        """Return True if *user* may modify *resource*.

        ``None`` stands for a remote package that is not materialised
        locally and can never be modified.

        Raises
        ------
        InvalidResourceTypeError
            If *resource* is neither a Project, a Package nor ``None``.
        """
        match resource:
            case None:
                return False
            case Project():
                return self._can_modify_project(user, resource, ignore_lock)
            case Package():
                return self._can_modify_package(user, resource, ignore_lock)
            case _:
                raise InvalidResourceTypeError("can_modify", resource)

    def can_modify_project(self, user: User, project: Project, ignore_lock: bool = False) -> bool:
        if not isinstance(project, Project):
            raise InvalidResourceTypeError("can_modify_project", project)
        return self._can_modify_project(user, project, ignore_lock)

    def can_modify_package(
        self,
        user: User,
        package: Package | None,
        ignore_lock: bool = False,
    ) -> bool:
        if package is None:
            return False
        if not isinstance(package, Package):
            raise InvalidResourceTypeError("can_modify_package", package)
        return self._can_modify_package(user, package, ignore_lock)

    def can_modify_user(self, actor: User, user: User) -> bool:
        return self.is_admin(actor) or actor.id == user.id

    def can_create_project(self, user: User, project_name: str) -> bool:
        """Return True if *user* may create a project called *project_name*.

        Users may create their home project and anything below it when
        self-service creation is enabled.  Otherwise creation needs the
        global ``create_project`` permission or, for administrators and
        holders of a local ``create_project`` grant, an existing parent
        project to create it in.
        """
        home = home_project_name(user)
        if self._allow_home_project_creation and (
            project_name == home or project_name.startswith(home + PROJECT_SEPARATOR)
        ):
            return True

        if self.has_global_permission(user, "create_project"):
            return True

        parent = self._walker.parent_of_name(project_name)
        if parent is None:
            return False
        if self.is_admin(user):
            return True
        return self.has_local_permission(user, "create_project", parent)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _can_modify_project(self, user: User, project: Project, ignore_lock: bool) -> bool:
        # lock check comes first; it binds administrators too
        if not ignore_lock and project.is_locked():
            return False
        if self.is_admin(user):
            return True
        if self.has_global_permission(user, "change_project"):
            return True
        if self.has_local_permission(user, "change_project", project):
            return True
        # users who removed themselves can always re-add themselves
        return project.name == home_project_name(user)

    def _can_modify_package(self, user: User, package: Package, ignore_lock: bool) -> bool:
        if not ignore_lock and package.is_locked():
            return False
        if self.is_admin(user):
            return True
        if self.has_global_permission(user, "change_package"):
            return True
        return self.has_local_permission(user, "change_package", package)

    def _holds_any_role(self, user: User, roles: frozenset[str], resource: Resource) -> bool:
        if self._relationships.has_user_grant(resource, user, roles):
            return True
        if self._relationships.has_group_grant(resource, user, roles):
            return True
        return self._lookup.local_permission_check(user, roles, resource)

    def _holds_role(self, user: User, role: str, resource: Resource) -> bool:
        wanted = {role}
        if self._relationships.has_user_grant(resource, user, wanted):
            return True
        if self._relationships.has_group_grant(resource, user, wanted):
            return True
        return self._lookup.local_role_check(user, role, resource)

    def __repr__(self) -> str:
        return (
            f"PermissionEngine(roles={len(self._roles)}, lookup={self._lookup!r}, "
            f"max_depth={self._walker.max_depth})"
        )
