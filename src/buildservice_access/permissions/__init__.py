"""Permission resolution for projects, packages and attributes.

Example
-------
::

    from buildservice_access.permissions import PermissionEngine, RelationshipIndex, RoleRegistry

    engine = PermissionEngine(RoleRegistry.defaults(), RelationshipIndex(), store)
    engine.can_modify(user, project)
"""
from __future__ import annotations

from buildservice_access.permissions.roles import Role, RoleRegistry
from buildservice_access.permissions.role_loader import RoleConfigError, RoleLoader
from buildservice_access.permissions.relationships import Relationship, RelationshipIndex
from buildservice_access.permissions.engine import InvalidResourceTypeError, PermissionEngine
from buildservice_access.permissions.attributes import (
    AttribNamespace,
    AttribType,
    AttributePolicy,
    ModifiableByRule,
)

__all__ = [
    # Roles
    "Role",
    "RoleConfigError",
    "RoleLoader",
    "RoleRegistry",
    # Grants
    "Relationship",
    "RelationshipIndex",
    # Engine
    "InvalidResourceTypeError",
    "PermissionEngine",
    # Attributes
    "AttribNamespace",
    "AttribType",
    "AttributePolicy",
    "ModifiableByRule",
]
