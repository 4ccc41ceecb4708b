"""buildservice-access — Permission resolution for a build service.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import buildservice_access as access
>>> access.__version__
'0.1.0'
>>> guard = access.AccessGuard({"users": [{"login": "alice"}], "projects": [{"name": "home:alice"}]})
>>> guard.can_modify("alice", "home:alice")
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from buildservice_access.convenience import AccessGuard

# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------
from buildservice_access.resources.models import (
    Group,
    Package,
    Project,
    User,
    branch_project_name,
    home_project_name,
)
from buildservice_access.resources.store import ResourceStore
from buildservice_access.resources.hierarchy import HierarchyWalker
from buildservice_access.resources.state_loader import State, StateConfigError, StateLoader

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
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

# ---------------------------------------------------------------------------
# Lookup strategies
# ---------------------------------------------------------------------------
from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.lookup.basic import DatabaseLookupStrategy
from buildservice_access.lookup.client import (
    DirectoryClient,
    DirectoryUnavailableError,
    HttpDirectoryClient,
)
from buildservice_access.lookup.directory import DirectoryLookupStrategy
from buildservice_access.lookup.factory import build_lookup_strategy

# ---------------------------------------------------------------------------
# Audit, config, saved replies
# ---------------------------------------------------------------------------
from buildservice_access.audit.logger import AuditLogger
from buildservice_access.config.loader import AccessConfig, ConfigLoader
from buildservice_access.replies.saved_replies import (
    SavedReply,
    SavedReplyNotFoundError,
    SavedReplyStore,
)

__all__ = [
    "__version__",
    "AccessGuard",
    # Resources
    "Group",
    "HierarchyWalker",
    "Package",
    "Project",
    "ResourceStore",
    "State",
    "StateConfigError",
    "StateLoader",
    "User",
    "branch_project_name",
    "home_project_name",
    # Permissions
    "AttribNamespace",
    "AttribType",
    "AttributePolicy",
    "InvalidResourceTypeError",
    "ModifiableByRule",
    "PermissionEngine",
    "Relationship",
    "RelationshipIndex",
    "Role",
    "RoleConfigError",
    "RoleLoader",
    "RoleRegistry",
    # Lookup
    "DatabaseLookupStrategy",
    "DirectoryClient",
    "DirectoryLookupStrategy",
    "DirectoryUnavailableError",
    "HttpDirectoryClient",
    "LookupStrategy",
    "build_lookup_strategy",
    # Audit / config / replies
    "AccessConfig",
    "AuditLogger",
    "ConfigLoader",
    "SavedReply",
    "SavedReplyNotFoundError",
    "SavedReplyStore",
]
