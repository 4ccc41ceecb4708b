"""Principals, resources and the resource hierarchy.

:mod:`buildservice_access.resources.state_loader` (snapshot loading) is not
re-exported here; import it directly.
"""
from __future__ import annotations

from buildservice_access.resources.models import (
    Group,
    Package,
    Principal,
    Project,
    Resource,
    User,
    branch_project_name,
    home_project_name,
)
from buildservice_access.resources.store import ResourceStore
from buildservice_access.resources.hierarchy import HierarchyWalker

__all__ = [
    "Group",
    "HierarchyWalker",
    "Package",
    "Principal",
    "Project",
    "Resource",
    "ResourceStore",
    "User",
    "branch_project_name",
    "home_project_name",
]
