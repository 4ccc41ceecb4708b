"""Pluggable group membership and role resolution.

Two strategies exist: :class:`DatabaseLookupStrategy` for deployments that
keep membership locally and :class:`DirectoryLookupStrategy` for those that
resolve it through an external directory.  :func:`build_lookup_strategy`
picks one from configuration.
"""
from __future__ import annotations

from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.lookup.basic import DatabaseLookupStrategy
from buildservice_access.lookup.client import (
    DirectoryClient,
    DirectoryUnavailableError,
    HttpDirectoryClient,
)
from buildservice_access.lookup.directory import DirectoryLookupStrategy
from buildservice_access.lookup.factory import build_lookup_strategy

__all__ = [
    "DatabaseLookupStrategy",
    "DirectoryClient",
    "DirectoryLookupStrategy",
    "DirectoryUnavailableError",
    "HttpDirectoryClient",
    "LookupStrategy",
    "build_lookup_strategy",
]
