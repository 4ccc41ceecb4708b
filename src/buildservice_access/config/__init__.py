"""Process configuration."""
from __future__ import annotations

from buildservice_access.config.loader import (
    AccessConfig,
    AuditConfig,
    ConfigLoader,
    DirectoryConfig,
    HomeProjectConfig,
)

__all__ = [
    "AccessConfig",
    "AuditConfig",
    "ConfigLoader",
    "DirectoryConfig",
    "HomeProjectConfig",
]
