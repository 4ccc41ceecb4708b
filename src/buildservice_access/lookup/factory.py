"""Select the process-wide lookup strategy from configuration.

Call :func:`build_lookup_strategy` once at startup and inject the result
into :class:`~buildservice_access.permissions.engine.PermissionEngine`.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.lookup.basic import DatabaseLookupStrategy
from buildservice_access.lookup.client import DirectoryClient, HttpDirectoryClient
from buildservice_access.lookup.directory import DirectoryLookupStrategy
from buildservice_access.permissions.relationships import RelationshipIndex

if TYPE_CHECKING:
    from buildservice_access.audit.logger import AuditLogger
    from buildservice_access.config.loader import DirectoryConfig

logger = logging.getLogger(__name__)


def build_lookup_strategy(
    config: "DirectoryConfig",
    relationships: RelationshipIndex,
    audit_logger: "AuditLogger | None" = None,
    client: DirectoryClient | None = None,
) -> LookupStrategy:
    """Return the directory strategy when enabled, the database strategy otherwise.

    Parameters
    ----------
    config:
        The ``directory`` section of the access configuration.
    relationships:
        Index the directory strategy reads group grants from.
    audit_logger:
        Receives ``lookup_unavailable`` events from the directory strategy.
    client:
        Overrides the HTTP client built from *config*.
    """
    if not config.enabled:
        logger.info("Group lookup strategy: database")
        return DatabaseLookupStrategy()

    if client is None:
        client = HttpDirectoryClient(
            base_url=config.base_url or "",
            timeout_seconds=config.timeout_seconds,
            token=config.token,
        )
    logger.info("Group lookup strategy: directory (%s)", type(client).__name__)
    return DirectoryLookupStrategy(
        client=client,
        relationships=relationships,
        audit_logger=audit_logger,
        cache_ttl_seconds=config.cache_ttl_seconds,
        cache_size=config.cache_size,
    )
