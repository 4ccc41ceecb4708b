"""Lookup strategy backed by an external group directory.

Role grants live in the local relationship index, but membership of the
groups holding those grants is only known to the directory.  For a role
or permission check the strategy takes the groups that hold a qualifying
role on the resource and asks the directory whether the user belongs to
any of them.

The directory being unreachable must never break a permission check.  A
failed lookup is logged, recorded in the audit log when one is attached,
and answered as "not a member" (fail-closed).  Failures are not memoised;
successful answers are kept for ``cache_ttl_seconds``.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Collection
from typing import TYPE_CHECKING

from buildservice_access.lookup.base import LookupStrategy
from buildservice_access.lookup.client import DirectoryClient, DirectoryUnavailableError
from buildservice_access.permissions.relationships import RelationshipIndex
from buildservice_access.resources.models import Group, Resource, User

if TYPE_CHECKING:
    from buildservice_access.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


class DirectoryLookupStrategy(LookupStrategy):
    """Resolves group membership through a :class:`DirectoryClient`.

    Parameters
    ----------
    client:
        Directory client; may block on network I/O.
    relationships:
        Index used to find the groups holding a role on a resource.
    audit_logger:
        Optional audit log for ``lookup_unavailable`` events.
    cache_ttl_seconds:
        Lifetime of a memoised membership answer.  ``0`` disables the memo.
    cache_size:
        Maximum number of memoised answers; the oldest is evicted first.
    clock:
        Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        client: DirectoryClient,
        relationships: RelationshipIndex,
        audit_logger: "AuditLogger | None" = None,
        cache_ttl_seconds: float = 60.0,
        cache_size: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._relationships = relationships
        self._audit_logger = audit_logger
        self._ttl = cache_ttl_seconds
        self._cache_size = cache_size
        self._clock = clock
        self._lock = threading.Lock()
        self._memo: OrderedDict[tuple[str, str], tuple[bool, float]] = OrderedDict()

    @property
    def name(self) -> str:
        return "directory"

    # ------------------------------------------------------------------
    # LookupStrategy
    # ------------------------------------------------------------------

    def is_in_group(self, user: User, group: Group) -> bool:
        return self._membership(user.login, group.title)

    def local_role_check(self, user: User, role: str, resource: Resource) -> bool:
        return self._member_of_any(user, self._relationships.groups_with_role(resource, {role}))

    def local_permission_check(
        self,
        user: User,
        roles: Collection[str],
        resource: Resource,
    ) -> bool:
        if not roles:
            return False
        return self._member_of_any(user, self._relationships.groups_with_role(resource, roles))

    # ------------------------------------------------------------------
    # Memo
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        with self._lock:
            self._memo.clear()

    @property
    def cache_len(self) -> int:
        with self._lock:
            return len(self._memo)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _member_of_any(self, user: User, group_titles: list[str]) -> bool:
        for title in group_titles:
            if self._membership(user.login, title):
                logger.debug("Directory grants %s via group %s", user.login, title)
                return True
        return False

    def _membership(self, login: str, group: str) -> bool:
        key = (login, group)
        cached = self._cached(key)
        if cached is not None:
            return cached

        try:
            member = self._client.is_member(login, group)
        except DirectoryUnavailableError as exc:
            logger.warning(
                "Directory lookup failed for %s in %s; treating as not granted: %s",
                login,
                group,
                exc.reason,
            )
            if self._audit_logger is not None:
                self._audit_logger.log_lookup_failure(
                    self.name, group=group, login=login, error=exc.reason
                )
            return False

        self._remember(key, member)
        return member

    def _cached(self, key: tuple[str, str]) -> bool | None:
        if self._ttl <= 0:
            return None
        now = self._clock()
        with self._lock:
            entry = self._memo.get(key)
            if entry is None:
                return None
            answer, expires_at = entry
            if expires_at <= now:
                del self._memo[key]
                return None
            return answer

    def _remember(self, key: tuple[str, str], answer: bool) -> None:
        if self._ttl <= 0 or self._cache_size <= 0:
            return
        with self._lock:
            self._memo[key] = (answer, self._clock() + self._ttl)
            self._memo.move_to_end(key)
            while len(self._memo) > self._cache_size:
                self._memo.popitem(last=False)

    def __repr__(self) -> str:
        return f"DirectoryLookupStrategy(client={type(self._client).__name__}, ttl={self._ttl})"
