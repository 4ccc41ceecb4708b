"""Per-user saved replies with a cached name listing.

Users keep short canned texts ("saved replies") to paste into review
comments.  The listing shown next to every comment box only needs ids and
names, so :meth:`SavedReplyStore.for_user` caches that projection per user
(cache-aside) and every write drops exactly the owner's cache entry.

Every read and write is scoped to the asking user: a reply id owned by
someone else behaves exactly like an id that does not exist.

Example
-------
>>> store = SavedReplyStore()
>>> reply = store.create(alice, "LGTM", "Looks good to me, thanks!")
>>> store.for_user(alice)
[(1, 'LGTM')]
>>> store.body_json(alice, reply.id)
{'body': 'Looks good to me, thanks!'}
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from buildservice_access.resources.models import User

logger = logging.getLogger(__name__)


class SavedReplyNotFoundError(LookupError):
    """Raised when a reply id does not exist for the asking user.

    Attributes
    ----------
    reply_id:
        The id that was requested.
    """

    def __init__(self, reply_id: int) -> None:
        self.reply_id = reply_id
        super().__init__(f"Saved reply {reply_id} not found.")


@dataclass(frozen=True)
class SavedReply:
    """A persisted reply.  ``name`` and ``body`` are never blank."""

    id: int
    user_id: int
    name: str
    body: str
    created_at: datetime
    updated_at: datetime


def _validate(name: str, body: str) -> None:
    if not name or not name.strip():
        raise ValueError("Saved reply name can't be blank.")
    if not body or not body.strip():
        raise ValueError("Saved reply body can't be blank.")


class SavedReplyStore:
    """In-memory saved reply storage with a per-user listing cache."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._replies: dict[int, SavedReply] = {}
        self._listing_cache: dict[int, list[tuple[int, str]]] = {}

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def create(self, user: User, name: str, body: str) -> SavedReply:
        """Create a reply owned by *user*.

        Raises
        ------
        ValueError
            If *name* or *body* is blank.
        """
        _validate(name, body)
        now = datetime.now(tz=timezone.utc)
        with self._lock:
            reply = SavedReply(
                id=next(self._ids),
                user_id=user.id,
                name=name,
                body=body,
                created_at=now,
                updated_at=now,
            )
            self._replies[reply.id] = reply
            self._invalidate(user.id)
        logger.debug("Created saved reply %d for %s", reply.id, user.login)
        return reply

    def update(
        self,
        user: User,
        reply_id: int,
        name: str | None = None,
        body: str | None = None,
    ) -> SavedReply:
        """Change name and/or body of one of *user*'s replies.

        Raises
        ------
        SavedReplyNotFoundError
            If the reply does not exist or belongs to another user.
        ValueError
            If the resulting name or body is blank.
        """
        with self._lock:
            current = self._owned(user, reply_id)
            updated = replace(
                current,
                name=current.name if name is None else name,
                body=current.body if body is None else body,
                updated_at=datetime.now(tz=timezone.utc),
            )
            _validate(updated.name, updated.body)
            self._replies[reply_id] = updated
            self._invalidate(user.id)
        return updated

    def delete(self, user: User, reply_id: int) -> SavedReply:
        """Remove one of *user*'s replies and return it.

        Raises
        ------
        SavedReplyNotFoundError
            If the reply does not exist or belongs to another user.
        """
        with self._lock:
            reply = self._owned(user, reply_id)
            del self._replies[reply_id]
            self._invalidate(user.id)
        return reply

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def for_user(self, user: User, force: bool = False) -> list[tuple[int, str]]:
        """Return ``(id, name)`` pairs of *user*'s replies ordered by id.

        The result is cached per user until the next write for that user.
        ``force=True`` recomputes it and refreshes the cache.
        """
        with self._lock:
            if not force:
                cached = self._listing_cache.get(user.id)
                if cached is not None:
                    return list(cached)
            listing = sorted(
                (reply.id, reply.name)
                for reply in self._replies.values()
                if reply.user_id == user.id
            )
            self._listing_cache[user.id] = listing
            return list(listing)

    def find_for_user(self, user: User, reply_id: int) -> SavedReply:
        """Return one of *user*'s replies.

        Raises
        ------
        SavedReplyNotFoundError
            If the reply does not exist or belongs to another user.
        """
        with self._lock:
            return self._owned(user, reply_id)

    def body_json(self, user: User, reply_id: int) -> dict[str, str]:
        """Return ``{"body": text}`` for one of *user*'s replies."""
        return {"body": self.find_for_user(user, reply_id).body}

    def is_cached(self, user: User) -> bool:
        with self._lock:
            return user.id in self._listing_cache

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _owned(self, user: User, reply_id: int) -> SavedReply:
        reply = self._replies.get(reply_id)
        if reply is None or reply.user_id != user.id:
            raise SavedReplyNotFoundError(reply_id)
        return reply

    def _invalidate(self, user_id: int) -> None:
        self._listing_cache.pop(user_id, None)
