"""Saved replies: per-user canned comment texts."""
from __future__ import annotations

from buildservice_access.replies.saved_replies import (
    SavedReply,
    SavedReplyNotFoundError,
    SavedReplyStore,
)

__all__ = ["SavedReply", "SavedReplyNotFoundError", "SavedReplyStore"]
