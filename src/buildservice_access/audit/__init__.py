"""Access-control event log."""
from __future__ import annotations

from buildservice_access.audit.logger import ACCESS_DECISION, LOOKUP_UNAVAILABLE, AuditLogger

__all__ = ["ACCESS_DECISION", "LOOKUP_UNAVAILABLE", "AuditLogger"]
