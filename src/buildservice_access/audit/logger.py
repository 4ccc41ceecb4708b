"""Append-only JSONL log of access-control events.

Permission checks themselves only return booleans.  Things an operator
needs to see afterwards (directory lookups that failed and were treated as
"not granted", policy decisions a caller chose to record) are written here
as newline-delimited JSON records, each carrying a UTC ISO-8601 timestamp
and a session identifier.

Writes and reads share a threading.Lock, so one logger instance can be
used by every request thread in the process.

Example
-------
>>> from pathlib import Path
>>> audit = AuditLogger(Path("/tmp/access_audit.jsonl"))
>>> audit.log_lookup_failure("directory", group="packagers", login="carol", error="timed out")
>>> audit.query({"event": "lookup_unavailable"})[0]["group"]
'packagers'
"""
from __future__ import annotations

import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

LOOKUP_UNAVAILABLE: str = "lookup_unavailable"
ACCESS_DECISION: str = "access_decision"


class AuditLogger:
    """Append-only JSONL event log.

    Parameters
    ----------
    log_path:
        Path to the ``.jsonl`` file.  Parent directories are created on
        first write.
    session_id:
        Identifier stamped on every record; a random UUID when omitted.
    """

    def __init__(self, log_path: Path, session_id: str | None = None) -> None:
        self._log_path = log_path
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def log(self, entry: dict[str, object]) -> None:
        """Append an event record.

        ``timestamp`` and ``session_id`` are added automatically; *entry*
        must be JSON-serialisable.
        """
        record: dict[str, object] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "session_id": self._session_id,
            **entry,
        }
        self._write(record)

    def log_lookup_failure(
        self,
        strategy: str,
        *,
        group: str,
        login: str,
        error: str,
    ) -> None:
        """Record a directory lookup that could not be answered."""
        self.log(
            {
                "event": LOOKUP_UNAVAILABLE,
                "strategy": strategy,
                "group": group,
                "login": login,
                "error": error,
            }
        )

    def log_decision(
        self,
        check: str,
        *,
        login: str,
        resource: str | None,
        allowed: bool,
        detail: str | None = None,
    ) -> None:
        """Record the outcome of a policy check."""
        entry: dict[str, object] = {
            "event": ACCESS_DECISION,
            "check": check,
            "login": login,
            "resource": resource,
            "allowed": allowed,
        }
        if detail:
            entry["detail"] = detail
        self.log(entry)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def read_all(self) -> list[dict[str, object]]:
        """Return all records in chronological order (empty if no file)."""
        return list(self._iter_records())

    def query(self, filters: dict[str, object]) -> list[dict[str, object]]:
        """Return records whose top-level fields equal every filter value."""
        return [
            record
            for record in self._iter_records()
            if all(record.get(k) == v for k, v in filters.items())
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write(self, record: dict[str, object]) -> None:
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=str) + "\n")

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                lines = fh.readlines()
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue  # partially written line

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def session_id(self) -> str:
        return self._session_id
