"""
Deletion Audit Trail
====================

Append-only record of every deletion attempt of a session.

Files
-----
All files live in ``log_dir`` and are prefixed with the session ID:

``<session>-session.log``
    One human-readable line per attempt:
    ``timestamp|kind|region|id|stage|outcome|details``.
``<session>-session.jsonl``
    One JSON object per attempt.
``<session>-backups.jsonl``
    One JSON object per confirmed backup. This is the manifest to use
    for a manual rollback.
``<session>-summary.json``
    The run summary, written once at the end of the run.

Notes
-----
Entries are only ever appended. Appends are serialized with a lock so
concurrent writers cannot interleave lines.

Example
-------
>>> audit = AuditLog("./deletion-logs")
>>> audit.append(attempt)
>>> audit.write_summary(summary, options)
>>> print(audit.session_log_path)
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from cloud_sweeper.cleaners.models import (
    DeletionAttempt,
    ExecutorOptions,
    Gate,
    Outcome,
    RunSummary,
)
from cloud_sweeper.core.models import utcnow

logger = logging.getLogger(__name__)


def new_session_id(now: Optional[datetime] = None) -> str:
    """Session ID derived from the start time, e.g. ``20240115-103000``."""
    return (now or utcnow()).strftime("%Y%m%d-%H%M%S")


class AuditLog:
    """
    Append-only audit trail for one deletion session.

    Parameters
    ----------
    log_dir : str or Path
        Directory for the log files; created if missing.
    session_id : str, optional
        Prefix for the files. Defaults to the current UTC time.

    Attributes
    ----------
    entries : list of DeletionAttempt
        Copy of the attempts appended so far, in order.
    """

    def __init__(
        self,
        log_dir: Union[str, Path],
        session_id: Optional[str] = None,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.session_id = session_id or new_session_id()

        self.session_log_path = self.log_dir / f"{self.session_id}-session.log"
        self.json_log_path = self.log_dir / f"{self.session_id}-session.jsonl"
        self.backup_manifest_path = self.log_dir / f"{self.session_id}-backups.jsonl"
        self.summary_path = self.log_dir / f"{self.session_id}-summary.json"

        self._lock = threading.Lock()
        self._entries: List[DeletionAttempt] = []

        logger.debug(f"Audit log for session {self.session_id} in {self.log_dir}")

    @property
    def entries(self) -> List[DeletionAttempt]:
        """Attempts appended so far."""
        with self._lock:
            return list(self._entries)

    @staticmethod
    def format_line(attempt: DeletionAttempt) -> str:
        """Human-readable log line for an attempt."""
        fields = [
            attempt.timestamp.isoformat(),
            attempt.record.kind.value,
            attempt.record.region,
            attempt.record.id,
            attempt.stage.value,
            attempt.outcome.value,
            attempt.details.replace("|", "/").replace("\n", " "),
        ]
        return "|".join(fields)

    def append(self, attempt: DeletionAttempt) -> None:
        """
        Append one attempt to every log.

        A backup reference on a live attempt that got past the backup
        stage is also written to the backup manifest.
        """
        line = self.format_line(attempt)
        payload = json.dumps(attempt.to_dict(), default=str)

        with self._lock:
            with open(self.session_log_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
            with open(self.json_log_path, "a", encoding="utf-8") as f:
                f.write(payload + "\n")
            if self._is_confirmed_backup(attempt):
                with open(self.backup_manifest_path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(self._manifest_entry(attempt), default=str) + "\n")
            self._entries.append(attempt)

    @staticmethod
    def _is_confirmed_backup(attempt: DeletionAttempt) -> bool:
        return (
            attempt.backup_ref is not None
            and attempt.outcome is not Outcome.DRY_RUN_SIMULATED
            and not (attempt.outcome is Outcome.FAILED and attempt.stage is Gate.BACKUP)
        )

    def _manifest_entry(self, attempt: DeletionAttempt) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "timestamp": attempt.timestamp.isoformat(),
            "kind": attempt.record.kind.value,
            "region": attempt.record.region,
            "resource_id": attempt.record.id,
            "name": attempt.record.name,
            "backup_ref": attempt.backup_ref,
            "outcome": attempt.outcome.value,
        }

    def write_summary(
        self,
        summary: RunSummary,
        options: Optional[ExecutorOptions] = None,
    ) -> Path:
        """Write the run summary and return its path."""
        data: Dict[str, Any] = {
            "session_id": self.session_id,
            "completed_at": utcnow().isoformat(),
            "summary": summary.to_dict(),
        }
        if options is not None:
            data["options"] = options.to_dict()

        with self._lock:
            with open(self.summary_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        return self.summary_path

    def __repr__(self) -> str:
        return f"AuditLog(session_id='{self.session_id}', entries={len(self._entries)})"
