"""
Tests for the deletion audit trail.
"""

import json
from datetime import datetime

from cloud_sweeper.cleaners import (
    AuditLog,
    DeletionAttempt,
    ExecutorOptions,
    Gate,
    Outcome,
    ProtectionState,
    RunSummary,
    new_session_id,
)
from cloud_sweeper.core.models import Disposition, ResourceKind, Verdict

from conftest import AS_OF, make_record


def attempt(outcome, stage=Gate.ACTION, **kwargs):
    kwargs.setdefault("protection_state", ProtectionState.UNPROTECTED)
    return DeletionAttempt(
        record=make_record(ResourceKind.VOLUME, id="vol-1", name="scratch"),
        verdict=Verdict(Disposition.DELETE, "unattached", 8.0),
        outcome=outcome,
        stage=stage,
        timestamp=AS_OF,
        **kwargs,
    )


class TestAuditLog:
    """Tests for AuditLog files."""

    def test_session_id_from_time(self):
        assert new_session_id(datetime(2024, 1, 15, 10, 30, 0)) == "20240115-103000"

    def test_files_are_prefixed_by_session(self, tmp_path):
        audit = AuditLog(tmp_path / "logs", session_id="s1")
        assert audit.log_dir.is_dir()
        assert audit.session_log_path.name == "s1-session.log"
        assert audit.summary_path.name == "s1-summary.json"

    def test_line_format(self, tmp_path):
        audit = AuditLog(tmp_path, session_id="s1")
        audit.append(attempt(Outcome.SUCCEEDED, action_ref="delete_volume:vol-1"))
        line = audit.session_log_path.read_text().strip()
        assert line.split("|") == [
            AS_OF.isoformat(),
            "Volume",
            "us-east-1",
            "vol-1",
            "action",
            "Succeeded",
            "ref=delete_volume:vol-1",
        ]

    def test_pipe_in_details_is_escaped(self, tmp_path):
        audit = AuditLog(tmp_path, session_id="s1")
        audit.append(attempt(Outcome.FAILED, failure_reason="bad|thing"))
        line = audit.session_log_path.read_text().strip()
        assert len(line.split("|")) == 7

    def test_json_log(self, tmp_path):
        audit = AuditLog(tmp_path, session_id="s1")
        audit.append(attempt(Outcome.SKIPPED, stage=Gate.TAG,
                             protection_state=ProtectionState.PROTECTED_BY_TAG,
                             failure_reason="Protected by tag DoNotDelete=true"))
        audit.append(attempt(Outcome.SUCCEEDED))
        entries = [json.loads(line) for line in audit.json_log_path.read_text().splitlines()]
        assert [e["outcome"] for e in entries] == ["Skipped", "Succeeded"]
        assert entries[0]["protection_state"] == "ProtectedByTag"
        assert entries[0]["estimated_monthly_cost"] == 8.0

    def test_manifest_only_for_confirmed_live_backups(self, tmp_path):
        audit = AuditLog(tmp_path, session_id="s1")
        audit.append(attempt(Outcome.SUCCEEDED, backup_ref="snap-live"))
        audit.append(attempt(Outcome.FAILED, backup_ref="snap-kept"))
        audit.append(attempt(Outcome.DRY_RUN_SIMULATED, backup_ref="dryrun-backup-volume-vol-1"))
        audit.append(attempt(Outcome.FAILED, stage=Gate.BACKUP, backup_ref="snap-unconfirmed"))
        audit.append(attempt(Outcome.SUCCEEDED))

        refs = [
            json.loads(line)["backup_ref"]
            for line in audit.backup_manifest_path.read_text().splitlines()
        ]
        assert refs == ["snap-live", "snap-kept"]

    def test_entries_are_kept_in_order(self, tmp_path):
        audit = AuditLog(tmp_path, session_id="s1")
        first, second = attempt(Outcome.SKIPPED), attempt(Outcome.SUCCEEDED)
        audit.append(first)
        audit.append(second)
        assert audit.entries == [first, second]

    def test_write_summary(self, tmp_path):
        audit = AuditLog(tmp_path, session_id="s1")
        attempts = [attempt(Outcome.SUCCEEDED), attempt(Outcome.SUCCEEDED)]
        path = audit.write_summary(
            RunSummary.from_attempts(attempts), ExecutorOptions(dry_run=False)
        )
        data = json.loads(path.read_text())
        assert data["session_id"] == "s1"
        assert data["summary"]["succeeded"] == 2
        assert data["summary"]["estimated_savings"] == 16.0
        assert data["options"]["mode"] == "automated"
