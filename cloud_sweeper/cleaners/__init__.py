"""
Resource Cleaners
=================

This module provides the safety-gated deletion of resources that the
classifier marked DELETE.

Every resource passes the same gates, in order: live state, minimum
age, protection tags, confirmation (interactive only), backup (when
requested) and finally the destructive action. The first gate that
fails decides the outcome, and every processed resource is written to
an append-only audit log.

Components
----------
DeletionExecutor
    Runs the gate pipeline over a batch of classified resources.
AWSResourceActions
    boto3 implementation of state lookup, backup and destroy.
SafetyChecker
    State, age and tag gates.
AuditLog
    Append-only session log, JSON log, backup manifest and summary.

Data Classes
------------
ExecutorOptions
    Immutable options for one run.
DeletionAttempt
    Result of processing one resource.
RunSummary
    Tally of a run.

Example
-------
>>> from cloud_sweeper.cleaners import (
...     AuditLog, AWSResourceActions, DeletionExecutor, ExecutorOptions,
... )
>>> from cloud_sweeper.core import AWSClient
>>>
>>> executor = DeletionExecutor(
...     actions=AWSResourceActions(AWSClient(region="us-east-1")),
...     options=ExecutorOptions(dry_run=True),
...     audit_log=AuditLog("./deletion-logs"),
... )
>>> report = executor.run(classified)
>>> print(f"Would delete: {report.summary.dry_run_simulated}")

Safety Features
---------------
1. **Dry-run by default**: every gate runs, nothing is destroyed
2. **Live state check**: resources are re-read before deletion
3. **Tag and age protection**: matching resources are skipped
4. **Confirmed backups**: no deletion until the backup is complete
5. **Audit trail**: one entry per processed resource

See Also
--------
cloud_sweeper.classifier : Produces the DELETE verdicts.
"""

from cloud_sweeper.cleaners.actions import AWSResourceActions
from cloud_sweeper.cleaners.audit import AuditLog, new_session_id
from cloud_sweeper.cleaners.executor import (
    DeletionExecutor,
    ExecutionReport,
    dry_run_ref,
)
from cloud_sweeper.cleaners.models import (
    Confirmation,
    DeletionAttempt,
    ExecutorOptions,
    Gate,
    Outcome,
    ProtectionState,
    RunMode,
    RunSummary,
)
from cloud_sweeper.cleaners.safety import (
    DELETABLE_STATES,
    SafetyChecker,
    TagPattern,
    is_deletable_state,
    parse_tag_patterns,
)

__all__ = [
    "AWSResourceActions",
    "AuditLog",
    "Confirmation",
    "DELETABLE_STATES",
    "DeletionAttempt",
    "DeletionExecutor",
    "ExecutionReport",
    "ExecutorOptions",
    "Gate",
    "Outcome",
    "ProtectionState",
    "RunMode",
    "RunSummary",
    "SafetyChecker",
    "TagPattern",
    "dry_run_ref",
    "is_deletable_state",
    "new_session_id",
    "parse_tag_patterns",
]
