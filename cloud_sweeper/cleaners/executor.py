"""
Deletion Executor
=================

Runs every DELETE-classified resource through a fixed pipeline of
safety gates before the destructive action:

1. **State** - the live state must be deletable for the kind
2. **Age** - at least ``min_age_days`` old, if set
3. **Tag** - no protection pattern matches
4. **Confirmation** - explicit YES (interactive mode only)
5. **Backup** - created and confirmed, if requested
6. **Action** - destroy (simulated in dry-run mode)

The first gate that fails decides the outcome. Every processed resource
yields exactly one ``DeletionAttempt``, appended to the audit log as
soon as it is decided.

Classes
-------
DeletionExecutor
    The gate pipeline.
ExecutionReport
    Attempts and summary of one run.

Notes
-----
Dry-run mode runs every gate, live state lookups included, and only
replaces the backup and destructive calls with synthetic references. A
dry run therefore predicts exactly which resources a live run would
skip.

A failure on one resource never stops the batch. Only a QUIT answer in
interactive mode stops intake; attempts already made are kept.

Example
-------
>>> from cloud_sweeper.cleaners import (
...     AuditLog, AWSResourceActions, DeletionExecutor, ExecutorOptions,
... )
>>> from cloud_sweeper.core import AWSClient
>>>
>>> executor = DeletionExecutor(
...     actions=AWSResourceActions(AWSClient()),
...     options=ExecutorOptions(dry_run=True, protect_tag_patterns={"DoNotDelete=true"}),
...     audit_log=AuditLog("./deletion-logs"),
... )
>>> report = executor.run(classified)
>>> report.summary.dry_run_simulated
12
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from cloud_sweeper.cleaners.audit import AuditLog
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
from cloud_sweeper.cleaners.safety import DEFAULT_KIND_PROTECT_TAGS, SafetyChecker
from cloud_sweeper.core.exceptions import CloudSweeperError, ConfigurationError
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ResourceRecord,
    Verdict,
    ensure_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[ResourceRecord, Verdict], Confirmation]
ProgressCallback = Callable[[DeletionAttempt], None]


@dataclass
class ExecutionReport:
    """
    Result of one executor run.

    Attributes
    ----------
    attempts : list of DeletionAttempt
        Attempts in processing order.
    summary : RunSummary
        Tally folded from the attempts.
    session_id : str, optional
        Audit session, if an audit log was used.
    """

    attempts: List[DeletionAttempt]
    summary: RunSummary
    session_id: Optional[str] = None


def dry_run_ref(record: ResourceRecord, prefix: str = "dryrun") -> str:
    """Synthetic reference used in place of a real provider ID."""
    return f"{prefix}-{record.kind.value.lower()}-{record.id}"


def _message(error: Exception) -> str:
    if isinstance(error, CloudSweeperError):
        return error.message
    return str(error) or error.__class__.__name__


class DeletionExecutor:
    """
    Safety-gated deletion pipeline.

    Parameters
    ----------
    actions : AWSResourceActions
        Provider collaborator with ``current_state(record)``,
        ``backup(record, session_id)``, ``destroy(record)`` and
        ``supports_backup(kind)``.
    options : ExecutorOptions
        Run options.
    audit_log : AuditLog, optional
        Receives every attempt and the final summary.
    confirm : callable, optional
        ``(record, verdict) -> Confirmation``. Required in interactive
        mode, ignored otherwise.
    as_of : datetime, optional
        Reference time for the age gate. Defaults to now.
    progress_callback : callable, optional
        Called with each attempt once it is decided.

    Raises
    ------
    ConfigurationError
        If interactive mode is requested without a confirm callback.
    """

    def __init__(
        self,
        actions,
        options: ExecutorOptions,
        audit_log: Optional[AuditLog] = None,
        confirm: Optional[ConfirmCallback] = None,
        as_of: Optional[datetime] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        if options.mode is RunMode.INTERACTIVE and confirm is None:
            raise ConfigurationError("Interactive mode requires a confirmation callback")

        self.actions = actions
        self.options = options
        self.audit_log = audit_log
        self.confirm = confirm
        self.progress_callback = progress_callback
        self.safety = SafetyChecker(
            protect_tag_patterns=options.protect_tag_patterns,
            min_age_days=options.min_age_days,
            as_of=ensure_utc(as_of) or utcnow(),
            kind_protect_tags=DEFAULT_KIND_PROTECT_TAGS if options.keep_tagged else None,
        )

    @property
    def session_id(self) -> str:
        """Audit session ID used to tag backups."""
        return self.audit_log.session_id if self.audit_log else "no-session"

    # =========================================================================
    # Batch
    # =========================================================================

    def select(self, classified: Iterable[ClassifiedResource]) -> List[ClassifiedResource]:
        """DELETE-classified resources of the selected kinds, in input order."""
        kinds = self.options.kinds
        return [
            item
            for item in classified
            if item.verdict.disposition is Disposition.DELETE
            and (kinds is None or item.record.kind in kinds)
        ]

    def run(self, classified: Iterable[ClassifiedResource]) -> ExecutionReport:
        """
        Process resources in input order.

        Parameters
        ----------
        classified : iterable of ClassifiedResource
            Report rows. Rows that are not DELETE are ignored.

        Returns
        -------
        ExecutionReport
            Attempts and summary.
        """
        queue = self.select(classified)
        logger.info(
            f"Processing {len(queue)} DELETE candidates in "
            f"{self.options.mode.value} mode"
        )

        attempts: List[DeletionAttempt] = []
        aborted = False

        for record, verdict in queue:
            if self._limit_reached(attempts, verdict):
                break

            attempt = self.process(record, verdict)
            if attempt is None:
                logger.warning("Run aborted by user")
                aborted = True
                break

            if self.audit_log:
                self.audit_log.append(attempt)
            if self.progress_callback:
                self.progress_callback(attempt)
            attempts.append(attempt)

        summary = RunSummary.from_attempts(
            attempts,
            aborted=aborted,
            not_processed=len(queue) - len(attempts),
        )
        if self.audit_log:
            self.audit_log.write_summary(summary, self.options)

        logger.info(
            f"Run complete: {summary.succeeded} succeeded, "
            f"{summary.dry_run_simulated} simulated, {summary.skipped} skipped, "
            f"{summary.failed} failed"
        )
        return ExecutionReport(
            attempts=attempts,
            summary=summary,
            session_id=self.audit_log.session_id if self.audit_log else None,
        )

    def _limit_reached(self, attempts: List[DeletionAttempt], verdict: Verdict) -> bool:
        max_resources = self.options.max_resources
        if max_resources is not None and len(attempts) >= max_resources:
            logger.warning(f"Reached maximum resource limit ({max_resources}), stopping")
            return True

        cap = self.options.max_estimated_savings
        if cap is not None:
            projected = (
                RunSummary.from_attempts(attempts).estimated_savings
                + (verdict.estimated_monthly_cost or 0.0)
            )
            if projected > cap:
                logger.warning(f"Estimated savings would exceed ${cap:.2f}, stopping")
                return True
        return False

    # =========================================================================
    # Single Resource
    # =========================================================================

    def process(self, record: ResourceRecord, verdict: Verdict) -> Optional[DeletionAttempt]:
        """
        Run one resource through the gates.

        Returns
        -------
        DeletionAttempt or None
            None only when the user answered QUIT.
        """

        def attempt(stage, outcome, protection=ProtectionState.UNPROTECTED, **kwargs):
            return DeletionAttempt(
                record=record,
                verdict=verdict,
                protection_state=protection,
                outcome=outcome,
                stage=stage,
                **kwargs,
            )

        # State
        try:
            live_state = self.actions.current_state(record)
        except Exception as e:
            logger.warning(f"State lookup failed for {record.id}: {_message(e)}")
            return attempt(
                Gate.STATE,
                Outcome.SKIPPED,
                ProtectionState.PROTECTED_BY_STATE,
                failure_reason=f"State lookup failed: {_message(e)}",
            )
        protected, reason = self.safety.check_state(record, live_state)
        if protected:
            return attempt(
                Gate.STATE, Outcome.SKIPPED, ProtectionState.PROTECTED_BY_STATE,
                failure_reason=reason,
            )

        # Age
        protected, reason = self.safety.check_age(record)
        if protected:
            return attempt(
                Gate.AGE, Outcome.SKIPPED, ProtectionState.PROTECTED_BY_AGE,
                failure_reason=reason,
            )

        # Tags
        protected, reason = self.safety.check_tags(record)
        if protected:
            logger.info(f"{record.id} is protected by tags, skipping")
            return attempt(
                Gate.TAG, Outcome.SKIPPED, ProtectionState.PROTECTED_BY_TAG,
                failure_reason=reason,
            )

        # Confirmation
        if self.options.mode is RunMode.INTERACTIVE:
            answer = self.confirm(record, verdict)
            if answer is Confirmation.QUIT:
                return None
            if answer is not Confirmation.YES:
                return attempt(
                    Gate.CONFIRMATION, Outcome.SKIPPED, failure_reason="Declined by user"
                )

        # Backup
        backup_ref = None
        if self.options.backup_before_delete:
            if not self.actions.supports_backup(record.kind):
                return attempt(
                    Gate.BACKUP,
                    Outcome.FAILED,
                    failure_reason=f"Backup not supported for {record.kind.value}",
                )
            if self.options.dry_run:
                backup_ref = dry_run_ref(record, prefix="dryrun-backup")
            else:
                try:
                    backup_ref = self.actions.backup(record, self.session_id)
                except Exception as e:
                    logger.error(f"Backup of {record.id} failed: {_message(e)}")
                    details = e.details if isinstance(e, CloudSweeperError) else {}
                    return attempt(
                        Gate.BACKUP,
                        Outcome.FAILED,
                        backup_ref=details.get("backup_ref"),
                        failure_reason=_message(e),
                    )

        # Action
        if self.options.dry_run:
            return attempt(
                Gate.ACTION,
                Outcome.DRY_RUN_SIMULATED,
                backup_ref=backup_ref,
                action_ref=dry_run_ref(record),
            )
        try:
            action_ref = self.actions.destroy(record)
        except Exception as e:
            logger.error(f"Deleting {record.id} failed: {_message(e)}")
            return attempt(
                Gate.ACTION, Outcome.FAILED, backup_ref=backup_ref, failure_reason=_message(e)
            )
        return attempt(
            Gate.ACTION, Outcome.SUCCEEDED, backup_ref=backup_ref, action_ref=action_ref
        )

    def __repr__(self) -> str:
        return f"DeletionExecutor(mode={self.options.mode.value})"
