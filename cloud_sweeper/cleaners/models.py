"""
Deletion Run Models
===================

Types shared by the safety gates, the executor, the audit log and the
reporters.

Classes
-------
RunMode
    DRY_RUN, INTERACTIVE or AUTOMATED; chosen once per run.
ProtectionState
    Which gate, if any, protected a resource.
Outcome
    Terminal result of one attempt.
Gate
    Pipeline stage that decided an attempt.
Confirmation
    Answer to the interactive prompt.
ExecutorOptions
    Immutable run options.
DeletionAttempt
    One audit entry per processed resource.
RunSummary
    Tally folded from the attempts of a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from cloud_sweeper.core.exceptions import ConfigurationError
from cloud_sweeper.core.models import ResourceKind, ResourceRecord, Verdict, utcnow


class RunMode(Enum):
    """Execution mode of a run."""

    DRY_RUN = "dry_run"
    INTERACTIVE = "interactive"
    AUTOMATED = "automated"


class ProtectionState(Enum):
    """Protection that stopped (or did not stop) a resource."""

    UNPROTECTED = "Unprotected"
    PROTECTED_BY_TAG = "ProtectedByTag"
    PROTECTED_BY_AGE = "ProtectedByAge"
    PROTECTED_BY_STATE = "ProtectedByState"


class Outcome(Enum):
    """Terminal outcome of a deletion attempt."""

    SKIPPED = "Skipped"
    DRY_RUN_SIMULATED = "DryRunSimulated"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class Gate(Enum):
    """Pipeline stages, in the order they run."""

    STATE = "state"
    AGE = "age"
    TAG = "tag"
    CONFIRMATION = "confirmation"
    BACKUP = "backup"
    ACTION = "action"


class Confirmation(Enum):
    """Answer to the per-resource prompt in interactive mode."""

    YES = "yes"
    NO = "no"
    QUIT = "quit"


@dataclass(frozen=True)
class ExecutorOptions:
    """
    Options for one deletion run.

    Parameters
    ----------
    dry_run : bool, default=True
        Simulate the destructive action (and backups).
    interactive : bool, default=False
        Ask for confirmation before each resource. Live only.
    backup_before_delete : bool, default=False
        Create and confirm a backup (AMI, EBS snapshot, DB snapshot)
        before destroying.
    protect_tag_patterns : frozenset of str
        ``key=value`` or bare ``key`` patterns. Matching resources are
        never deleted.
    keep_tagged : bool, default=True
        Also apply the default per-kind protection tags (snapshots tagged
        Retention, Keep, DoNotDelete or Backup).
    min_age_days : int, optional
        Skip resources younger than this, or of unknown age.
    max_resources : int, optional
        Stop intake after this many attempts.
    max_estimated_savings : float, optional
        Stop intake before an attempt whose estimated cost would push the
        cumulative savings above this figure.
    kinds : frozenset of ResourceKind, optional
        Only process these kinds. None means all.

    Raises
    ------
    ConfigurationError
        If ``dry_run`` and ``interactive`` are both set, or a limit is
        negative.

    Example
    -------
    >>> options = ExecutorOptions(
    ...     dry_run=False,
    ...     backup_before_delete=True,
    ...     protect_tag_patterns=frozenset({"DoNotDelete=true", "Environment=prod"}),
    ... )
    >>> options.mode
    <RunMode.AUTOMATED: 'automated'>
    """

    dry_run: bool = True
    interactive: bool = False
    backup_before_delete: bool = False
    protect_tag_patterns: FrozenSet[str] = frozenset()
    keep_tagged: bool = True
    min_age_days: Optional[int] = None
    max_resources: Optional[int] = None
    max_estimated_savings: Optional[float] = None
    kinds: Optional[FrozenSet[ResourceKind]] = None

    def __post_init__(self) -> None:
        if self.dry_run and self.interactive:
            raise ConfigurationError(
                "dry-run and interactive modes are mutually exclusive"
            )
        for name in ("min_age_days", "max_resources", "max_estimated_savings"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ConfigurationError(
                    f"{name} must not be negative", details={name: value}
                )
        object.__setattr__(
            self, "protect_tag_patterns", frozenset(self.protect_tag_patterns)
        )
        if self.kinds is not None:
            object.__setattr__(self, "kinds", frozenset(self.kinds))

    @property
    def mode(self) -> RunMode:
        """Run mode implied by the flags."""
        if self.dry_run:
            return RunMode.DRY_RUN
        if self.interactive:
            return RunMode.INTERACTIVE
        return RunMode.AUTOMATED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "mode": self.mode.value,
            "backup_before_delete": self.backup_before_delete,
            "protect_tag_patterns": sorted(self.protect_tag_patterns),
            "keep_tagged": self.keep_tagged,
            "min_age_days": self.min_age_days,
            "max_resources": self.max_resources,
            "max_estimated_savings": self.max_estimated_savings,
            "kinds": sorted(k.value for k in self.kinds) if self.kinds else None,
        }


@dataclass(frozen=True)
class DeletionAttempt:
    """
    Outcome of processing one resource.

    Attributes
    ----------
    record : ResourceRecord
        The resource, as read from the report. Never mutated.
    verdict : Verdict
        The classifier's verdict from the report.
    protection_state : ProtectionState
        Gate protection that applied, if any.
    outcome : Outcome
        Terminal outcome.
    stage : Gate
        Stage that decided the outcome.
    backup_ref : str, optional
        AMI, snapshot or DB snapshot ID created before deletion.
    action_ref : str, optional
        Provider reference of the destructive action, or the synthetic
        ``dryrun-<kind>-<id>`` in dry-run mode.
    failure_reason : str, optional
        Why the resource was skipped or failed.
    timestamp : datetime
        When the attempt reached its outcome.
    """

    record: ResourceRecord
    verdict: Verdict
    protection_state: ProtectionState
    outcome: Outcome
    stage: Gate
    backup_ref: Optional[str] = None
    action_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def details(self) -> str:
        """One-line description for logs and tables."""
        parts = []
        if self.failure_reason:
            parts.append(self.failure_reason)
        if self.backup_ref:
            parts.append(f"backup={self.backup_ref}")
        if self.action_ref:
            parts.append(f"ref={self.action_ref}")
        return "; ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.record.kind.value,
            "region": self.record.region,
            "resource_id": self.record.id,
            "name": self.record.name,
            "stage": self.stage.value,
            "outcome": self.outcome.value,
            "protection_state": self.protection_state.value,
            "backup_ref": self.backup_ref,
            "action_ref": self.action_ref,
            "failure_reason": self.failure_reason,
            "estimated_monthly_cost": self.verdict.estimated_monthly_cost,
            "tags": dict(self.record.tags),
        }

    def __repr__(self) -> str:
        return (
            f"DeletionAttempt(id='{self.record.id}', "
            f"outcome={self.outcome.value}, stage={self.stage.value})"
        )


@dataclass(frozen=True)
class RunSummary:
    """
    Tally of a run, computed from its attempts.

    Example
    -------
    >>> summary = RunSummary.from_attempts(attempts)
    >>> summary.succeeded, summary.backup_failures
    (3, 1)
    """

    total: int = 0
    skipped: int = 0
    dry_run_simulated: int = 0
    succeeded: int = 0
    failed: int = 0
    protected_by_tag: int = 0
    protected_by_age: int = 0
    protected_by_state: int = 0
    declined: int = 0
    backup_failures: int = 0
    action_failures: int = 0
    estimated_savings: float = 0.0
    aborted: bool = False
    not_processed: int = 0

    @classmethod
    def from_attempts(
        cls,
        attempts: Iterable[DeletionAttempt],
        aborted: bool = False,
        not_processed: int = 0,
    ) -> RunSummary:
        """
        Fold attempts into a summary.

        Parameters
        ----------
        attempts : iterable of DeletionAttempt
            Attempts of the run, in any order.
        aborted : bool, default=False
            Whether the user quit the run.
        not_processed : int, default=0
            Resources never attempted because of a quit or a limit.
        """
        attempts = list(attempts)

        def count(predicate) -> int:
            return sum(1 for attempt in attempts if predicate(attempt))

        def protected(state: ProtectionState) -> int:
            return count(lambda a: a.protection_state is state)

        def failed_at(stage: Gate) -> int:
            return count(lambda a: a.outcome is Outcome.FAILED and a.stage is stage)

        return cls(
            total=len(attempts),
            skipped=count(lambda a: a.outcome is Outcome.SKIPPED),
            dry_run_simulated=count(lambda a: a.outcome is Outcome.DRY_RUN_SIMULATED),
            succeeded=count(lambda a: a.outcome is Outcome.SUCCEEDED),
            failed=count(lambda a: a.outcome is Outcome.FAILED),
            protected_by_tag=protected(ProtectionState.PROTECTED_BY_TAG),
            protected_by_age=protected(ProtectionState.PROTECTED_BY_AGE),
            protected_by_state=protected(ProtectionState.PROTECTED_BY_STATE),
            declined=count(
                lambda a: a.outcome is Outcome.SKIPPED and a.stage is Gate.CONFIRMATION
            ),
            backup_failures=failed_at(Gate.BACKUP),
            action_failures=failed_at(Gate.ACTION),
            estimated_savings=round(
                sum(
                    a.verdict.estimated_monthly_cost or 0.0
                    for a in attempts
                    if a.outcome in (Outcome.SUCCEEDED, Outcome.DRY_RUN_SIMULATED)
                ),
                2,
            ),
            aborted=aborted,
            not_processed=not_processed,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "skipped": self.skipped,
            "dry_run_simulated": self.dry_run_simulated,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "protected_by_tag": self.protected_by_tag,
            "protected_by_age": self.protected_by_age,
            "protected_by_state": self.protected_by_state,
            "declined": self.declined,
            "backup_failures": self.backup_failures,
            "action_failures": self.action_failures,
            "estimated_savings": self.estimated_savings,
            "aborted": self.aborted,
            "not_processed": self.not_processed,
        }
