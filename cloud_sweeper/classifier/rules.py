"""
Classification Rules Module
===========================

Turns one ``ResourceRecord`` and the active ``ThresholdConfig`` into a
``Verdict``: DELETE, REVIEW, KEEP or IGNORE, a reason naming the rule and
threshold that fired, and an estimated monthly cost.

Rule Table
----------
=================== ======================================== ====================================
Kind                DELETE                                   REVIEW
=================== ======================================== ====================================
Instance            stopped and age >= stopped days          running and CPU < idle percent
Volume              available and age >= unattached days     available and younger (or unknown)
Snapshot            age >= snapshot delete days              age >= snapshot review days
FloatingIP          not associated                           -
LoadBalancer        traffic < 1 and age >= LB days           -
ManagedDB           connections < 1 and age known            stopped, or idle with unknown age
ServerlessFunction  invocations < 1 and age >= idle days     -
NATGateway          -                                        bytes out < NAT idle bytes
ObjectBucket        0 objects and age >= empty bucket days   0 objects and younger (or unknown),
                                                             or size < nearly empty and old
=================== ======================================== ====================================

Anything else is KEEP. Terminal lifecycle states are IGNORE for every kind.

Notes
-----
Classification is pure and never raises. A missing age or metric means
"condition not met": a DELETE rule that needs it does not fire. Elastic
IPs are the only age-independent DELETE, since AWS does not report an
allocation time for them.

Example
-------
>>> from cloud_sweeper.classifier import Classifier
>>>
>>> classifier = Classifier(ThresholdConfig(stopped_instance_min_days=90))
>>> verdict = classifier.classify(record)
>>> verdict.disposition
<Disposition.DELETE: 'DELETE'>
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from cloud_sweeper.classifier.costs import estimate_cost
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ResourceKind,
    ResourceRecord,
    ThresholdConfig,
    Verdict,
    ensure_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset(
    {"terminated", "shutting-down", "deleted", "deleting", "gone"}
)

# Activity below this average counts as idle for LBs, DBs and functions
IDLE_ACTIVITY_THRESHOLD = 1.0

Decision = Tuple[Disposition, str]
Rule = Callable[[ResourceRecord, ThresholdConfig, Optional[int]], Decision]


def _at_least(age: Optional[int], days: int) -> bool:
    return age is not None and age >= days


def _below(value: Optional[float], limit: float) -> bool:
    return value is not None and value < limit


def _age_text(age: Optional[int]) -> str:
    return "age unknown" if age is None else f"{age} days old"


# =============================================================================
# Per-kind Rules
# =============================================================================


def _instance_rule(record, config, age) -> Decision:
    days = config.stopped_instance_min_days
    if record.state == "stopped":
        if _at_least(age, days):
            return Disposition.DELETE, f"Stopped instance, {age} days old (>= {days})"
        return Disposition.KEEP, f"Stopped instance, {_age_text(age)} (< {days} required)"

    if record.state == "running":
        limit = config.cpu_idle_percent
        if _below(record.utilization, limit):
            return (
                Disposition.REVIEW,
                f"Running with avg CPU {record.utilization:.2f}% (< {limit}%)",
            )
        if record.utilization is None:
            return Disposition.KEEP, "Running, CPU metrics unavailable"
        return Disposition.KEEP, f"Running with avg CPU {record.utilization:.2f}%"

    return Disposition.KEEP, f"Instance is {record.state}"


def _volume_rule(record, config, age) -> Decision:
    days = config.unattached_volume_min_days
    if record.state != "available":
        return Disposition.KEEP, f"Volume is {record.state}"
    if _at_least(age, days):
        return Disposition.DELETE, f"Unattached volume, {age} days old (>= {days})"
    return Disposition.REVIEW, f"Unattached volume, {_age_text(age)} (< {days} for delete)"


def _snapshot_rule(record, config, age) -> Decision:
    delete_days = config.snapshot_delete_min_days
    review_days = config.snapshot_review_min_days
    if _at_least(age, delete_days):
        return Disposition.DELETE, f"Snapshot {age} days old (>= {delete_days})"
    if _at_least(age, review_days):
        return Disposition.REVIEW, f"Snapshot {age} days old (>= {review_days})"
    return Disposition.KEEP, f"Snapshot {_age_text(age)} (< {review_days})"


def _floating_ip_rule(record, config, age) -> Decision:
    if record.associated_id:
        return Disposition.KEEP, f"Associated with {record.associated_id}"
    return Disposition.DELETE, "Elastic IP is unassociated (no instance or network interface)"


def _load_balancer_rule(record, config, age) -> Decision:
    days = config.load_balancer_min_days
    metric = record.utilization_metric or "traffic"
    if record.utilization is None:
        return Disposition.KEEP, f"{metric} unavailable"
    if not _below(record.utilization, IDLE_ACTIVITY_THRESHOLD):
        return Disposition.KEEP, f"Avg {metric} {record.utilization:.2f}"
    if _at_least(age, days):
        return (
            Disposition.DELETE,
            f"No traffic (avg {metric} {record.utilization:.2f} < 1), "
            f"{age} days old (>= {days})",
        )
    return Disposition.KEEP, f"No traffic but {_age_text(age)} (< {days} required)"


def _managed_db_rule(record, config, age) -> Decision:
    if record.state == "stopped":
        return Disposition.REVIEW, "Database is stopped"
    if record.utilization is None:
        return Disposition.KEEP, "Connection metrics unavailable"
    if not _below(record.utilization, IDLE_ACTIVITY_THRESHOLD):
        return Disposition.KEEP, f"Avg connections {record.utilization:.2f}"
    if age is None:
        return Disposition.REVIEW, "No connections (avg < 1), age unknown"
    return (
        Disposition.DELETE,
        f"No connections (avg {record.utilization:.2f} < 1) over "
        f"{config.window_for(ResourceKind.MANAGED_DB)} days",
    )


def _function_rule(record, config, age) -> Decision:
    days = config.idle_activity_min_days
    if record.utilization is None:
        return Disposition.KEEP, "Invocation metrics unavailable"
    if not _below(record.utilization, IDLE_ACTIVITY_THRESHOLD):
        return Disposition.KEEP, f"Avg invocations {record.utilization:.2f}"
    if _at_least(age, days):
        return (
            Disposition.DELETE,
            f"No invocations (avg {record.utilization:.2f} < 1), "
            f"last modified {age} days ago (>= {days})",
        )
    return Disposition.KEEP, f"No invocations but {_age_text(age)} (< {days} required)"


def _nat_gateway_rule(record, config, age) -> Decision:
    limit = config.nat_idle_bytes
    if record.state != "available":
        return Disposition.KEEP, f"NAT gateway is {record.state}"
    if _below(record.utilization, limit):
        return (
            Disposition.REVIEW,
            f"Low traffic (avg {record.utilization:,.0f} bytes out < {limit:,.0f})",
        )
    if record.utilization is None:
        return Disposition.KEEP, "Traffic metrics unavailable"
    return Disposition.KEEP, f"Avg {record.utilization:,.0f} bytes out"


def _bucket_rule(record, config, age) -> Decision:
    days = config.empty_bucket_min_days
    if record.object_count == 0:
        if _at_least(age, days):
            return Disposition.DELETE, f"Empty bucket, {age} days old (>= {days})"
        return Disposition.REVIEW, f"Empty bucket, {_age_text(age)} (< {days} for delete)"

    limit = config.nearly_empty_bucket_gb
    if _below(record.size, limit) and _at_least(age, days):
        return (
            Disposition.REVIEW,
            f"Nearly empty ({record.size:.3f} GB < {limit} GB), {age} days old",
        )
    if record.object_count is None and record.size is None:
        return Disposition.KEEP, "Bucket contents unknown"
    return Disposition.KEEP, "Bucket in use"


RULES: Dict[ResourceKind, Rule] = {
    ResourceKind.INSTANCE: _instance_rule,
    ResourceKind.VOLUME: _volume_rule,
    ResourceKind.SNAPSHOT: _snapshot_rule,
    ResourceKind.FLOATING_IP: _floating_ip_rule,
    ResourceKind.LOAD_BALANCER: _load_balancer_rule,
    ResourceKind.MANAGED_DB: _managed_db_rule,
    ResourceKind.SERVERLESS_FUNCTION: _function_rule,
    ResourceKind.NAT_GATEWAY: _nat_gateway_rule,
    ResourceKind.OBJECT_BUCKET: _bucket_rule,
}


# =============================================================================
# Public API
# =============================================================================


def classify(
    record: ResourceRecord,
    config: ThresholdConfig,
    as_of: datetime,
) -> Verdict:
    """
    Classify one resource.

    Parameters
    ----------
    record : ResourceRecord
        The resource to classify.
    config : ThresholdConfig
        Active thresholds.
    as_of : datetime
        Reference time for ages.

    Returns
    -------
    Verdict
        Disposition, reason (with labeled cost estimate) and cost.
    """
    if record.state in TERMINAL_STATES:
        return Verdict(Disposition.IGNORE, f"Resource is {record.state}", None)

    age = record.age_days(as_of)
    disposition, reason = RULES[record.kind](record, config, age)
    estimate = estimate_cost(record)
    return Verdict(
        disposition=disposition,
        reason=f"{reason}; {estimate.describe()}",
        estimated_monthly_cost=estimate.amount,
    )


class Classifier:
    """
    Applies the rule table with a fixed configuration and reference time.

    Parameters
    ----------
    config : ThresholdConfig, optional
        Thresholds; validated on construction.
    as_of : datetime, optional
        Reference time for ages. Pinned at construction so a whole scan
        is classified against the same instant.

    Example
    -------
    >>> classifier = Classifier()
    >>> classified = classifier.classify_all(result.records)
    >>> deletes = [c for c in classified if c.verdict.disposition is Disposition.DELETE]
    """

    def __init__(
        self,
        config: Optional[ThresholdConfig] = None,
        as_of: Optional[datetime] = None,
    ) -> None:
        self.config = (config or ThresholdConfig()).validate()
        self.as_of = ensure_utc(as_of) or utcnow()

    def classify(self, record: ResourceRecord) -> Verdict:
        """Classify one record."""
        return classify(record, self.config, self.as_of)

    def classify_all(self, records: Iterable[ResourceRecord]) -> List[ClassifiedResource]:
        """Classify records, preserving their order."""
        classified = [ClassifiedResource(r, self.classify(r)) for r in records]
        logger.info(f"Classified {len(classified)} resources")
        return classified

    def __repr__(self) -> str:
        return f"Classifier(as_of='{self.as_of.isoformat()}')"
