"""
Core Data Model
===============

Shared types for the inventory, classification and deletion stages.

Classes
-------
ResourceKind
    Enum of the nine resource kinds Cloud-Sweeper audits.
ResourceRecord
    Read-only snapshot of one cloud resource observed during a scan.
Disposition
    Classification verdict: DELETE, REVIEW, KEEP or IGNORE.
Verdict
    Disposition plus reason and estimated monthly cost.
ThresholdConfig
    Immutable per-run classification thresholds.
ClassifiedResource
    A (ResourceRecord, Verdict) pair, the unit flowing from the classifier
    to the reporters and the executor.

Notes
-----
Records are created fresh on every scan and never mutated. Nothing is
persisted between scans apart from the delimited report, which is the only
input to the deletion executor.

Example
-------
>>> from cloud_sweeper.core.models import ResourceKind, ResourceRecord
>>>
>>> record = ResourceRecord(
...     kind=ResourceKind.FLOATING_IP,
...     region="us-east-1",
...     id="eipalloc-123",
...     state="unassociated",
... )
>>> record.age_days(datetime.now(timezone.utc)) is None
True
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional

from cloud_sweeper.core.exceptions import ConfigurationError


class ResourceKind(Enum):
    """Kinds of cloud resources covered by the audit."""

    INSTANCE = "Instance"
    VOLUME = "Volume"
    SNAPSHOT = "Snapshot"
    FLOATING_IP = "FloatingIP"
    LOAD_BALANCER = "LoadBalancer"
    MANAGED_DB = "ManagedDB"
    SERVERLESS_FUNCTION = "ServerlessFunction"
    NAT_GATEWAY = "NATGateway"
    OBJECT_BUCKET = "ObjectBucket"

    @property
    def label(self) -> str:
        """Human readable label used in reports."""
        return _KIND_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """
        Parse a kind from its value, enum name or a CLI-style alias.

        Parameters
        ----------
        value : str
            e.g. ``"Volume"``, ``"VOLUME"``, ``"floating-ip"`` or ``"ebs"``.

        Raises
        ------
        ValueError
            If the value does not name a known kind.
        """
        normalized = value.strip().lower().replace("-", "").replace("_", "")
        for kind in cls:
            if normalized in (kind.value.lower(), kind.name.lower().replace("_", "")):
                return kind
        if normalized in _KIND_ALIASES:
            return _KIND_ALIASES[normalized]
        raise ValueError(f"Unknown resource kind: {value!r}")


_KIND_LABELS = {
    ResourceKind.INSTANCE: "EC2 Instance",
    ResourceKind.VOLUME: "EBS Volume",
    ResourceKind.SNAPSHOT: "EBS Snapshot",
    ResourceKind.FLOATING_IP: "Elastic IP",
    ResourceKind.LOAD_BALANCER: "Load Balancer",
    ResourceKind.MANAGED_DB: "RDS Instance",
    ResourceKind.SERVERLESS_FUNCTION: "Lambda Function",
    ResourceKind.NAT_GATEWAY: "NAT Gateway",
    ResourceKind.OBJECT_BUCKET: "S3 Bucket",
}

_KIND_ALIASES = {
    "ec2": ResourceKind.INSTANCE,
    "ebs": ResourceKind.VOLUME,
    "eip": ResourceKind.FLOATING_IP,
    "elasticip": ResourceKind.FLOATING_IP,
    "elb": ResourceKind.LOAD_BALANCER,
    "rds": ResourceKind.MANAGED_DB,
    "lambda": ResourceKind.SERVERLESS_FUNCTION,
    "nat": ResourceKind.NAT_GATEWAY,
    "s3": ResourceKind.OBJECT_BUCKET,
}

# Report and processing order for kinds
KIND_ORDER = {kind: index for index, kind in enumerate(ResourceKind)}


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_optional_float(value: Any) -> Optional[float]:
    """
    Convert a provider value to a float, mapping sentinels to ``None``.

    This is the single place where strings such as ``"N/A"``, ``"None"``,
    empty values and NaN become "absent".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().lstrip("$")
        if value.lower() in ("", "n/a", "na", "none", "null", "unknown", "unavailable"):
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


@dataclass(frozen=True)
class ResourceRecord:
    """
    Read-only snapshot of one cloud resource.

    Parameters
    ----------
    kind : ResourceKind
        Resource kind.
    region : str
        AWS region of the resource.
    id : str
        Provider-assigned ID, unique within kind and region.
    state : str
        Provider lifecycle state (running, stopped, available, in-use...).
    created_at : datetime, optional
        Creation time (launch time, last modification for functions).
        ``None`` when the provider does not report it.
    size : float, optional
        Kind dependent size: GB for volumes, snapshots, buckets and
        databases; memory MB for functions.
    utilization : float, optional
        Trailing-window average of the kind's activity metric, or ``None``
        when unavailable.
    utilization_metric : str, optional
        Name of the metric held in ``utilization``.
    tags : mapping of str to str
        Resource tags.
    associated_id : str, optional
        Back-reference, e.g. the instance a volume or Elastic IP is
        attached to.
    name : str
        Human identifying label (Name tag, bucket name...).
    flavor : str, optional
        Coarse type descriptor used for cost lookup (instance type,
        volume type, DB class, load balancer type).
    object_count : int, optional
        Number of objects (buckets only).
    details : dict
        Extra kind-specific attributes shown in reports.
    """

    kind: ResourceKind
    region: str
    id: str
    state: str
    created_at: Optional[datetime] = None
    size: Optional[float] = None
    utilization: Optional[float] = None
    utilization_metric: Optional[str] = None
    tags: Mapping[str, str] = field(default_factory=dict)
    associated_id: Optional[str] = None
    name: str = ""
    flavor: Optional[str] = None
    object_count: Optional[int] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "tags", dict(self.tags or {}))
        object.__setattr__(self, "details", dict(self.details or {}))

    # Records carry dicts, so identity is the (kind, region, id) key
    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def key(self) -> tuple:
        """Identity of the record within one scan."""
        return (self.kind, self.region, self.id)

    @property
    def label(self) -> str:
        """Name if known, otherwise the ID."""
        return self.name or self.id

    def age_days(self, as_of: datetime) -> Optional[int]:
        """
        Whole days between ``created_at`` and ``as_of``.

        Returns
        -------
        int or None
            ``None`` when the creation time is unknown.
        """
        if self.created_at is None:
            return None
        delta = ensure_utc(as_of) - self.created_at
        return max(delta.days, 0)

    def with_state(self, state: str) -> ResourceRecord:
        """Return a copy of the record with a different state."""
        return replace(self, state=state)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "kind": self.kind.value,
            "region": self.region,
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "size": self.size,
            "utilization": self.utilization,
            "utilization_metric": self.utilization_metric,
            "tags": dict(self.tags),
            "associated_id": self.associated_id,
            "flavor": self.flavor,
            "object_count": self.object_count,
            "details": dict(self.details),
        }


class Disposition(Enum):
    """Classification verdict for a resource."""

    DELETE = "DELETE"
    REVIEW = "REVIEW"
    KEEP = "KEEP"
    IGNORE = "IGNORE"


@dataclass(frozen=True)
class Verdict:
    """
    Result of classifying one resource.

    Attributes
    ----------
    disposition : Disposition
        DELETE, REVIEW, KEEP or IGNORE.
    reason : str
        Which rule fired and with what threshold.
    estimated_monthly_cost : float, optional
        Approximate monthly cost; ``None`` when unknown.
    """

    disposition: Disposition
    reason: str
    estimated_monthly_cost: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "disposition": self.disposition.value,
            "reason": self.reason,
            "estimated_monthly_cost": self.estimated_monthly_cost,
        }


class ClassifiedResource(NamedTuple):
    """A resource record paired with its verdict."""

    record: ResourceRecord
    verdict: Verdict


def _default_windows() -> Dict[ResourceKind, int]:
    return {kind: 30 for kind in ResourceKind}


@dataclass(frozen=True)
class ThresholdConfig:
    """
    Classification thresholds for one run.

    Attributes
    ----------
    stopped_instance_min_days : int, default=30
        A stopped instance at least this old is DELETE.
    unattached_volume_min_days : int, default=30
        An available (unattached) volume at least this old is DELETE;
        younger ones are REVIEW.
    snapshot_review_min_days : int, default=90
        Snapshots at least this old are REVIEW.
    snapshot_delete_min_days : int, default=365
        Snapshots at least this old are DELETE.
    cpu_idle_percent : float, default=5.0
        Running instances below this average CPU are REVIEW.
    idle_activity_min_days : int, default=90
        Functions without invocations must be at least this old to be DELETE.
    empty_bucket_min_days : int, default=180
        Empty buckets at least this old are DELETE.
    load_balancer_min_days : int, default=7
        Idle load balancers must be at least this old to be DELETE.
    nat_idle_bytes : float, default=1_000_000
        NAT gateways below this average of bytes out are REVIEW.
    nearly_empty_bucket_gb : float, default=0.1
        Old buckets smaller than this are REVIEW.
    metric_window_days : dict, default=30 days for every kind
        Trailing window used when averaging each kind's metric.
    """

    stopped_instance_min_days: int = 30
    unattached_volume_min_days: int = 30
    snapshot_review_min_days: int = 90
    snapshot_delete_min_days: int = 365
    cpu_idle_percent: float = 5.0
    idle_activity_min_days: int = 90
    empty_bucket_min_days: int = 180
    load_balancer_min_days: int = 7
    nat_idle_bytes: float = 1_000_000
    nearly_empty_bucket_gb: float = 0.1
    metric_window_days: Mapping[ResourceKind, int] = field(
        default_factory=_default_windows
    )

    def __post_init__(self) -> None:
        windows = _default_windows()
        windows.update(self.metric_window_days or {})
        object.__setattr__(self, "metric_window_days", windows)

    def __hash__(self) -> int:
        return hash(repr(self.to_dict()))

    def window_for(self, kind: ResourceKind) -> int:
        """Trailing metric window in days for a kind."""
        return self.metric_window_days[kind]

    def validate(self) -> ThresholdConfig:
        """
        Check the configuration for inconsistent values.

        Returns
        -------
        ThresholdConfig
            ``self``, to allow chaining.

        Raises
        ------
        ConfigurationError
            If a threshold is negative or the snapshot review threshold
            exceeds the delete threshold.
        """
        for name, value in self.to_dict().items():
            if name == "metric_window_days":
                continue
            if value < 0:
                raise ConfigurationError(
                    f"Threshold {name} must not be negative",
                    details={name: value},
                )
        for kind, days in self.metric_window_days.items():
            if days < 1:
                raise ConfigurationError(
                    f"Metric window for {kind.value} must be at least 1 day",
                    details={"kind": kind.value, "days": days},
                )
        if self.snapshot_review_min_days > self.snapshot_delete_min_days:
            raise ConfigurationError(
                "snapshot_review_min_days must not exceed snapshot_delete_min_days",
                details={
                    "snapshot_review_min_days": self.snapshot_review_min_days,
                    "snapshot_delete_min_days": self.snapshot_delete_min_days,
                },
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stopped_instance_min_days": self.stopped_instance_min_days,
            "unattached_volume_min_days": self.unattached_volume_min_days,
            "snapshot_review_min_days": self.snapshot_review_min_days,
            "snapshot_delete_min_days": self.snapshot_delete_min_days,
            "cpu_idle_percent": self.cpu_idle_percent,
            "idle_activity_min_days": self.idle_activity_min_days,
            "empty_bucket_min_days": self.empty_bucket_min_days,
            "load_balancer_min_days": self.load_balancer_min_days,
            "nat_idle_bytes": self.nat_idle_bytes,
            "nearly_empty_bucket_gb": self.nearly_empty_bucket_gb,
            "metric_window_days": {
                kind.value: days for kind, days in self.metric_window_days.items()
            },
        }
