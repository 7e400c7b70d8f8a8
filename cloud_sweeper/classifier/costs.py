"""
Cost Estimation Module
======================

Static monthly cost table used to attach an estimate to every verdict.

The figures are approximate us-east-1 on-demand prices. They are meant
to rank cleanup candidates, not to reproduce a bill: every estimate is
labeled as such in the verdict reason, together with a note when the
per-kind default rate had to be used.

Functions
---------
estimate_cost
    Estimate the monthly cost of one resource record.

Example
-------
>>> from cloud_sweeper.classifier.costs import estimate_cost
>>>
>>> estimate = estimate_cost(record)
>>> estimate.amount, estimate.basis
(8.0, 'gp2 at $0.10/GB')
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from cloud_sweeper.core.models import ResourceKind, ResourceRecord

# =============================================================================
# Rate Tables (USD per month)
# =============================================================================

INSTANCE_MONTHLY_COST: Dict[str, float] = {
    "t2.micro": 8.50,
    "t2.small": 17.00,
    "t2.medium": 34.00,
    "t2.large": 68.00,
    "t3.micro": 7.50,
    "t3.small": 15.00,
    "t3.medium": 30.00,
    "t3.large": 60.00,
    "t3.xlarge": 120.00,
    "m5.large": 70.00,
    "m5.xlarge": 140.00,
    "m5.2xlarge": 280.00,
    "m5.4xlarge": 560.00,
    "c5.large": 62.00,
    "c5.xlarge": 124.00,
    "r5.large": 91.00,
    "r5.xlarge": 182.00,
}
DEFAULT_INSTANCE_COST = 50.00

VOLUME_GB_MONTH: Dict[str, float] = {
    "gp2": 0.10,
    "gp3": 0.08,
    "io1": 0.125,
    "io2": 0.125,
    "st1": 0.045,
    "sc1": 0.025,
    "standard": 0.05,
}
DEFAULT_VOLUME_GB_MONTH = 0.10
PROVISIONED_IOPS_MONTH = 0.065
PROVISIONED_IOPS_TYPES = ("io1", "io2")

SNAPSHOT_GB_MONTH = 0.05
FLOATING_IP_MONTHLY_COST = 3.60

LOAD_BALANCER_MONTHLY_COST: Dict[str, float] = {
    "application": 22.00,
    "network": 22.00,
    "gateway": 22.00,
    "classic": 18.00,
}
DEFAULT_LOAD_BALANCER_COST = 22.00

DB_MONTHLY_COST: Dict[str, float] = {
    "db.t2.micro": 15.00,
    "db.t2.small": 30.00,
    "db.t3.micro": 15.00,
    "db.t3.small": 30.00,
    "db.t3.medium": 60.00,
    "db.m5.large": 140.00,
}
DEFAULT_DB_COST = 100.00

# Idle functions cost little or nothing; flat upper bound
FUNCTION_MONTHLY_COST = 1.00
NAT_GATEWAY_MONTHLY_COST = 32.40
BUCKET_GB_MONTH = 0.023


@dataclass(frozen=True)
class CostEstimate:
    """
    Monthly cost estimate with its basis.

    Attributes
    ----------
    amount : float, optional
        Estimated USD per month, or ``None`` when it cannot be estimated
        (e.g. unknown size).
    basis : str
        Which rate was applied.
    default_used : bool
        True when the flavor was not in the table and the kind's default
        rate was applied.
    """

    amount: Optional[float]
    basis: str
    default_used: bool = False

    def describe(self) -> str:
        """Text appended to verdict reasons."""
        if self.amount is None:
            return f"cost estimate unavailable ({self.basis})"
        text = f"estimated ${self.amount:.2f}/month ({self.basis})"
        if self.default_used:
            text += ", default rate"
        return text


def _lookup(table: Dict[str, float], flavor: Optional[str], default: float):
    if flavor and flavor in table:
        return table[flavor], False
    return default, True


def _instance(record: ResourceRecord) -> CostEstimate:
    rate, default_used = _lookup(
        INSTANCE_MONTHLY_COST, record.flavor, DEFAULT_INSTANCE_COST
    )
    return CostEstimate(rate, f"{record.flavor or 'unknown type'} rate", default_used)


def _volume(record: ResourceRecord) -> CostEstimate:
    rate, default_used = _lookup(
        VOLUME_GB_MONTH, record.flavor, DEFAULT_VOLUME_GB_MONTH
    )
    volume_type = record.flavor or "unknown type"
    if record.size is None:
        return CostEstimate(None, f"{volume_type}, size unknown", default_used)

    amount = record.size * rate
    basis = f"{volume_type} at ${rate:.3f}/GB"
    iops = record.details.get("iops")
    if record.flavor in PROVISIONED_IOPS_TYPES and iops:
        amount += float(iops) * PROVISIONED_IOPS_MONTH
        basis += f" + {iops} IOPS at ${PROVISIONED_IOPS_MONTH}/IOPS"
    return CostEstimate(round(amount, 2), basis, default_used)


def _snapshot(record: ResourceRecord) -> CostEstimate:
    if record.size is None:
        return CostEstimate(None, "size unknown")
    return CostEstimate(
        round(record.size * SNAPSHOT_GB_MONTH, 2), f"${SNAPSHOT_GB_MONTH}/GB"
    )


def _floating_ip(record: ResourceRecord) -> CostEstimate:
    if record.associated_id:
        return CostEstimate(0.0, "associated address")
    return CostEstimate(FLOATING_IP_MONTHLY_COST, "idle address rate")


def _load_balancer(record: ResourceRecord) -> CostEstimate:
    rate, default_used = _lookup(
        LOAD_BALANCER_MONTHLY_COST, record.flavor, DEFAULT_LOAD_BALANCER_COST
    )
    return CostEstimate(rate, f"{record.flavor or 'unknown'} load balancer", default_used)


def _managed_db(record: ResourceRecord) -> CostEstimate:
    rate, default_used = _lookup(DB_MONTHLY_COST, record.flavor, DEFAULT_DB_COST)
    return CostEstimate(rate, f"{record.flavor or 'unknown class'} rate", default_used)


def _function(record: ResourceRecord) -> CostEstimate:
    return CostEstimate(FUNCTION_MONTHLY_COST, "idle function upper bound")


def _nat_gateway(record: ResourceRecord) -> CostEstimate:
    return CostEstimate(NAT_GATEWAY_MONTHLY_COST, "hourly charge")


def _bucket(record: ResourceRecord) -> CostEstimate:
    if record.size is None:
        return CostEstimate(None, "size unknown")
    return CostEstimate(
        round(record.size * BUCKET_GB_MONTH, 2), f"${BUCKET_GB_MONTH}/GB standard"
    )


_ESTIMATORS: Dict[ResourceKind, Callable[[ResourceRecord], CostEstimate]] = {
    ResourceKind.INSTANCE: _instance,
    ResourceKind.VOLUME: _volume,
    ResourceKind.SNAPSHOT: _snapshot,
    ResourceKind.FLOATING_IP: _floating_ip,
    ResourceKind.LOAD_BALANCER: _load_balancer,
    ResourceKind.MANAGED_DB: _managed_db,
    ResourceKind.SERVERLESS_FUNCTION: _function,
    ResourceKind.NAT_GATEWAY: _nat_gateway,
    ResourceKind.OBJECT_BUCKET: _bucket,
}


def estimate_cost(record: ResourceRecord) -> CostEstimate:
    """
    Estimate the monthly cost of a resource.

    Parameters
    ----------
    record : ResourceRecord
        The resource. ``flavor`` selects the rate; ``size`` scales
        per-GB rates.

    Returns
    -------
    CostEstimate
        Never raises; unknown inputs yield the default rate or ``None``.

    Example
    -------
    >>> estimate_cost(eip_record).amount
    3.6
    """
    return _ESTIMATORS[record.kind](record)
