"""
Resource Scanners
=================

One inventory collector per resource kind. Scanners list resources and
attach the trailing-window metric the classifier needs; they do not
decide whether anything is unused.

Available Scanners
------------------
InstanceScanner
    EC2 instances with average CPU.
VolumeScanner
    EBS volumes with attachment and I/O.
SnapshotScanner
    EBS snapshots owned by the account.
EIPScanner
    Elastic IP addresses with their association.
LoadBalancerScanner
    Application, Network, Gateway and Classic load balancers with traffic.
RDSScanner
    RDS DB instances with average connections.
LambdaScanner
    Lambda functions with average daily invocations.
NATGatewayScanner
    NAT gateways with bytes sent.
S3Scanner
    S3 buckets (global) with object count and size.

Example
-------
>>> from cloud_sweeper.scanners import ALL_SCANNERS, scanners_for_kinds
>>> from cloud_sweeper.core import RegionManager
>>>
>>> manager = RegionManager()
>>> result = manager.scan_regions(scanners_for_kinds(["ec2", "ebs"]))

Adding New Scanners
-------------------
1. Add the kind to ``ResourceKind``
2. Implement a ``BaseScanner`` subclass in this directory
3. Add a rule and a cost estimator for the kind in ``cloud_sweeper.classifier``
4. Register the scanner in ``SCANNERS`` below

See Also
--------
cloud_sweeper.core.base_scanner : Base class for all scanners.
"""

from typing import Dict, Iterable, List, Optional, Type

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind
from cloud_sweeper.scanners.eip_scanner import EIPScanner
from cloud_sweeper.scanners.instance_scanner import InstanceScanner
from cloud_sweeper.scanners.lambda_scanner import LambdaScanner
from cloud_sweeper.scanners.load_balancer_scanner import LoadBalancerScanner
from cloud_sweeper.scanners.nat_gateway_scanner import NATGatewayScanner
from cloud_sweeper.scanners.rds_scanner import RDSScanner
from cloud_sweeper.scanners.s3_scanner import S3Scanner
from cloud_sweeper.scanners.snapshot_scanner import SnapshotScanner
from cloud_sweeper.scanners.volume_scanner import VolumeScanner

SCANNERS: Dict[ResourceKind, Type[BaseScanner]] = {
    ResourceKind.INSTANCE: InstanceScanner,
    ResourceKind.VOLUME: VolumeScanner,
    ResourceKind.SNAPSHOT: SnapshotScanner,
    ResourceKind.FLOATING_IP: EIPScanner,
    ResourceKind.LOAD_BALANCER: LoadBalancerScanner,
    ResourceKind.MANAGED_DB: RDSScanner,
    ResourceKind.SERVERLESS_FUNCTION: LambdaScanner,
    ResourceKind.NAT_GATEWAY: NATGatewayScanner,
    ResourceKind.OBJECT_BUCKET: S3Scanner,
}

ALL_SCANNERS: List[Type[BaseScanner]] = list(SCANNERS.values())


def scanners_for_kinds(kinds: Optional[Iterable[str]] = None) -> List[Type[BaseScanner]]:
    """
    Scanner classes for the named kinds, in kind order.

    Parameters
    ----------
    kinds : iterable of str, optional
        Kind names or aliases (see ``ResourceKind.parse``). None means all.

    Raises
    ------
    ValueError
        If a name is not a known kind.
    """
    if not kinds:
        return list(ALL_SCANNERS)
    wanted = {ResourceKind.parse(kind) for kind in kinds}
    return [scanner for kind, scanner in SCANNERS.items() if kind in wanted]


__all__ = [
    "EIPScanner",
    "InstanceScanner",
    "LambdaScanner",
    "LoadBalancerScanner",
    "NATGatewayScanner",
    "RDSScanner",
    "S3Scanner",
    "SnapshotScanner",
    "VolumeScanner",
    "SCANNERS",
    "ALL_SCANNERS",
    "scanners_for_kinds",
]
