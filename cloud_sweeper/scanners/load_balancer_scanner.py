"""
Load Balancer Scanner Module
============================

Collects Application, Network, Gateway and Classic load balancers with
their trailing-window traffic.

Classes
-------
LoadBalancerScanner
    Scanner producing one record per load balancer.

Traffic Metrics
---------------
=========== ===================== ================= ============
Type        Namespace             Metric            Statistic
=========== ===================== ================= ============
application AWS/ApplicationELB    RequestCount      Sum
network     AWS/NetworkELB        ActiveFlowCount   Average
classic     AWS/ELB               RequestCount      Sum
gateway     (none)                -                 -
=========== ===================== ================= ============

``RequestCount`` is only published when requests arrive, so an empty
series is read as zero traffic. Gateway load balancers have no traffic
metric and therefore never look idle.

Notes
-----
v2 load balancers are identified by ARN, classic ones by name.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

# describe_tags accepts at most 20 resources per call
TAG_BATCH_SIZE = 20


class LoadBalancerScanner(BaseScanner):
    """Scanner for ELBv2 and Classic load balancers."""

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._elbv2_client = None
        self._elb_client = None

    @property
    def elbv2_client(self):
        """Get ELBv2 client (lazy loaded)."""
        if self._elbv2_client is None:
            self._elbv2_client = self.aws_client.get_elbv2_client()
        return self._elbv2_client

    @property
    def elb_client(self):
        """Get Classic ELB client (lazy loaded)."""
        if self._elb_client is None:
            self._elb_client = self.aws_client.get_elb_client()
        return self._elb_client

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.LOAD_BALANCER

    def get_all_resources(self) -> List[ResourceRecord]:
        """
        Fetch every load balancer in the region.

        Raises
        ------
        botocore.exceptions.ClientError
            If the v2 load balancers cannot be listed. A failure listing
            Classic load balancers is logged and skipped.
        """
        records = self._get_v2_load_balancers()
        try:
            records.extend(self._get_classic_load_balancers())
        except ClientError as e:
            logger.warning(f"Error fetching Classic load balancers in {self.region}: {e}")
        logger.debug(f"Found {len(records)} load balancers in {self.region}")
        return records

    # =========================================================================
    # Application / Network / Gateway
    # =========================================================================

    def _get_v2_load_balancers(self) -> List[ResourceRecord]:
        load_balancers = self.paginate(
            self.elbv2_client, "describe_load_balancers", "LoadBalancers"
        )
        arns = [lb["LoadBalancerArn"] for lb in load_balancers]
        tags_by_arn: Dict[str, Dict[str, str]] = {}
        for start in range(0, len(arns), TAG_BATCH_SIZE):
            response = self.elbv2_client.describe_tags(
                ResourceArns=arns[start:start + TAG_BATCH_SIZE]
            )
            for description in response.get("TagDescriptions", []):
                tags_by_arn[description["ResourceArn"]] = self.parse_tags(
                    description.get("Tags")
                )

        return [
            self._v2_record(lb, tags_by_arn.get(lb["LoadBalancerArn"], {}))
            for lb in load_balancers
        ]

    def _v2_traffic(self, lb_type: str, arn: str) -> Optional[float]:
        # CloudWatch dimension is the ARN suffix, e.g. "app/my-alb/50dc6c495c0c9188"
        dimension = arn.split(":loadbalancer/", 1)[-1]
        if lb_type == "application":
            return self.metrics.average(
                "AWS/ApplicationELB",
                "RequestCount",
                {"LoadBalancer": dimension},
                self.window_days,
                statistic="Sum",
                missing_as_zero=True,
            )
        if lb_type == "network":
            return self.metrics.average(
                "AWS/NetworkELB",
                "ActiveFlowCount",
                {"LoadBalancer": dimension},
                self.window_days,
            )
        return None

    def _v2_record(self, lb: Dict[str, Any], tags: Dict[str, str]) -> ResourceRecord:
        lb_type = lb.get("Type", "application")
        arn = lb["LoadBalancerArn"]
        return ResourceRecord(
            kind=ResourceKind.LOAD_BALANCER,
            region=self.region,
            id=arn,
            state=lb.get("State", {}).get("Code", "unknown"),
            created_at=lb.get("CreatedTime"),
            utilization=self._v2_traffic(lb_type, arn),
            utilization_metric=_METRIC_LABELS.get(lb_type),
            tags=tags,
            name=lb.get("LoadBalancerName", ""),
            flavor=lb_type,
            details={
                "dns_name": lb.get("DNSName"),
                "scheme": lb.get("Scheme"),
                "vpc_id": lb.get("VpcId"),
            },
        )

    # =========================================================================
    # Classic
    # =========================================================================

    def _get_classic_load_balancers(self) -> List[ResourceRecord]:
        descriptions = self.paginate(
            self.elb_client, "describe_load_balancers", "LoadBalancerDescriptions"
        )
        names = [lb["LoadBalancerName"] for lb in descriptions]
        tags_by_name: Dict[str, Dict[str, str]] = {}
        for start in range(0, len(names), TAG_BATCH_SIZE):
            response = self.elb_client.describe_tags(
                LoadBalancerNames=names[start:start + TAG_BATCH_SIZE]
            )
            for description in response.get("TagDescriptions", []):
                tags_by_name[description["LoadBalancerName"]] = self.parse_tags(
                    description.get("Tags")
                )

        return [
            self._classic_record(lb, tags_by_name.get(lb["LoadBalancerName"], {}))
            for lb in descriptions
        ]

    def _classic_record(self, lb: Dict[str, Any], tags: Dict[str, str]) -> ResourceRecord:
        name = lb["LoadBalancerName"]
        requests = self.metrics.average(
            "AWS/ELB",
            "RequestCount",
            {"LoadBalancerName": name},
            self.window_days,
            statistic="Sum",
            missing_as_zero=True,
        )
        return ResourceRecord(
            kind=ResourceKind.LOAD_BALANCER,
            region=self.region,
            id=name,
            # Classic load balancers report no lifecycle state
            state="active",
            created_at=lb.get("CreatedTime"),
            utilization=requests,
            utilization_metric=_METRIC_LABELS["classic"],
            tags=tags,
            name=name,
            flavor="classic",
            details={
                "dns_name": lb.get("DNSName"),
                "scheme": lb.get("Scheme"),
                "vpc_id": lb.get("VPCId"),
                "instance_count": len(lb.get("Instances", [])),
            },
        )


_METRIC_LABELS = {
    "application": "Avg daily requests",
    "network": "Avg active flows",
    "classic": "Avg daily requests",
    "gateway": None,
}
