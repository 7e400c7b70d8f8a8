"""
EC2 Instance Scanner Module
===========================

Collects EC2 instances with their average CPU utilization.

Classes
-------
InstanceScanner
    Scanner producing one record per EC2 instance.

Example
-------
>>> from cloud_sweeper.scanners import InstanceScanner
>>> from cloud_sweeper.core import AWSClient
>>>
>>> scanner = InstanceScanner(AWSClient(region="us-east-1"))
>>> for record in scanner.scan().records:
...     print(record.id, record.state, record.utilization)

Notes
-----
CPU is only queried for running instances; stopped instances publish no
datapoints. Age is measured from the launch time, which AWS resets when
a stopped instance is started again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


class InstanceScanner(BaseScanner):
    """
    Scanner for EC2 instances.

    Each record carries the instance type as ``flavor`` (used for the cost
    lookup) and the trailing average of ``CPUUtilization`` as
    ``utilization``.
    """

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._ec2_client = None

    @property
    def ec2_client(self):
        """Get EC2 client (lazy loaded)."""
        if self._ec2_client is None:
            self._ec2_client = self.aws_client.get_ec2_client()
        return self._ec2_client

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.INSTANCE

    def get_all_resources(self) -> List[ResourceRecord]:
        """
        Fetch all EC2 instances in the region.

        Returns
        -------
        list of ResourceRecord
            One record per instance, terminated ones included.
        """
        reservations = self.paginate(
            self.ec2_client, "describe_instances", "Reservations"
        )
        records = [
            self._to_record(instance)
            for reservation in reservations
            for instance in reservation.get("Instances", [])
        ]
        logger.debug(f"Found {len(records)} instances in {self.region}")
        return records

    def _to_record(self, instance: Dict[str, Any]) -> ResourceRecord:
        instance_id = instance["InstanceId"]
        state = instance.get("State", {}).get("Name", "unknown")
        tags = self.parse_tags(instance.get("Tags"))

        utilization = None
        if state == "running":
            utilization = self.metrics.average(
                "AWS/EC2",
                "CPUUtilization",
                {"InstanceId": instance_id},
                self.window_days,
            )

        return ResourceRecord(
            kind=ResourceKind.INSTANCE,
            region=self.region,
            id=instance_id,
            state=state,
            created_at=instance.get("LaunchTime"),
            utilization=utilization,
            utilization_metric="Avg CPU %",
            tags=tags,
            name=tags.get("Name", ""),
            flavor=instance.get("InstanceType"),
            details={
                "private_ip": instance.get("PrivateIpAddress"),
                "public_ip": instance.get("PublicIpAddress"),
                "platform": instance.get("PlatformDetails", "Linux/UNIX"),
                "vpc_id": instance.get("VpcId"),
            },
        )
