"""
EBS Volume Scanner Module
=========================

Collects EBS volumes, their attachment and, for attached volumes, their
I/O activity.

Classes
-------
VolumeScanner
    Scanner producing one record per EBS volume.

Notes
-----
A volume in the ``available`` state is not attached to any instance but
is still billed for its provisioned size (and IOPS for io1/io2).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


class VolumeScanner(BaseScanner):
    """
    Scanner for EBS volumes.

    ``associated_id`` is the instance of the first attachment. For in-use
    volumes ``utilization`` is the average daily read plus write ops.
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
        return ResourceKind.VOLUME

    def get_all_resources(self) -> List[ResourceRecord]:
        """Fetch all EBS volumes in the region."""
        volumes = self.paginate(self.ec2_client, "describe_volumes", "Volumes")
        records = [self._to_record(volume) for volume in volumes]
        logger.debug(f"Found {len(records)} volumes in {self.region}")
        return records

    def _io_ops(self, volume_id: str) -> Optional[float]:
        dimensions = {"VolumeId": volume_id}
        reads = self.metrics.average(
            "AWS/EBS", "VolumeReadOps", dimensions, self.window_days, statistic="Sum"
        )
        writes = self.metrics.average(
            "AWS/EBS", "VolumeWriteOps", dimensions, self.window_days, statistic="Sum"
        )
        if reads is None or writes is None:
            return None
        return reads + writes

    def _to_record(self, volume: Dict[str, Any]) -> ResourceRecord:
        volume_id = volume["VolumeId"]
        state = volume.get("State", "unknown")
        tags = self.parse_tags(volume.get("Tags"))
        attachments = volume.get("Attachments", [])

        return ResourceRecord(
            kind=ResourceKind.VOLUME,
            region=self.region,
            id=volume_id,
            state=state,
            created_at=volume.get("CreateTime"),
            size=volume.get("Size"),
            utilization=self._io_ops(volume_id) if state == "in-use" else None,
            utilization_metric="Avg daily I/O ops",
            tags=tags,
            associated_id=attachments[0].get("InstanceId") if attachments else None,
            name=tags.get("Name", ""),
            flavor=volume.get("VolumeType"),
            details={
                "iops": volume.get("Iops"),
                "encrypted": volume.get("Encrypted", False),
                "availability_zone": volume.get("AvailabilityZone"),
                "snapshot_id": volume.get("SnapshotId") or None,
            },
        )
