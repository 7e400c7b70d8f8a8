"""
EBS Snapshot Scanner Module
===========================

Collects EBS snapshots owned by the account.

Classes
-------
SnapshotScanner
    Scanner producing one record per owned snapshot.

Notes
-----
Snapshots registered as the root device of an AMI cannot be deleted
until the image is deregistered. Such snapshots are marked with the
``ami_id`` detail so the report shows why a delete would fail.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


class SnapshotScanner(BaseScanner):
    """Scanner for EBS snapshots owned by the current account."""

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
        return ResourceKind.SNAPSHOT

    def get_all_resources(self) -> List[ResourceRecord]:
        """Fetch all snapshots owned by the account in the region."""
        snapshots = self.paginate(
            self.ec2_client, "describe_snapshots", "Snapshots", OwnerIds=["self"]
        )
        image_snapshots = self._get_image_snapshots()
        records = [
            self._to_record(snapshot, image_snapshots) for snapshot in snapshots
        ]
        logger.debug(f"Found {len(records)} snapshots in {self.region}")
        return records

    def _get_image_snapshots(self) -> Dict[str, str]:
        """Map snapshot ID to the owned AMI that references it."""
        try:
            images = self.ec2_client.describe_images(Owners=["self"]).get("Images", [])
        except ClientError as e:
            logger.warning(f"Could not list AMIs in {self.region}: {e}")
            return {}

        referenced: Dict[str, str] = {}
        for image in images:
            for mapping in image.get("BlockDeviceMappings", []):
                snapshot_id = mapping.get("Ebs", {}).get("SnapshotId")
                if snapshot_id:
                    referenced[snapshot_id] = image["ImageId"]
        return referenced

    def _to_record(
        self, snapshot: Dict[str, Any], image_snapshots: Dict[str, str]
    ) -> ResourceRecord:
        snapshot_id = snapshot["SnapshotId"]
        tags = self.parse_tags(snapshot.get("Tags"))

        return ResourceRecord(
            kind=ResourceKind.SNAPSHOT,
            region=self.region,
            id=snapshot_id,
            state=snapshot.get("State", "unknown"),
            created_at=snapshot.get("StartTime"),
            size=snapshot.get("VolumeSize"),
            tags=tags,
            associated_id=snapshot.get("VolumeId") or None,
            name=tags.get("Name", ""),
            details={
                "description": snapshot.get("Description", ""),
                "encrypted": snapshot.get("Encrypted", False),
                "ami_id": image_snapshots.get(snapshot_id),
            },
        )
