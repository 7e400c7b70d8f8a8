"""
S3 Bucket Scanner Module
========================

Collects S3 buckets with their object count and size.

S3 is a global service: the scanner runs once per scan, lists every
bucket in the account and resolves each bucket's own region.

Classes
-------
S3Scanner
    Global scanner producing one record per bucket.

Size Detection
--------------
1. **CloudWatch** - the daily ``NumberOfObjects`` and ``BucketSizeBytes``
   storage metrics, read in the bucket's region. The size is summed over
   every storage class the bucket reports, so IA and Glacier data count.
   Cheap, but missing for new buckets and up to a day stale.
2. **Listing** - when CloudWatch reports nothing or zero objects, the
   bucket is listed. An empty bucket is only ever reported as empty
   after a listing confirmed it.

Notes
-----
Listing stops after ``LISTING_LIMIT`` objects. A bucket that large is
clearly not empty; its size is then left unknown rather than reported
as the partial sum.

A bucket whose region cannot be read (access denied, deleted mid-scan)
is still reported, under the scanner's own region, with
``details["region_resolved"]`` set to False.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import ClientError

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.metrics import MetricsClient
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1024 ** 3
LISTING_LIMIT = 100_000

# get_bucket_location returns legacy names for some regions
LEGACY_LOCATIONS = {None: "us-east-1", "": "us-east-1", "EU": "eu-west-1"}

PUBLIC_ACCESS_FLAGS = (
    "BlockPublicAcls",
    "IgnorePublicAcls",
    "BlockPublicPolicy",
    "RestrictPublicBuckets",
)


class S3Scanner(BaseScanner):
    """
    Scanner for S3 buckets.

    Records use the bucket name as ``id``, the bucket's region as
    ``region``, the object count as ``object_count`` and the size in GB
    as ``size``.
    """

    GLOBAL = True

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._s3_client = None
        self._regional: Dict[str, Any] = {}

    @property
    def s3_client(self):
        """Get S3 client (lazy loaded)."""
        if self._s3_client is None:
            self._s3_client = self.aws_client.get_s3_client()
        return self._s3_client

    def _regional_client(self, region: str):
        """AWSClient bound to a bucket's region (cached)."""
        if region not in self._regional:
            self._regional[region] = self.aws_client.with_region(region)
        return self._regional[region]

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.OBJECT_BUCKET

    def get_all_resources(self) -> List[ResourceRecord]:
        """Fetch every bucket in the account."""
        buckets = self.s3_client.list_buckets().get("Buckets", [])
        records = [self._to_record(bucket) for bucket in buckets]
        logger.debug(f"Found {len(records)} buckets")
        return records

    # =========================================================================
    # Per-bucket Lookups
    # =========================================================================

    def _get_region(self, name: str) -> str:
        response = self.s3_client.get_bucket_location(Bucket=name)
        location = response.get("LocationConstraint")
        return LEGACY_LOCATIONS.get(location, location)

    def _get_tags(self, name: str) -> Dict[str, str]:
        try:
            response = self.s3_client.get_bucket_tagging(Bucket=name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "NoSuchTagSet":
                logger.warning(f"Could not read tags for bucket {name}: {e}")
            return {}
        return self.parse_tags(response.get("TagSet"))

    def _get_setting(self, name: str, operation: str) -> Optional[Dict[str, Any]]:
        try:
            return getattr(self.s3_client, operation)(Bucket=name)
        except ClientError:
            return None

    def _metrics_size(self, name: str, region: str) -> Tuple[Optional[float], Optional[float]]:
        metrics = MetricsClient(self._regional_client(region), as_of=self.as_of)
        count = metrics.latest(
            "AWS/S3",
            "NumberOfObjects",
            {"BucketName": name, "StorageType": "AllStorageTypes"},
        )
        storage_types = metrics.dimension_values(
            "AWS/S3", "BucketSizeBytes", {"BucketName": name}, "StorageType"
        )
        sizes = [
            metrics.latest(
                "AWS/S3",
                "BucketSizeBytes",
                {"BucketName": name, "StorageType": storage_type},
            )
            for storage_type in storage_types
        ]
        known = [size for size in sizes if size is not None]
        size_bytes = sum(known) if known else None
        return count, size_bytes

    def _listing_size(self, name: str, region: str) -> Tuple[Optional[int], Optional[float]]:
        s3 = self._regional_client(region).get_s3_client()
        count = 0
        size_bytes = 0
        paginator = s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=name):
            for obj in page.get("Contents", []):
                count += 1
                size_bytes += obj.get("Size", 0)
            if count >= LISTING_LIMIT:
                logger.debug(f"Bucket {name} has over {LISTING_LIMIT} objects")
                return count, None
        return count, size_bytes

    def _public_access_blocked(self, name: str) -> bool:
        """True when all four public access block settings are on."""
        response = self._get_setting(name, "get_public_access_block") or {}
        config = response.get("PublicAccessBlockConfiguration", {})
        return bool(config) and all(config.get(flag) for flag in PUBLIC_ACCESS_FLAGS)

    def _to_record(self, bucket: Dict[str, Any]) -> ResourceRecord:
        name = bucket["Name"]
        try:
            region = self._get_region(name)
            region_resolved = True
        except ClientError as e:
            logger.warning(
                f"Could not read region of bucket {name}, using {self.region}: {e}"
            )
            region = self.region
            region_resolved = False
        count, size_bytes = self._metrics_size(name, region)

        if not count:
            try:
                count, size_bytes = self._listing_size(name, region)
            except ClientError as e:
                logger.warning(f"Could not list bucket {name}: {e}")
                count, size_bytes = None, None

        versioning = self._get_setting(name, "get_bucket_versioning") or {}
        encryption = self._get_setting(name, "get_bucket_encryption")

        return ResourceRecord(
            kind=ResourceKind.OBJECT_BUCKET,
            region=region,
            id=name,
            state="available",
            created_at=bucket.get("CreationDate"),
            size=round(size_bytes / BYTES_PER_GB, 4) if size_bytes is not None else None,
            tags=self._get_tags(name),
            name=name,
            object_count=int(count) if count is not None else None,
            details={
                "versioning": versioning.get("Status", "Disabled"),
                "encrypted": encryption is not None,
                "public_access_blocked": self._public_access_blocked(name),
                "region_resolved": region_resolved,
            },
        )
