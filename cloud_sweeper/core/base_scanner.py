"""
Base Scanner Module
===================

Abstract base class for the inventory collectors, one per resource kind.

A scanner lists every resource of its kind in one region, enriches it
with the trailing-window metric the classifier needs and returns plain
``ResourceRecord`` values. Scanners do not decide anything: whether a
resource is unused is the classifier's job.

Classes
-------
ScanResult
    Records collected for one kind in one region, plus errors.
BaseScanner
    Abstract base class for resource scanners.

Example
-------
>>> from cloud_sweeper.core.base_scanner import BaseScanner
>>>
>>> class VolumeScanner(BaseScanner):
...     def get_resource_kind(self):
...         return ResourceKind.VOLUME
...
...     def get_all_resources(self):
...         ec2 = self.aws_client.get_ec2_client()
...         return [self._to_record(v) for v in ec2.describe_volumes()["Volumes"]]

See Also
--------
cloud_sweeper.scanners : Concrete scanners.
cloud_sweeper.core.region_manager : Runs scanners across regions.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from cloud_sweeper.core.exceptions import ResourceFetchError
from cloud_sweeper.core.metrics import MetricsClient
from cloud_sweeper.core.models import (
    ResourceKind,
    ResourceRecord,
    ThresholdConfig,
    ensure_utc,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """
    Records collected by one scanner in one region.

    Parameters
    ----------
    kind : ResourceKind
        Kind that was scanned.
    region : str
        Region that was scanned (``"global"`` for global scanners).
    records : list of ResourceRecord
        Every resource found, in provider order.
    scan_time : datetime, optional
        When the scan was performed.
    errors : list of str, optional
        Errors encountered during scanning.

    Example
    -------
    >>> result = scanner.scan()
    >>> if result.has_errors:
    ...     print(f"Scan completed with {len(result.errors)} errors")
    """

    kind: ResourceKind
    region: str
    records: List[ResourceRecord]
    scan_time: datetime = field(default_factory=utcnow)
    errors: List[str] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        """Number of resources found."""
        return len(self.records)

    @property
    def has_errors(self) -> bool:
        """True if errors were encountered during scanning."""
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "kind": self.kind.value,
            "region": self.region,
            "total_count": self.total_count,
            "records": [record.to_dict() for record in self.records],
            "scan_time": self.scan_time.isoformat(),
            "errors": self.errors,
        }

    def __repr__(self) -> str:
        return (
            f"ScanResult(kind='{self.kind.value}', "
            f"region='{self.region}', "
            f"total={self.total_count})"
        )


class BaseScanner(ABC):
    """
    Abstract base class for all resource scanners.

    Parameters
    ----------
    aws_client : AWSClient
        Region-bound client for AWS API access.
    config : ThresholdConfig, optional
        Supplies the metric window for this scanner's kind.
    as_of : datetime, optional
        End of the metric window. Defaults to now.
    metrics : MetricsClient, optional
        Metric reader. Created from ``aws_client`` when omitted.

    Attributes
    ----------
    GLOBAL : bool
        True for scanners whose resources are listed once for the whole
        account (S3 buckets) rather than per region.

    Notes
    -----
    Subclasses implement ``get_resource_kind`` and ``get_all_resources``.
    A failure inside ``get_all_resources`` is raised as
    ``ResourceFetchError`` by ``fetch_resources`` and captured into
    ``ScanResult.errors`` by ``scan``. Failures while enriching a single
    resource must not drop the resource: the enrichment field is left
    ``None`` instead.
    """

    GLOBAL = False

    def __init__(
        self,
        aws_client,
        config: Optional[ThresholdConfig] = None,
        as_of: Optional[datetime] = None,
        metrics: Optional[MetricsClient] = None,
    ) -> None:
        self.aws_client = aws_client
        self.region = aws_client.region
        self.config = config or ThresholdConfig()
        self.as_of = ensure_utc(as_of) or utcnow()
        self._metrics = metrics
        logger.debug(
            f"Initialized {self.__class__.__name__} for region {self.region}"
        )

    @property
    def metrics(self) -> MetricsClient:
        """Metric reader (lazy loaded)."""
        if self._metrics is None:
            self._metrics = MetricsClient(self.aws_client, as_of=self.as_of)
        return self._metrics

    @property
    def window_days(self) -> int:
        """Trailing metric window for this scanner's kind."""
        return self.config.window_for(self.get_resource_kind())

    @abstractmethod
    def get_resource_kind(self) -> ResourceKind:
        """Kind of resource this scanner collects."""

    @abstractmethod
    def get_all_resources(self) -> List[ResourceRecord]:
        """
        Fetch every resource of this kind in the region.

        Raises
        ------
        botocore.exceptions.ClientError
            If the listing call fails.
        """

    def fetch_resources(self) -> List[ResourceRecord]:
        """
        Run ``get_all_resources``, translating AWS errors.

        Raises
        ------
        ResourceFetchError
            If the listing fails with a botocore error. The AWS error code,
            when there is one, is kept in ``details["error_code"]``.
        """
        kind = self.get_resource_kind()
        region = "global" if self.GLOBAL else self.region
        try:
            return self.get_all_resources()
        except ClientError as e:
            raise ResourceFetchError(
                f"Failed to list {kind.value} resources: {e}",
                resource_kind=kind.value,
                region=region,
                details={"error_code": e.response.get("Error", {}).get("Code")},
            ) from e
        except BotoCoreError as e:
            raise ResourceFetchError(
                f"Failed to list {kind.value} resources: {e}",
                resource_kind=kind.value,
                region=region,
            ) from e

    def scan(self) -> ScanResult:
        """
        Collect all resources and wrap them in a ``ScanResult``.

        Returns
        -------
        ScanResult
            The records, or an empty list plus an error message when the
            listing failed.
        """
        kind = self.get_resource_kind()
        region = "global" if self.GLOBAL else self.region
        logger.info(f"Starting {kind.value} scan in {region}")
        errors: List[str] = []

        try:
            records = self.fetch_resources()
        except ResourceFetchError as e:
            logger.error(e.message)
            errors.append(e.message)
            records = []
        except Exception as e:
            error_msg = f"Failed to list {kind.value} resources: {e}"
            logger.error(error_msg)
            errors.append(error_msg)
            records = []

        logger.info(f"Scan complete: {len(records)} {kind.value} resources in {region}")
        return ScanResult(kind=kind, region=region, records=records, errors=errors)

    # =========================================================================
    # Helpers shared by the concrete scanners
    # =========================================================================

    @staticmethod
    def parse_tags(tag_list: Optional[Iterable[Dict[str, str]]]) -> Dict[str, str]:
        """Convert a boto3 ``[{"Key": ..., "Value": ...}]`` list to a dict."""
        return {tag["Key"]: tag.get("Value", "") for tag in tag_list or []}

    def paginate(self, client, operation: str, result_key: str, **kwargs) -> List[Any]:
        """Collect ``result_key`` items across every page of ``operation``."""
        items: List[Any] = []
        paginator = client.get_paginator(operation)
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(result_key, []))
        return items

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"region='{self.region}', "
            f"kind='{self.get_resource_kind().value}')"
        )
