"""
Region Manager Module
=====================

Runs the inventory scanners across regions in parallel and merges their
output into one deterministically ordered record list.

This module handles:
- Discovery of the regions enabled for the account
- Parallel execution of (region, scanner) jobs on a thread pool
- Running global scanners (S3) exactly once
- Ordering records by region, then kind, then ID

Classes
-------
MultiRegionScanResult
    Merged results from scanning multiple regions and kinds.
RegionManager
    Orchestrates multi-region scanning operations.

Example
-------
>>> from cloud_sweeper.core.region_manager import RegionManager
>>> from cloud_sweeper.scanners import ALL_SCANNERS
>>>
>>> manager = RegionManager(profile="audit", max_workers=10)
>>> result = manager.scan_regions(ALL_SCANNERS, regions=["us-east-1", "eu-west-1"])
>>> print(f"Collected {result.total_resources} resources")

Notes
-----
Each job gets its own ``AWSClient`` so no boto3 session is shared between
threads. Job completion order is not deterministic, which is why records
are re-sorted before they are returned.

See Also
--------
AWSClient : Client created for each region.
BaseScanner : Scanner interface.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from botocore.exceptions import BotoCoreError, ClientError

from cloud_sweeper.core.aws_client import AWSClient
from cloud_sweeper.core.base_scanner import BaseScanner, ScanResult
from cloud_sweeper.core.exceptions import AWSClientError
from cloud_sweeper.core.models import (
    KIND_ORDER,
    ResourceRecord,
    ThresholdConfig,
    ensure_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

# Region used for account-level calls (region discovery, global scanners)
DEFAULT_REGION = "us-east-1"


@dataclass
class MultiRegionScanResult:
    """
    Merged results from scanning multiple regions and kinds.

    Parameters
    ----------
    regions_scanned : list of str
        Regions that were scanned, in the requested order.
    results : list of ScanResult
        One result per completed (region, kind) job.
    scan_time : datetime, optional
        When the scan was performed.
    errors : dict, optional
        Mapping of region (or ``"global"``) to error messages.

    Example
    -------
    >>> result = manager.scan_regions(ALL_SCANNERS)
    >>> for record in result.records:
    ...     print(record.region, record.kind.value, record.id)
    """

    regions_scanned: List[str]
    results: List[ScanResult]
    scan_time: datetime = field(default_factory=utcnow)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def records(self) -> List[ResourceRecord]:
        """All records, ordered by region, then kind, then ID."""
        rank = {region: index for index, region in enumerate(self.regions_scanned)}

        def sort_key(record: ResourceRecord) -> Tuple[int, str, int, str]:
            return (
                rank.get(record.region, len(rank)),
                record.region,
                KIND_ORDER[record.kind],
                record.id,
            )

        merged = [record for result in self.results for record in result.records]
        return sorted(merged, key=sort_key)

    @property
    def total_resources(self) -> int:
        """Number of records across all regions and kinds."""
        return sum(result.total_count for result in self.results)

    @property
    def has_errors(self) -> bool:
        """True if any job encountered errors."""
        return len(self.errors) > 0

    @property
    def successful_regions(self) -> List[str]:
        """Regions that scanned without errors."""
        return [r for r in self.regions_scanned if r not in self.errors]

    @property
    def failed_regions(self) -> List[str]:
        """Regions (or ``"global"``) that had errors."""
        return list(self.errors.keys())

    def get_region_summary(self) -> Dict[str, Dict[str, int]]:
        """
        Record counts per region and kind.

        Example
        -------
        >>> result.get_region_summary()
        {'us-east-1': {'Instance': 4, 'Volume': 9}}
        """
        summary: Dict[str, Dict[str, int]] = {}
        for record in self.records:
            by_kind = summary.setdefault(record.region, {})
            by_kind[record.kind.value] = by_kind.get(record.kind.value, 0) + 1
        return summary

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "regions_scanned": self.regions_scanned,
            "total_resources": self.total_resources,
            "records": [record.to_dict() for record in self.records],
            "scan_time": self.scan_time.isoformat(),
            "errors": self.errors,
        }

    def __repr__(self) -> str:
        return (
            f"MultiRegionScanResult("
            f"regions={len(self.regions_scanned)}, "
            f"total_resources={self.total_resources})"
        )


class RegionManager:
    """
    Manages multi-region scanning operations.

    Parameters
    ----------
    profile : str, optional
        AWS profile name.
    max_workers : int, default=10
        Maximum number of parallel scan jobs.
    max_retries : int, default=5
        Maximum retries for failed API calls.
    timeout : int, default=30
        Request timeout in seconds.

    Examples
    --------
    >>> manager = RegionManager(profile="audit")
    >>> result = manager.scan_regions([InstanceScanner, VolumeScanner])

    With progress tracking:

    >>> def on_progress(job, status):
    ...     print(f"{job}: {status}")
    ...
    >>> result = manager.scan_regions(ALL_SCANNERS, progress_callback=on_progress)
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        max_workers: int = 10,
        max_retries: int = 5,
        timeout: int = 30,
    ) -> None:
        self.profile = profile
        self.max_workers = max_workers
        self.max_retries = max_retries
        self.timeout = timeout

        self._base_client = AWSClient(
            region=DEFAULT_REGION,
            profile=profile,
            max_retries=max_retries,
            timeout=timeout,
        )

        logger.debug(f"Initialized RegionManager with max_workers={max_workers}")

    def get_all_regions(self) -> List[str]:
        """
        Fetch the regions enabled for the account.

        Returns
        -------
        list of str
            Sorted region names.

        Raises
        ------
        AWSClientError
            If the region list cannot be fetched.
        """
        try:
            ec2 = self._base_client.get_ec2_client()
            response = ec2.describe_regions(AllRegions=False)
        except (ClientError, BotoCoreError) as e:
            raise AWSClientError(f"Failed to fetch AWS regions: {e}", service="ec2")

        regions = sorted(r["RegionName"] for r in response["Regions"])
        logger.info(f"Discovered {len(regions)} available AWS regions")
        return regions

    def get_client_for_region(self, region: str) -> AWSClient:
        """Create an AWSClient for a specific region."""
        return self._base_client.with_region(region)

    def _scan_job(
        self,
        region: str,
        scanner_class: Type[BaseScanner],
        config: ThresholdConfig,
        as_of: datetime,
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> Tuple[str, Optional[ScanResult], Optional[str]]:
        """
        Run one scanner in one region.

        Returns
        -------
        tuple
            (job label, ScanResult or None, error message or None)
        """
        label = "global" if scanner_class.GLOBAL else region
        job = f"{label}/{scanner_class.__name__}"
        try:
            if progress_callback:
                progress_callback(job, "scanning")

            scanner = scanner_class(
                self.get_client_for_region(region), config=config, as_of=as_of
            )
            result = scanner.scan()

            if progress_callback:
                progress_callback(job, "complete")
            return (label, result, None)

        except Exception as e:
            logger.error(f"Error running {job}: {e}")
            if progress_callback:
                progress_callback(job, "error")
            return (label, None, str(e))

    def scan_regions(
        self,
        scanner_classes: Sequence[Type[BaseScanner]],
        regions: Optional[List[str]] = None,
        config: Optional[ThresholdConfig] = None,
        as_of: Optional[datetime] = None,
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> MultiRegionScanResult:
        """
        Run every scanner in every region in parallel.

        Parameters
        ----------
        scanner_classes : sequence of type
            Scanner classes (subclasses of BaseScanner). Global scanners
            run once; their records are kept only for scanned regions.
        regions : list of str, optional
            Regions to scan. If None, scans all enabled regions.
        config : ThresholdConfig, optional
            Supplies per-kind metric windows.
        as_of : datetime, optional
            Common end of every metric window. Defaults to now.
        progress_callback : callable, optional
            Called with (job, status); status is one of 'scanning',
            'complete', 'error'.

        Returns
        -------
        MultiRegionScanResult
            Merged results.
        """
        if regions is None:
            regions = self.get_all_regions()
        config = config or ThresholdConfig()
        as_of = ensure_utc(as_of) or utcnow()

        jobs: List[Tuple[str, Type[BaseScanner]]] = []
        for scanner_class in scanner_classes:
            if scanner_class.GLOBAL:
                jobs.append((regions[0] if regions else DEFAULT_REGION, scanner_class))
            else:
                jobs.extend((region, scanner_class) for region in regions)

        logger.info(
            f"Starting scan of {len(scanner_classes)} resource kinds "
            f"across {len(regions)} regions ({len(jobs)} jobs)"
        )

        results: List[ScanResult] = []
        errors: Dict[str, List[str]] = {}
        wanted = set(regions)

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="scan"
        ) as executor:
            futures = [
                executor.submit(
                    self._scan_job,
                    region,
                    scanner_class,
                    config,
                    as_of,
                    progress_callback,
                )
                for region, scanner_class in jobs
            ]

            for future in as_completed(futures):
                label, result, error = future.result()

                if error:
                    errors.setdefault(label, []).append(error)
                    continue
                if result.region == "global":
                    result.records = [r for r in result.records if r.region in wanted]
                results.append(result)
                if result.errors:
                    errors.setdefault(label, []).extend(result.errors)

        merged = MultiRegionScanResult(
            regions_scanned=list(regions),
            results=results,
            errors=errors,
        )
        logger.info(
            f"Scan complete: {merged.total_resources} resources across "
            f"{len(regions)} regions ({len(errors)} with errors)"
        )
        return merged

    def __repr__(self) -> str:
        return (
            f"RegionManager(profile={self.profile!r}, "
            f"max_workers={self.max_workers})"
        )
