"""
Core Infrastructure Components
==============================

Foundational components shared by the scanners, classifier and executor:

- :class:`AWSClient` - Manages AWS connections and client creation
- :class:`MetricsClient` - Trailing-window CloudWatch averages
- :class:`BaseScanner` - Abstract base class for inventory collectors
- :class:`RegionManager` - Orchestrates multi-region scanning
- The data model (records, verdicts, thresholds)
- Exception hierarchy for error handling

Example
-------
>>> from cloud_sweeper.core import RegionManager, ThresholdConfig
>>>
>>> manager = RegionManager(profile="audit", max_workers=10)
>>> regions = manager.get_all_regions()

See Also
--------
cloud_sweeper.scanners : Inventory collectors.
cloud_sweeper.classifier : Verdicts and cost estimates.
cloud_sweeper.cleaners : Guarded deletion.
"""

from cloud_sweeper.core.aws_client import AWSClient
from cloud_sweeper.core.base_scanner import BaseScanner, ScanResult
from cloud_sweeper.core.exceptions import (
    AWSClientError,
    BackupError,
    CloudSweeperError,
    ConfigurationError,
    CredentialsError,
    DeleteError,
    ExecutorError,
    RegionError,
    ReportFormatError,
    ResourceFetchError,
    ScannerError,
    ServiceError,
    StateLookupError,
)
from cloud_sweeper.core.metrics import MetricsClient
from cloud_sweeper.core.models import (
    ClassifiedResource,
    Disposition,
    ResourceKind,
    ResourceRecord,
    ThresholdConfig,
    Verdict,
)
from cloud_sweeper.core.region_manager import MultiRegionScanResult, RegionManager

__all__ = [
    # Client
    "AWSClient",
    "MetricsClient",
    # Scanner base
    "BaseScanner",
    "ScanResult",
    # Region management
    "RegionManager",
    "MultiRegionScanResult",
    # Data model
    "ResourceKind",
    "ResourceRecord",
    "Disposition",
    "Verdict",
    "ThresholdConfig",
    "ClassifiedResource",
    # Exceptions
    "CloudSweeperError",
    "AWSClientError",
    "CredentialsError",
    "RegionError",
    "ServiceError",
    "ScannerError",
    "ResourceFetchError",
    "ExecutorError",
    "StateLookupError",
    "BackupError",
    "DeleteError",
    "ConfigurationError",
    "ReportFormatError",
]
