"""
Cloud-Sweeper: AWS Unused Resource Auditor & Cleaner
====================================================

Finds idle and orphaned AWS resources across regions, recommends what to
do with each of them and deletes the DELETE candidates behind safety
gates, helping teams reduce cloud costs.

Modules
-------
core
    Core infrastructure (AWS client, data model, metrics, region manager)
scanners
    One inventory collector per resource kind
classifier
    Rule table and cost estimates
cleaners
    Safety-gated deletion executor and audit log
reporters
    Output formatters (CLI, CSV, JSON)

Example
-------
>>> from cloud_sweeper.core import RegionManager, ThresholdConfig
>>> from cloud_sweeper.classifier import Classifier
>>> from cloud_sweeper.scanners import ALL_SCANNERS
>>>
>>> result = RegionManager().scan_regions(ALL_SCANNERS, regions=["us-east-1"])
>>> classified = Classifier(ThresholdConfig()).classify_all(result.records)
>>> print(sum(1 for _, v in classified if v.disposition.value == "DELETE"))

Notes
-----
Requires AWS credentials configured via:
- Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
- AWS credentials file (~/.aws/credentials)
- IAM role (when running on AWS infrastructure)

See Also
--------
boto3 : AWS SDK for Python
"""

__version__ = "0.1.0"
__author__ = "Cloud-Sweeper Team"
__license__ = "MIT"

# Public API
from cloud_sweeper.core.aws_client import AWSClient
from cloud_sweeper.core.exceptions import AWSClientError, CloudSweeperError
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
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core classes
    "AWSClient",
    "AWSClientError",
    "CloudSweeperError",
    "ClassifiedResource",
    "Disposition",
    "MultiRegionScanResult",
    "RegionManager",
    "ResourceKind",
    "ResourceRecord",
    "ThresholdConfig",
    "Verdict",
]
