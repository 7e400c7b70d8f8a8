"""
Lambda Function Scanner Module
==============================

Collects Lambda functions with their average daily invocations.

Classes
-------
LambdaScanner
    Scanner producing one record per function.

Notes
-----
Lambda reports no creation time. ``LastModified`` is used as the age
reference, which is what "unused for N days" means in practice: the
code has not been touched and nobody calls it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


def parse_last_modified(value: Optional[str]) -> Optional[datetime]:
    """
    Parse Lambda's ``LastModified`` string.

    Example
    -------
    >>> parse_last_modified("2024-01-15T10:30:00.000+0000")
    datetime.datetime(2024, 1, 15, 10, 30, tzinfo=datetime.timezone.utc)
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f%z")
    except ValueError:
        logger.debug(f"Unparseable LastModified value: {value}")
        return None


class LambdaScanner(BaseScanner):
    """
    Scanner for Lambda functions.

    ``size`` is the configured memory in MB and ``flavor`` the runtime.
    """

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._lambda_client = None

    @property
    def lambda_client(self):
        """Get Lambda client (lazy loaded)."""
        if self._lambda_client is None:
            self._lambda_client = self.aws_client.get_lambda_client()
        return self._lambda_client

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.SERVERLESS_FUNCTION

    def get_all_resources(self) -> List[ResourceRecord]:
        """Fetch all Lambda functions in the region."""
        functions = self.paginate(self.lambda_client, "list_functions", "Functions")
        records = [self._to_record(function) for function in functions]
        logger.debug(f"Found {len(records)} functions in {self.region}")
        return records

    def _get_tags(self, function_arn: str) -> Dict[str, str]:
        try:
            return self.lambda_client.list_tags(Resource=function_arn).get("Tags", {})
        except ClientError as e:
            logger.warning(f"Could not read tags for {function_arn}: {e}")
            return {}

    def _to_record(self, function: Dict[str, Any]) -> ResourceRecord:
        name = function["FunctionName"]
        invocations = self.metrics.average(
            "AWS/Lambda",
            "Invocations",
            {"FunctionName": name},
            self.window_days,
            statistic="Sum",
            missing_as_zero=True,
        )

        return ResourceRecord(
            kind=ResourceKind.SERVERLESS_FUNCTION,
            region=self.region,
            id=name,
            # Functions without a State field predate Lambda states and are active
            state=function.get("State", "Active"),
            created_at=parse_last_modified(function.get("LastModified")),
            size=function.get("MemorySize"),
            utilization=invocations,
            utilization_metric="Avg daily invocations",
            tags=self._get_tags(function["FunctionArn"]),
            name=name,
            flavor=function.get("Runtime"),
            details={
                "arn": function["FunctionArn"],
                "code_size": function.get("CodeSize"),
                "timeout": function.get("Timeout"),
            },
        )
