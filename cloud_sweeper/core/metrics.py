"""
CloudWatch Metrics Module
=========================

Reads trailing-window averages from CloudWatch for the scanners.

This is the boundary where provider metric data becomes an optional
float: missing datapoints, API errors and sentinel values all become
``None`` here, so the classifier never sees anything but numbers or
``None``.

Classes
-------
MetricsClient
    Trailing-window metric reader bound to one region.

Example
-------
>>> from cloud_sweeper.core.metrics import MetricsClient
>>>
>>> metrics = MetricsClient(aws_client)
>>> metrics.average(
...     namespace="AWS/EC2",
...     metric_name="CPUUtilization",
...     dimensions={"InstanceId": "i-0abc"},
...     window_days=30,
... )
3.2

Notes
-----
Datapoints are requested at one-day granularity (period 86400) and the
per-day values are averaged. For count metrics queried with the ``Sum``
statistic the result is therefore the average daily count.

Count metrics such as ``RequestCount`` and ``Invocations`` are only
published when something happened, so an empty result for them means
zero activity. Pass ``missing_as_zero=True`` for those.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from cloud_sweeper.core.models import ensure_utc, to_optional_float, utcnow

logger = logging.getLogger(__name__)

# One datapoint per day
METRIC_PERIOD_SECONDS = 86400


class MetricsClient:
    """
    Trailing-window CloudWatch reader.

    Parameters
    ----------
    aws_client : AWSClient
        Region-bound client providing the CloudWatch client.
    as_of : datetime, optional
        End of every window. Defaults to the time the reader was created,
        so all metrics of one scan share a window.
    """

    def __init__(self, aws_client, as_of: Optional[datetime] = None) -> None:
        self.aws_client = aws_client
        self.region = aws_client.region
        self.as_of = ensure_utc(as_of) or utcnow()
        self._cloudwatch_client = None

    @property
    def cloudwatch_client(self):
        """Get CloudWatch client (lazy loaded)."""
        if self._cloudwatch_client is None:
            self._cloudwatch_client = self.aws_client.get_cloudwatch_client()
        return self._cloudwatch_client

    def _datapoints(
        self,
        namespace: str,
        metric_name: str,
        dimensions: Dict[str, str],
        window_days: int,
        statistic: str,
    ) -> Optional[List[Dict]]:
        """Raw daily datapoints, or ``None`` when the API call fails."""
        start = self.as_of - timedelta(days=window_days)
        try:
            response = self.cloudwatch_client.get_metric_statistics(
                Namespace=namespace,
                MetricName=metric_name,
                Dimensions=[
                    {"Name": name, "Value": value}
                    for name, value in dimensions.items()
                ],
                StartTime=start,
                EndTime=self.as_of,
                Period=METRIC_PERIOD_SECONDS,
                Statistics=[statistic],
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                f"Metric {namespace}/{metric_name} unavailable for "
                f"{dimensions} in {self.region}: {e}"
            )
            return None
        return response.get("Datapoints", [])

    def average(
        self,
        namespace: str,
        metric_name: str,
        dimensions: Dict[str, str],
        window_days: int,
        statistic: str = "Average",
        missing_as_zero: bool = False,
    ) -> Optional[float]:
        """
        Average of the daily ``statistic`` values over the trailing window.

        Parameters
        ----------
        namespace : str
            CloudWatch namespace, e.g. ``"AWS/EC2"``.
        metric_name : str
            Metric name, e.g. ``"CPUUtilization"``.
        dimensions : dict
            Dimension name to value.
        window_days : int
            Length of the trailing window in days.
        statistic : str, default="Average"
            CloudWatch statistic (``Average``, ``Sum``, ``Maximum``...).
        missing_as_zero : bool, default=False
            Treat "no datapoints" as zero activity instead of unavailable.
            API errors are still ``None``.

        Returns
        -------
        float or None
            The average, or ``None`` if it cannot be determined.
        """
        datapoints = self._datapoints(
            namespace, metric_name, dimensions, window_days, statistic
        )
        if datapoints is None:
            return None

        values = [
            value
            for value in (to_optional_float(point.get(statistic)) for point in datapoints)
            if value is not None
        ]
        if not values:
            return 0.0 if missing_as_zero else None
        return sum(values) / len(values)

    def latest(
        self,
        namespace: str,
        metric_name: str,
        dimensions: Dict[str, str],
        window_days: int = 2,
        statistic: str = "Average",
    ) -> Optional[float]:
        """
        Most recent daily value, for storage gauges published once a day.

        Example
        -------
        >>> metrics.latest(
        ...     "AWS/S3",
        ...     "NumberOfObjects",
        ...     {"BucketName": "logs", "StorageType": "AllStorageTypes"},
        ... )
        1200.0
        """
        datapoints = self._datapoints(
            namespace, metric_name, dimensions, window_days, statistic
        )
        if not datapoints:
            return None
        newest = max(datapoints, key=lambda point: point["Timestamp"])
        return to_optional_float(newest.get(statistic))

    def dimension_values(
        self,
        namespace: str,
        metric_name: str,
        dimensions: Dict[str, str],
        key: str,
    ) -> List[str]:
        """
        Values of dimension ``key`` published together with ``dimensions``.

        Used to find the storage classes a bucket reports sizes for.
        Returns an empty list when the metrics cannot be listed.

        Example
        -------
        >>> metrics.dimension_values(
        ...     "AWS/S3", "BucketSizeBytes", {"BucketName": "logs"}, "StorageType"
        ... )
        ['GlacierStorage', 'StandardStorage']
        """
        values = set()
        try:
            paginator = self.cloudwatch_client.get_paginator("list_metrics")
            for page in paginator.paginate(
                Namespace=namespace,
                MetricName=metric_name,
                Dimensions=[
                    {"Name": name, "Value": value}
                    for name, value in dimensions.items()
                ],
            ):
                for metric in page.get("Metrics", []):
                    for dimension in metric.get("Dimensions", []):
                        if dimension.get("Name") == key:
                            values.add(dimension["Value"])
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                f"Could not list {namespace}/{metric_name} metrics for "
                f"{dimensions} in {self.region}: {e}"
            )
            return []
        return sorted(values)
