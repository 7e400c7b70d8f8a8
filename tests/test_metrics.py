"""
Tests for the CloudWatch metrics reader.
"""

from datetime import timedelta

from botocore.exceptions import ClientError

from cloud_sweeper.core.metrics import METRIC_PERIOD_SECONDS, MetricsClient

from conftest import AS_OF


class FakeCloudWatch:
    """Returns canned datapoints and records the request."""

    def __init__(self, datapoints=None, error=None, metric_pages=None):
        self.datapoints = datapoints or []
        self.error = error
        self.metric_pages = metric_pages or []
        self.requests = []

    def get_metric_statistics(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return {"Datapoints": self.datapoints}

    def get_paginator(self, operation):
        assert operation == "list_metrics"
        return self

    def paginate(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return iter(self.metric_pages)


class FakeAWSClient:
    region = "us-east-1"

    def __init__(self, cloudwatch):
        self.cloudwatch = cloudwatch

    def get_cloudwatch_client(self):
        return self.cloudwatch


def reader(cloudwatch):
    return MetricsClient(FakeAWSClient(cloudwatch), as_of=AS_OF)


class TestAverage:
    """Tests for MetricsClient.average."""

    def test_average_of_daily_values(self):
        cloudwatch = FakeCloudWatch([{"Average": 2.0}, {"Average": 4.0}, {"Average": 6.0}])
        value = reader(cloudwatch).average(
            "AWS/EC2", "CPUUtilization", {"InstanceId": "i-1"}, window_days=14
        )
        assert value == 4.0

        request = cloudwatch.requests[0]
        assert request["Dimensions"] == [{"Name": "InstanceId", "Value": "i-1"}]
        assert request["EndTime"] == AS_OF
        assert request["StartTime"] == AS_OF - timedelta(days=14)
        assert request["Period"] == METRIC_PERIOD_SECONDS
        assert request["Statistics"] == ["Average"]

    def test_sum_statistic(self):
        cloudwatch = FakeCloudWatch([{"Sum": 10.0}, {"Sum": 30.0}])
        value = reader(cloudwatch).average(
            "AWS/Lambda", "Invocations", {"FunctionName": "f"}, 90, statistic="Sum"
        )
        assert value == 20.0

    def test_no_datapoints_is_unknown(self):
        value = reader(FakeCloudWatch()).average("AWS/RDS", "DatabaseConnections", {}, 30)
        assert value is None

    def test_no_datapoints_as_zero(self):
        value = reader(FakeCloudWatch()).average(
            "AWS/ApplicationELB", "RequestCount", {}, 30,
            statistic="Sum", missing_as_zero=True,
        )
        assert value == 0.0

    def test_api_error_is_unknown_even_for_counts(self):
        error = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "GetMetricStatistics"
        )
        value = reader(FakeCloudWatch(error=error)).average(
            "AWS/Lambda", "Invocations", {}, 30, statistic="Sum", missing_as_zero=True
        )
        assert value is None

    def test_sentinel_values_are_dropped(self):
        cloudwatch = FakeCloudWatch([{"Average": "N/A"}, {"Average": 3.0}])
        assert reader(cloudwatch).average("AWS/EC2", "CPUUtilization", {}, 30) == 3.0


class TestLatest:
    """Tests for MetricsClient.latest."""

    def test_newest_datapoint_wins(self):
        cloudwatch = FakeCloudWatch(
            [
                {"Timestamp": AS_OF - timedelta(days=1), "Average": 12.0},
                {"Timestamp": AS_OF - timedelta(days=2), "Average": 50.0},
            ]
        )
        value = reader(cloudwatch).latest("AWS/S3", "NumberOfObjects", {"BucketName": "b"})
        assert value == 12.0

    def test_no_datapoints(self):
        assert reader(FakeCloudWatch()).latest("AWS/S3", "BucketSizeBytes", {}) is None


def storage_metric(storage_type):
    return {
        "Namespace": "AWS/S3",
        "MetricName": "BucketSizeBytes",
        "Dimensions": [
            {"Name": "BucketName", "Value": "logs"},
            {"Name": "StorageType", "Value": storage_type},
        ],
    }


class TestDimensionValues:
    """Tests for MetricsClient.dimension_values."""

    def test_values_across_pages(self):
        cloudwatch = FakeCloudWatch(
            metric_pages=[
                {"Metrics": [storage_metric("StandardStorage")]},
                {"Metrics": [storage_metric("GlacierStorage"), storage_metric("StandardStorage")]},
            ]
        )
        values = reader(cloudwatch).dimension_values(
            "AWS/S3", "BucketSizeBytes", {"BucketName": "logs"}, "StorageType"
        )

        assert values == ["GlacierStorage", "StandardStorage"]
        assert cloudwatch.requests[0]["Dimensions"] == [
            {"Name": "BucketName", "Value": "logs"}
        ]

    def test_no_metrics(self):
        values = reader(FakeCloudWatch()).dimension_values(
            "AWS/S3", "BucketSizeBytes", {"BucketName": "logs"}, "StorageType"
        )
        assert values == []

    def test_api_error_gives_no_values(self):
        error = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListMetrics"
        )
        values = reader(FakeCloudWatch(error=error)).dimension_values(
            "AWS/S3", "BucketSizeBytes", {"BucketName": "logs"}, "StorageType"
        )
        assert values == []
