"""
Tests for the resource scanners.
"""

from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.exceptions import ResourceFetchError
from cloud_sweeper.core.models import ResourceKind, ThresholdConfig
from cloud_sweeper.scanners import (
    ALL_SCANNERS,
    EIPScanner,
    InstanceScanner,
    S3Scanner,
    SnapshotScanner,
    VolumeScanner,
    scanners_for_kinds,
)


class StubMetrics:
    """Metric reader returning a fixed value and recording queries."""

    def __init__(self, value=None):
        self.value = value
        self.queries = []

    def average(self, namespace, metric_name, dimensions, window_days, **kwargs):
        self.queries.append((namespace, metric_name, window_days))
        return self.value

    def latest(self, namespace, metric_name, dimensions, window_days=2, **kwargs):
        self.queries.append((namespace, metric_name, window_days))
        return self.value


class TestScannerRegistry:
    """Tests for scanner lookup by kind."""

    def test_all_kinds_have_a_scanner(self):
        assert len(ALL_SCANNERS) == len(ResourceKind)

    def test_scanners_for_kinds(self):
        assert scanners_for_kinds(["ebs", "eip"]) == [VolumeScanner, EIPScanner]

    def test_all_when_empty(self):
        assert scanners_for_kinds(None) == ALL_SCANNERS

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            scanners_for_kinds(["vpc"])


class DeniedScanner(BaseScanner):
    """Scanner whose listing fails with a given botocore error."""

    def __init__(self, aws_client, error):
        super().__init__(aws_client)
        self.error = error

    def get_resource_kind(self):
        return ResourceKind.NAT_GATEWAY

    def get_all_resources(self):
        raise self.error


class TestBaseScanner:
    """Tests for listing error translation."""

    def test_client_error_becomes_fetch_error(self, aws_client):
        error = ClientError(
            {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}},
            "DescribeNatGateways",
        )
        with pytest.raises(ResourceFetchError) as exc_info:
            DeniedScanner(aws_client, error).fetch_resources()

        assert exc_info.value.resource_kind == "NATGateway"
        assert exc_info.value.details["region"] == "us-east-1"
        assert exc_info.value.details["error_code"] == "UnauthorizedOperation"
        assert exc_info.value.__cause__ is error

    def test_connection_error_becomes_fetch_error(self, aws_client):
        error = EndpointConnectionError(endpoint_url="https://ec2.us-east-1.amazonaws.com")
        with pytest.raises(ResourceFetchError) as exc_info:
            DeniedScanner(aws_client, error).fetch_resources()
        assert "error_code" not in exc_info.value.details

    def test_scan_records_the_fetch_error(self, aws_client):
        error = ClientError(
            {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}},
            "DescribeNatGateways",
        )
        result = DeniedScanner(aws_client, error).scan()

        assert result.records == []
        assert result.errors[0].startswith("Failed to list NATGateway resources:")
        assert "UnauthorizedOperation" in result.errors[0]


class TestVolumeScanner:
    """Tests for VolumeScanner."""

    def test_unattached_volume(self, aws_client, ec2_client):
        ec2_client.create_volume(
            AvailabilityZone="us-east-1a",
            Size=100,
            VolumeType="gp2",
            TagSpecifications=[
                {
                    "ResourceType": "volume",
                    "Tags": [{"Key": "Name", "Value": "scratch"}, {"Key": "team", "Value": "data"}],
                }
            ],
        )
        metrics = StubMetrics(0.0)
        result = VolumeScanner(aws_client, metrics=metrics).scan()

        assert not result.has_errors
        assert result.total_count == 1
        record = result.records[0]
        assert record.kind is ResourceKind.VOLUME
        assert record.state == "available"
        assert record.size == 100
        assert record.flavor == "gp2"
        assert record.name == "scratch"
        assert record.tags["team"] == "data"
        assert record.created_at is not None
        assert record.utilization is None
        assert metrics.queries == []


class TestEIPScanner:
    """Tests for EIPScanner."""

    def test_unassociated_address(self, aws_client, ec2_client):
        allocation_id = ec2_client.allocate_address(Domain="vpc")["AllocationId"]
        records = EIPScanner(aws_client).get_all_resources()

        assert [r.id for r in records] == [allocation_id]
        assert records[0].state == "unassociated"
        assert records[0].associated_id is None
        assert records[0].created_at is None
        assert records[0].details["public_ip"]


class TestInstanceScanner:
    """Tests for InstanceScanner."""

    def test_running_instance_gets_cpu(self, aws_client, ec2_client):
        instance_id = ec2_client.run_instances(
            ImageId="ami-12345678", MinCount=1, MaxCount=1, InstanceType="t3.micro"
        )["Instances"][0]["InstanceId"]
        metrics = StubMetrics(2.5)
        config = ThresholdConfig(metric_window_days={ResourceKind.INSTANCE: 14})

        records = InstanceScanner(aws_client, config=config, metrics=metrics).get_all_resources()

        assert [r.id for r in records] == [instance_id]
        assert records[0].state == "running"
        assert records[0].flavor == "t3.micro"
        assert records[0].utilization == 2.5
        assert metrics.queries == [("AWS/EC2", "CPUUtilization", 14)]

    def test_stopped_instance_has_no_cpu(self, aws_client, ec2_client):
        instance_id = ec2_client.run_instances(
            ImageId="ami-12345678", MinCount=1, MaxCount=1
        )["Instances"][0]["InstanceId"]
        ec2_client.stop_instances(InstanceIds=[instance_id])
        metrics = StubMetrics(50.0)

        record = InstanceScanner(aws_client, metrics=metrics).get_all_resources()[0]

        assert record.state == "stopped"
        assert record.utilization is None
        assert metrics.queries == []


class TestSnapshotScanner:
    """Tests for snapshot record building."""

    def test_to_record(self, aws_client):
        started = datetime(2022, 4, 1, tzinfo=timezone.utc)
        snapshot = {
            "SnapshotId": "snap-0abc",
            "State": "completed",
            "StartTime": started,
            "VolumeSize": 8,
            "VolumeId": "vol-0abc",
            "Description": "nightly",
            "Tags": [{"Key": "Name", "Value": "db-nightly"}],
        }
        record = SnapshotScanner(aws_client)._to_record(snapshot, {"snap-0abc": "ami-1"})

        assert record.kind is ResourceKind.SNAPSHOT
        assert record.created_at == started
        assert record.size == 8
        assert record.associated_id == "vol-0abc"
        assert record.name == "db-nightly"
        assert record.details["ami_id"] == "ami-1"


class TestS3Scanner:
    """Tests for S3Scanner."""

    def test_empty_bucket_is_confirmed_by_listing(self, aws_client, s3_client):
        s3_client.create_bucket(Bucket="empty-bucket")
        record = S3Scanner(aws_client).get_all_resources()[0]

        assert record.kind is ResourceKind.OBJECT_BUCKET
        assert record.id == "empty-bucket"
        assert record.region == "us-east-1"
        assert record.object_count == 0
        assert record.size == 0.0
        assert record.created_at is not None

    def test_bucket_with_objects(self, aws_client, s3_client):
        s3_client.create_bucket(Bucket="logs-bucket")
        s3_client.put_bucket_tagging(
            Bucket="logs-bucket",
            Tagging={"TagSet": [{"Key": "owner", "Value": "platform"}]},
        )
        for i in range(3):
            s3_client.put_object(Bucket="logs-bucket", Key=f"log-{i}", Body=b"x" * 10)

        record = S3Scanner(aws_client).get_all_resources()[0]

        assert record.object_count == 3
        assert record.size is not None
        assert record.tags == {"owner": "platform"}

    def test_scanner_is_global(self):
        assert S3Scanner.GLOBAL
        assert not VolumeScanner.GLOBAL

    def test_unreadable_region_keeps_the_bucket(self, aws_client, s3_client, monkeypatch):
        s3_client.create_bucket(Bucket="locked-bucket")
        s3_client.create_bucket(Bucket="open-bucket")
        scanner = S3Scanner(aws_client)
        get_location = scanner.s3_client.get_bucket_location

        def get_bucket_location(Bucket):
            if Bucket == "locked-bucket":
                raise ClientError(
                    {"Error": {"Code": "AccessDenied", "Message": "denied"}},
                    "GetBucketLocation",
                )
            return get_location(Bucket=Bucket)

        monkeypatch.setattr(scanner.s3_client, "get_bucket_location", get_bucket_location)
        records = {record.id: record for record in scanner.get_all_resources()}

        assert set(records) == {"locked-bucket", "open-bucket"}
        assert records["locked-bucket"].region == "us-east-1"
        assert records["locked-bucket"].details["region_resolved"] is False
        assert records["open-bucket"].details["region_resolved"] is True

    def test_public_access_block(self, aws_client, s3_client):
        s3_client.create_bucket(Bucket="private-bucket")
        s3_client.create_bucket(Bucket="plain-bucket")
        s3_client.put_public_access_block(
            Bucket="private-bucket",
            PublicAccessBlockConfiguration={
                "BlockPublicAcls": True,
                "IgnorePublicAcls": True,
                "BlockPublicPolicy": True,
                "RestrictPublicBuckets": True,
            },
        )

        records = {record.id: record for record in S3Scanner(aws_client).get_all_resources()}

        assert records["private-bucket"].details["public_access_blocked"] is True
        assert records["plain-bucket"].details["public_access_blocked"] is False

    def test_size_sums_every_storage_class(self, aws_client, s3_client, monkeypatch):
        s3_client.create_bucket(Bucket="archive-bucket")
        gb = 1024 ** 3
        sizes = {
            "StandardStorage": 2 * gb,
            "StandardIAStorage": gb,
            "GlacierStorage": 5 * gb,
            "DeepArchiveStorage": None,
        }

        class StorageMetrics:
            def __init__(self, aws_client, as_of=None):
                pass

            def dimension_values(self, namespace, metric_name, dimensions, key):
                return sorted(sizes)

            def latest(self, namespace, metric_name, dimensions, **kwargs):
                if metric_name == "NumberOfObjects":
                    return 40.0
                return sizes[dimensions["StorageType"]]

        monkeypatch.setattr("cloud_sweeper.scanners.s3_scanner.MetricsClient", StorageMetrics)
        record = S3Scanner(aws_client).get_all_resources()[0]

        assert record.object_count == 40
        assert record.size == 8.0
