"""
Tests for the boto3 resource actions.
"""

import pytest

from cloud_sweeper.cleaners.actions import AWSResourceActions
from cloud_sweeper.core.exceptions import BackupError, DeleteError
from cloud_sweeper.core.models import ResourceKind

from conftest import make_record


@pytest.fixture
def actions(aws_client):
    """AWSResourceActions with fast waiters."""
    return AWSResourceActions(aws_client, waiter_delay=1, waiter_max_attempts=5)


@pytest.fixture
def volume_id(ec2_client):
    """Create an unattached volume."""
    response = ec2_client.create_volume(
        AvailabilityZone="us-east-1a", Size=10, VolumeType="gp3"
    )
    return response["VolumeId"]


class TestCurrentState:
    """Tests for live state lookups."""

    def test_volume_state(self, actions, volume_id):
        record = make_record(ResourceKind.VOLUME, id=volume_id)
        assert actions.current_state(record) == "available"

    def test_missing_volume_has_no_state(self, actions):
        record = make_record(ResourceKind.VOLUME, id="vol-0123456789abcdef0")
        assert actions.current_state(record) is None

    def test_address_state(self, actions, ec2_client):
        allocation = ec2_client.allocate_address(Domain="vpc")
        record = make_record(ResourceKind.FLOATING_IP, id=allocation["AllocationId"])
        assert actions.current_state(record) == "unassociated"

    def test_missing_bucket_has_no_state(self, actions):
        record = make_record(ResourceKind.OBJECT_BUCKET, id="no-such-bucket-xyz")
        assert actions.current_state(record) is None

    def test_existing_bucket(self, actions, s3_client):
        s3_client.create_bucket(Bucket="empty-bucket")
        record = make_record(ResourceKind.OBJECT_BUCKET, id="empty-bucket")
        assert actions.current_state(record) == "available"


class TestDestroy:
    """Tests for destructive calls."""

    def test_delete_volume(self, actions, volume_id, ec2_client):
        record = make_record(ResourceKind.VOLUME, id=volume_id)
        assert actions.destroy(record) == f"delete_volume:{volume_id}"
        assert actions.current_state(record) is None

    def test_release_address(self, actions, ec2_client):
        allocation_id = ec2_client.allocate_address(Domain="vpc")["AllocationId"]
        record = make_record(ResourceKind.FLOATING_IP, id=allocation_id)
        assert actions.destroy(record) == f"release_address:{allocation_id}"
        assert ec2_client.describe_addresses()["Addresses"] == []

    def test_provider_rejection_is_delete_error(self, actions):
        record = make_record(ResourceKind.SNAPSHOT, id="snap-0123456789abcdef0")
        with pytest.raises(DeleteError) as exc_info:
            actions.destroy(record)
        assert exc_info.value.resource_id == "snap-0123456789abcdef0"


class TestBackup:
    """Tests for confirmed backups."""

    def test_volume_snapshot_backup(self, actions, volume_id, ec2_client):
        record = make_record(ResourceKind.VOLUME, id=volume_id)
        snapshot_id = actions.backup(record, session_id="20240115-103000")

        snapshot = ec2_client.describe_snapshots(SnapshotIds=[snapshot_id])["Snapshots"][0]
        tags = {t["Key"]: t["Value"] for t in snapshot.get("Tags", [])}
        assert snapshot["VolumeId"] == volume_id
        assert tags["DeletionSession"] == "20240115-103000"
        assert tags["OriginalVolume"] == volume_id

    def test_unsupported_kind(self, actions):
        record = make_record(ResourceKind.FLOATING_IP, id="eipalloc-1")
        assert not actions.supports_backup(ResourceKind.FLOATING_IP)
        with pytest.raises(BackupError):
            actions.backup(record, session_id="s1")
