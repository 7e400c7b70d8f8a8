"""
AWS Resource Actions
====================

The provider side of the deletion executor: reading a resource's live
state, creating a confirmed backup and performing the destructive call.

Classes
-------
AWSResourceActions
    boto3 implementation of ``current_state``, ``backup`` and ``destroy``.

Destructive Calls
-----------------
==================== ==============================================
Kind                 Call
==================== ==============================================
Instance             ec2.terminate_instances
Volume               ec2.delete_volume
Snapshot             ec2.delete_snapshot
FloatingIP           ec2.release_address
LoadBalancer         elbv2.delete_load_balancer / elb (classic)
ManagedDB            rds.delete_db_instance (no final snapshot)
ServerlessFunction   lambda.delete_function
NATGateway           ec2.delete_nat_gateway
ObjectBucket         s3.delete_bucket (empty buckets only)
==================== ==============================================

Backups
-------
Instances are imaged (AMI), volumes snapshotted and DB instances get a
manual DB snapshot. Each backup is tagged with the deletion session and
the original resource ID, then confirmed with a boto3 waiter. A backup
that is not confirmed raises ``BackupError`` and the resource must not
be destroyed.

Example
-------
>>> actions = AWSResourceActions(AWSClient(region="us-east-1"))
>>> actions.current_state(record)
'available'
>>> snapshot_id = actions.backup(record, session_id="20240115-103000")
>>> actions.destroy(record)
'delete_volume:vol-0abc'
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from cloud_sweeper.core.exceptions import BackupError, DeleteError, StateLookupError
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

CREATED_BY = "cloud-sweeper"

# Error codes meaning the resource is gone
NOT_FOUND_CODES = frozenset(
    {
        "InvalidInstanceID.NotFound",
        "InvalidVolume.NotFound",
        "InvalidSnapshot.NotFound",
        "InvalidAllocationID.NotFound",
        "InvalidAddress.NotFound",
        "LoadBalancerNotFound",
        "AccessPointNotFound",
        "DBInstanceNotFound",
        "DBInstanceNotFoundFault",
        "ResourceNotFoundException",
        "NatGatewayNotFound",
        "InvalidNatGatewayID.NotFound",
        "NoSuchBucket",
        "NotFound",
        "404",
    }
)

BACKUP_KINDS = frozenset(
    {ResourceKind.INSTANCE, ResourceKind.VOLUME, ResourceKind.MANAGED_DB}
)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class AWSResourceActions:
    """
    boto3-backed actions for the deletion executor.

    Parameters
    ----------
    aws_client : AWSClient
        Template client; one client per record region is derived from it.
    waiter_delay : int, default=15
        Seconds between backup status polls.
    waiter_max_attempts : int, default=80
        Polls before a backup is declared unconfirmed.
    """

    # Common error codes and user-friendly messages
    ERROR_MESSAGES = {
        "VolumeInUse": "Volume is attached to an instance",
        "InvalidSnapshot.InUse": "Snapshot is used by a registered AMI",
        "InvalidIPAddress.InUse": "Elastic IP is associated with a resource",
        "AuthFailure": "Elastic IP is owned by another account",
        "OperationNotPermitted": "Termination protection is enabled",
        "InvalidDBInstanceState": "Database is not in a deletable state",
        "InvalidDBInstanceStateFault": "Database is not in a deletable state",
        "BucketNotEmpty": "Bucket is not empty",
        "ResourceInUse": "Load balancer is in use",
        "ResourceConflictException": "Function is being modified",
        "DependencyViolation": "Resource is still in use by another resource",
        "UnauthorizedOperation": "Insufficient permissions",
        "AccessDenied": "Insufficient permissions",
        "AccessDeniedException": "Insufficient permissions",
    }

    def __init__(
        self,
        aws_client,
        waiter_delay: int = 15,
        waiter_max_attempts: int = 80,
    ) -> None:
        self.aws_client = aws_client
        self.waiter_delay = waiter_delay
        self.waiter_max_attempts = waiter_max_attempts
        self._clients: Dict[str, Any] = {aws_client.region: aws_client}

    def _client(self, region: str):
        """AWSClient for a region (cached)."""
        if region not in self._clients:
            self._clients[region] = self.aws_client.with_region(region)
        return self._clients[region]

    def _friendly(self, error: ClientError) -> str:
        code = _error_code(error)
        message = error.response.get("Error", {}).get("Message", str(error))
        return self.ERROR_MESSAGES.get(code, message)

    @staticmethod
    def supports_backup(kind: ResourceKind) -> bool:
        """True if a backup method exists for the kind."""
        return kind in BACKUP_KINDS

    # =========================================================================
    # Live State
    # =========================================================================

    def current_state(self, record: ResourceRecord) -> Optional[str]:
        """
        Read the live state of a resource.

        Returns
        -------
        str or None
            The state (same vocabulary as the scanners), or None if the
            resource no longer exists.

        Raises
        ------
        StateLookupError
            If the state cannot be read for another reason.
        """
        client = self._client(record.region)
        try:
            return _STATE_READERS[record.kind](client, record.id)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return None
            raise StateLookupError(
                f"Could not read state: {self._friendly(e)}",
                resource_id=record.id,
                resource_kind=record.kind.value,
                details={"error_code": _error_code(e)},
            )
        except BotoCoreError as e:
            raise StateLookupError(
                f"Could not read state: {e}",
                resource_id=record.id,
                resource_kind=record.kind.value,
            )

    # =========================================================================
    # Backup
    # =========================================================================

    def backup(self, record: ResourceRecord, session_id: str) -> str:
        """
        Create a backup and wait until it is usable.

        Returns
        -------
        str
            AMI ID, snapshot ID or DB snapshot identifier.

        Raises
        ------
        BackupError
            If the kind has no backup method, the request fails or the
            backup cannot be confirmed complete.
        """
        if not self.supports_backup(record.kind):
            raise BackupError(
                f"Backup not supported for {record.kind.value}",
                resource_id=record.id,
                resource_kind=record.kind.value,
            )

        client = self._client(record.region)
        backup_ref = None
        try:
            if record.kind is ResourceKind.INSTANCE:
                backup_ref = self._create_image(client, record, session_id)
                waiter_name, waiter_args = "image_available", {"ImageIds": [backup_ref]}
                waiter_client = client.get_ec2_client()
            elif record.kind is ResourceKind.VOLUME:
                backup_ref = self._create_snapshot(client, record, session_id)
                waiter_name, waiter_args = "snapshot_completed", {"SnapshotIds": [backup_ref]}
                waiter_client = client.get_ec2_client()
            else:
                backup_ref = self._create_db_snapshot(client, record, session_id)
                waiter_name = "db_snapshot_available"
                waiter_args = {"DBSnapshotIdentifier": backup_ref}
                waiter_client = client.get_rds_client()

            logger.info(f"Waiting for backup {backup_ref} of {record.id}")
            waiter_client.get_waiter(waiter_name).wait(
                WaiterConfig={
                    "Delay": self.waiter_delay,
                    "MaxAttempts": self.waiter_max_attempts,
                },
                **waiter_args,
            )
        except WaiterError as e:
            raise BackupError(
                f"Backup {backup_ref} could not be confirmed complete: {e}",
                resource_id=record.id,
                resource_kind=record.kind.value,
                details={"backup_ref": backup_ref},
            )
        except ClientError as e:
            raise BackupError(
                f"Backup failed: {self._friendly(e)}",
                resource_id=record.id,
                resource_kind=record.kind.value,
                details={"error_code": _error_code(e), "backup_ref": backup_ref},
            )
        except BotoCoreError as e:
            raise BackupError(
                f"Backup failed: {e}",
                resource_id=record.id,
                resource_kind=record.kind.value,
                details={"backup_ref": backup_ref},
            )

        logger.info(f"Backup {backup_ref} of {record.id} confirmed")
        return backup_ref

    @staticmethod
    def _backup_tags(record: ResourceRecord, session_id: str, origin_key: str) -> List[Dict[str, str]]:
        return [
            {"Key": "Name", "Value": f"{CREATED_BY}-backup-{record.id}"},
            {"Key": "DeletionSession", "Value": session_id},
            {"Key": origin_key, "Value": record.id},
            {"Key": "CreatedBy", "Value": CREATED_BY},
        ]

    def _create_image(self, client, record: ResourceRecord, session_id: str) -> str:
        tags = self._backup_tags(record, session_id, "OriginalInstance")
        response = client.get_ec2_client().create_image(
            InstanceId=record.id,
            Name=f"{CREATED_BY}-{record.id}-{session_id}",
            Description=f"Backup of {record.label} before deletion",
            NoReboot=True,
            TagSpecifications=[{"ResourceType": "image", "Tags": tags}],
        )
        return response["ImageId"]

    def _create_snapshot(self, client, record: ResourceRecord, session_id: str) -> str:
        tags = self._backup_tags(record, session_id, "OriginalVolume")
        response = client.get_ec2_client().create_snapshot(
            VolumeId=record.id,
            Description=f"Backup of {record.label} before deletion",
            TagSpecifications=[{"ResourceType": "snapshot", "Tags": tags}],
        )
        return response["SnapshotId"]

    def _create_db_snapshot(self, client, record: ResourceRecord, session_id: str) -> str:
        identifier = f"{CREATED_BY}-{record.id}-{session_id}"
        client.get_rds_client().create_db_snapshot(
            DBSnapshotIdentifier=identifier,
            DBInstanceIdentifier=record.id,
            Tags=self._backup_tags(record, session_id, "OriginalDBInstance"),
        )
        return identifier

    # =========================================================================
    # Destructive Action
    # =========================================================================

    def destroy(self, record: ResourceRecord) -> str:
        """
        Perform the destructive call.

        Returns
        -------
        str
            ``"<operation>:<id>"`` reference of the call.

        Raises
        ------
        DeleteError
            If the provider rejects the call.
        """
        client = self._client(record.region)
        try:
            operation = _DESTROYERS[record.kind](client, record.id)
        except ClientError as e:
            raise DeleteError(
                self._friendly(e),
                resource_id=record.id,
                resource_kind=record.kind.value,
                details={"error_code": _error_code(e)},
            )
        except BotoCoreError as e:
            raise DeleteError(
                str(e),
                resource_id=record.id,
                resource_kind=record.kind.value,
            )

        logger.info(f"{operation} {record.id} in {record.region}")
        return f"{operation}:{record.id}"

    def __repr__(self) -> str:
        return f"AWSResourceActions(regions={sorted(self._clients)})"


# =============================================================================
# Per-kind State Readers
# =============================================================================


def _address_filter(address_id: str) -> Dict[str, List[str]]:
    if address_id.startswith("eipalloc-"):
        return {"AllocationIds": [address_id]}
    return {"PublicIps": [address_id]}


def _instance_state(client, resource_id: str) -> Optional[str]:
    reservations = client.get_ec2_client().describe_instances(
        InstanceIds=[resource_id]
    ).get("Reservations", [])
    for reservation in reservations:
        for instance in reservation.get("Instances", []):
            return instance["State"]["Name"]
    return None


def _volume_state(client, resource_id: str) -> Optional[str]:
    volumes = client.get_ec2_client().describe_volumes(VolumeIds=[resource_id])
    return next((v["State"] for v in volumes.get("Volumes", [])), None)


def _snapshot_state(client, resource_id: str) -> Optional[str]:
    snapshots = client.get_ec2_client().describe_snapshots(SnapshotIds=[resource_id])
    return next((s["State"] for s in snapshots.get("Snapshots", [])), None)


def _address_state(client, resource_id: str) -> Optional[str]:
    addresses = client.get_ec2_client().describe_addresses(
        **_address_filter(resource_id)
    ).get("Addresses", [])
    if not addresses:
        return None
    address = addresses[0]
    if (
        address.get("AssociationId")
        or address.get("InstanceId")
        or address.get("NetworkInterfaceId")
    ):
        return "associated"
    return "unassociated"


def _load_balancer_state(client, resource_id: str) -> Optional[str]:
    if resource_id.startswith("arn:"):
        response = client.get_elbv2_client().describe_load_balancers(
            LoadBalancerArns=[resource_id]
        )
        return next(
            (lb["State"]["Code"] for lb in response.get("LoadBalancers", [])), None
        )
    response = client.get_elb_client().describe_load_balancers(
        LoadBalancerNames=[resource_id]
    )
    return "active" if response.get("LoadBalancerDescriptions") else None


def _db_state(client, resource_id: str) -> Optional[str]:
    response = client.get_rds_client().describe_db_instances(
        DBInstanceIdentifier=resource_id
    )
    return next(
        (db["DBInstanceStatus"] for db in response.get("DBInstances", [])), None
    )


def _function_state(client, resource_id: str) -> Optional[str]:
    response = client.get_lambda_client().get_function(FunctionName=resource_id)
    return response.get("Configuration", {}).get("State", "Active")


def _nat_gateway_state(client, resource_id: str) -> Optional[str]:
    response = client.get_ec2_client().describe_nat_gateways(
        NatGatewayIds=[resource_id]
    )
    return next((n["State"] for n in response.get("NatGateways", [])), None)


def _bucket_state(client, resource_id: str) -> Optional[str]:
    client.get_s3_client().head_bucket(Bucket=resource_id)
    return "available"


_STATE_READERS = {
    ResourceKind.INSTANCE: _instance_state,
    ResourceKind.VOLUME: _volume_state,
    ResourceKind.SNAPSHOT: _snapshot_state,
    ResourceKind.FLOATING_IP: _address_state,
    ResourceKind.LOAD_BALANCER: _load_balancer_state,
    ResourceKind.MANAGED_DB: _db_state,
    ResourceKind.SERVERLESS_FUNCTION: _function_state,
    ResourceKind.NAT_GATEWAY: _nat_gateway_state,
    ResourceKind.OBJECT_BUCKET: _bucket_state,
}


# =============================================================================
# Per-kind Destroyers
# =============================================================================


def _terminate_instance(client, resource_id: str) -> str:
    client.get_ec2_client().terminate_instances(InstanceIds=[resource_id])
    return "terminate_instances"


def _delete_volume(client, resource_id: str) -> str:
    client.get_ec2_client().delete_volume(VolumeId=resource_id)
    return "delete_volume"


def _delete_snapshot(client, resource_id: str) -> str:
    client.get_ec2_client().delete_snapshot(SnapshotId=resource_id)
    return "delete_snapshot"


def _release_address(client, resource_id: str) -> str:
    if resource_id.startswith("eipalloc-"):
        client.get_ec2_client().release_address(AllocationId=resource_id)
    else:
        client.get_ec2_client().release_address(PublicIp=resource_id)
    return "release_address"


def _delete_load_balancer(client, resource_id: str) -> str:
    if resource_id.startswith("arn:"):
        client.get_elbv2_client().delete_load_balancer(LoadBalancerArn=resource_id)
    else:
        client.get_elb_client().delete_load_balancer(LoadBalancerName=resource_id)
    return "delete_load_balancer"


def _delete_db_instance(client, resource_id: str) -> str:
    client.get_rds_client().delete_db_instance(
        DBInstanceIdentifier=resource_id,
        SkipFinalSnapshot=True,
        DeleteAutomatedBackups=False,
    )
    return "delete_db_instance"


def _delete_function(client, resource_id: str) -> str:
    client.get_lambda_client().delete_function(FunctionName=resource_id)
    return "delete_function"


def _delete_nat_gateway(client, resource_id: str) -> str:
    client.get_ec2_client().delete_nat_gateway(NatGatewayId=resource_id)
    return "delete_nat_gateway"


def _delete_bucket(client, resource_id: str) -> str:
    client.get_s3_client().delete_bucket(Bucket=resource_id)
    return "delete_bucket"


_DESTROYERS = {
    ResourceKind.INSTANCE: _terminate_instance,
    ResourceKind.VOLUME: _delete_volume,
    ResourceKind.SNAPSHOT: _delete_snapshot,
    ResourceKind.FLOATING_IP: _release_address,
    ResourceKind.LOAD_BALANCER: _delete_load_balancer,
    ResourceKind.MANAGED_DB: _delete_db_instance,
    ResourceKind.SERVERLESS_FUNCTION: _delete_function,
    ResourceKind.NAT_GATEWAY: _delete_nat_gateway,
    ResourceKind.OBJECT_BUCKET: _delete_bucket,
}
