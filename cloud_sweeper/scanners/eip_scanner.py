"""
Elastic IP Scanner Module
=========================

Collects Elastic IP addresses and what, if anything, they are attached to.

Elastic IPs that are allocated but not associated with any resource are
billed by the hour. The classifier recommends releasing them.

Classes
-------
EIPScanner
    Scanner producing one record per Elastic IP.

Example
-------
>>> from cloud_sweeper.scanners import EIPScanner
>>> from cloud_sweeper.core import AWSClient
>>>
>>> scanner = EIPScanner(AWSClient(region="us-east-1"))
>>> for record in scanner.scan().records:
...     print(record.details["public_ip"], record.state)

Association Logic
-----------------
An Elastic IP is "associated" if any of these holds:

1. **Instance** - Associated with an EC2 instance
2. **Network Interface** - Attached to a network interface
3. **NAT Gateway** - Used by an active NAT gateway

Notes
-----
AWS does not report when an address was allocated, so records have no
``created_at``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


class EIPScanner(BaseScanner):
    """
    Scanner for Elastic IP addresses.

    Records use the allocation ID as ``id`` (the public IP for EC2-Classic
    addresses) and the attached instance, network interface or NAT
    gateway as ``associated_id``. ``state`` is ``"associated"`` or
    ``"unassociated"``.

    Examples
    --------
    >>> records = EIPScanner(client).get_all_resources()
    >>> idle = [r for r in records if r.state == "unassociated"]
    """

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._ec2_client = None

    # =========================================================================
    # Service Client Properties (Lazy Loading)
    # =========================================================================

    @property
    def ec2_client(self):
        """Get EC2 client (lazy loaded)."""
        if self._ec2_client is None:
            self._ec2_client = self.aws_client.get_ec2_client()
        return self._ec2_client

    # =========================================================================
    # BaseScanner Abstract Method Implementations
    # =========================================================================

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.FLOATING_IP

    def get_all_resources(self) -> List[ResourceRecord]:
        """
        Fetch all Elastic IPs in the region.

        Returns
        -------
        list of ResourceRecord
            One record per address.

        Raises
        ------
        botocore.exceptions.ClientError
            If the addresses cannot be listed.
        """
        logger.debug(f"Fetching all Elastic IPs in {self.region}")
        response = self.ec2_client.describe_addresses()
        nat_eips = self._get_nat_gateway_eips()

        records = [
            self._to_record(address, nat_eips)
            for address in response.get("Addresses", [])
        ]
        logger.debug(f"Found {len(records)} Elastic IPs in {self.region}")
        return records

    def _to_record(self, address: Dict[str, Any], nat_eips: Dict[str, str]) -> ResourceRecord:
        tags = self.parse_tags(address.get("Tags"))
        public_ip = address.get("PublicIp", "")
        allocation_id = address.get("AllocationId") or public_ip

        associated_id = (
            address.get("InstanceId")
            or address.get("NetworkInterfaceId")
            or nat_eips.get(allocation_id)
        )

        return ResourceRecord(
            kind=ResourceKind.FLOATING_IP,
            region=self.region,
            id=allocation_id,
            state="associated" if associated_id else "unassociated",
            tags=tags,
            associated_id=associated_id,
            name=tags.get("Name", public_ip),
            details={
                "public_ip": public_ip,
                "domain": address.get("Domain", "vpc"),
                "association_id": address.get("AssociationId"),
                "private_ip": address.get("PrivateIpAddress"),
            },
        )

    # =========================================================================
    # Private Methods: Association Detection
    # =========================================================================

    def _get_nat_gateway_eips(self) -> Dict[str, str]:
        """Map allocation ID to the active NAT gateway using it."""
        nat_eips: Dict[str, str] = {}
        paginator = self.ec2_client.get_paginator("describe_nat_gateways")

        try:
            for page in paginator.paginate(
                Filters=[{"Name": "state", "Values": ["available", "pending"]}]
            ):
                for nat in page.get("NatGateways", []):
                    for nat_address in nat.get("NatGatewayAddresses", []):
                        allocation_id = nat_address.get("AllocationId")
                        if allocation_id:
                            nat_eips[allocation_id] = nat["NatGatewayId"]

        except ClientError as e:
            logger.warning(f"Error fetching NAT Gateways: {e}")

        return nat_eips
