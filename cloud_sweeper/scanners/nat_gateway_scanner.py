"""
NAT Gateway Scanner Module
==========================

Collects NAT gateways with the average of their bytes sent to
destinations.

Classes
-------
NATGatewayScanner
    Scanner producing one record per NAT gateway.

Notes
-----
A NAT gateway is billed hourly whether or not traffic flows through it,
which makes a quiet gateway worth a review. Deleted gateways stay
visible for about an hour and are reported as IGNORE.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


class NATGatewayScanner(BaseScanner):
    """Scanner for NAT gateways."""

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._ec2_client = None

    @property
    def ec2_client(self):
        """Get EC2 client (lazy loaded)."""
        if self._ec2_client is None:
            self._ec2_client = self.aws_client.get_ec2_client()
        return self._ec2_client

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.NAT_GATEWAY

    def get_all_resources(self) -> List[ResourceRecord]:
        """Fetch all NAT gateways in the region."""
        gateways = self.paginate(self.ec2_client, "describe_nat_gateways", "NatGateways")
        records = [self._to_record(gateway) for gateway in gateways]
        logger.debug(f"Found {len(records)} NAT gateways in {self.region}")
        return records

    def _to_record(self, gateway: Dict[str, Any]) -> ResourceRecord:
        gateway_id = gateway["NatGatewayId"]
        state = gateway.get("State", "unknown")
        tags = self.parse_tags(gateway.get("Tags"))
        addresses = gateway.get("NatGatewayAddresses", [])

        bytes_out = None
        if state == "available":
            bytes_out = self.metrics.average(
                "AWS/NATGateway",
                "BytesOutToDestination",
                {"NatGatewayId": gateway_id},
                self.window_days,
            )

        return ResourceRecord(
            kind=ResourceKind.NAT_GATEWAY,
            region=self.region,
            id=gateway_id,
            state=state,
            created_at=gateway.get("CreateTime"),
            utilization=bytes_out,
            utilization_metric="Avg bytes out",
            tags=tags,
            associated_id=gateway.get("SubnetId"),
            name=tags.get("Name", ""),
            details={
                "vpc_id": gateway.get("VpcId"),
                "public_ip": addresses[0].get("PublicIp") if addresses else None,
                "connectivity": gateway.get("ConnectivityType", "public"),
            },
        )
