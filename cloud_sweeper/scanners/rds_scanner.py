"""
RDS Instance Scanner Module
===========================

Collects RDS DB instances with their average connection count.

Classes
-------
RDSScanner
    Scanner producing one record per DB instance.

Notes
-----
Connections are only queried for instances in the ``available`` state.
``DatabaseConnections`` is published continuously for running
instances, so missing datapoints mean "unknown", not "idle".
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from cloud_sweeper.core.base_scanner import BaseScanner
from cloud_sweeper.core.models import ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)


class RDSScanner(BaseScanner):
    """
    Scanner for RDS DB instances.

    ``flavor`` is the DB instance class and ``size`` the allocated
    storage in GB.
    """

    def __init__(self, aws_client, **kwargs) -> None:
        super().__init__(aws_client, **kwargs)
        self._rds_client = None

    @property
    def rds_client(self):
        """Get RDS client (lazy loaded)."""
        if self._rds_client is None:
            self._rds_client = self.aws_client.get_rds_client()
        return self._rds_client

    def get_resource_kind(self) -> ResourceKind:
        return ResourceKind.MANAGED_DB

    def get_all_resources(self) -> List[ResourceRecord]:
        """Fetch all RDS DB instances in the region."""
        instances = self.paginate(self.rds_client, "describe_db_instances", "DBInstances")
        records = [self._to_record(db) for db in instances]
        logger.debug(f"Found {len(records)} DB instances in {self.region}")
        return records

    def _to_record(self, db: Dict[str, Any]) -> ResourceRecord:
        db_id = db["DBInstanceIdentifier"]
        state = db.get("DBInstanceStatus", "unknown")
        tags = self.parse_tags(db.get("TagList"))

        connections = None
        if state == "available":
            connections = self.metrics.average(
                "AWS/RDS",
                "DatabaseConnections",
                {"DBInstanceIdentifier": db_id},
                self.window_days,
            )

        return ResourceRecord(
            kind=ResourceKind.MANAGED_DB,
            region=self.region,
            id=db_id,
            state=state,
            created_at=db.get("InstanceCreateTime"),
            size=db.get("AllocatedStorage"),
            utilization=connections,
            utilization_metric="Avg connections",
            tags=tags,
            name=tags.get("Name", db_id),
            flavor=db.get("DBInstanceClass"),
            details={
                "engine": db.get("Engine"),
                "engine_version": db.get("EngineVersion"),
                "multi_az": db.get("MultiAZ", False),
                "encrypted": db.get("StorageEncrypted", False),
            },
        )
