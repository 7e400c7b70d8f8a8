"""
AWS Client Module
=================

Thin wrapper around boto3 sessions shared by the scanners, the metrics
reader and the deletion actions.

One ``AWSClient`` is bound to one region. Regional fan-out is done by
``RegionManager`` through ``with_region``.

Classes
-------
AWSClient
    Region-bound session holder with cached service clients.

Example
-------
>>> from cloud_sweeper.core.aws_client import AWSClient
>>>
>>> client = AWSClient(region="us-east-1", profile="audit")
>>> client.validate_credentials()
True
>>> ec2 = client.get_ec2_client()
>>> cloudwatch = client.get_cloudwatch_client()

Notes
-----
The boto3 session and every service client are created on first access
and cached. boto3 clients are thread-safe, sessions are not, so each
worker thread gets its own ``AWSClient`` via ``with_region``.

See Also
--------
boto3 : AWS SDK for Python
cloud_sweeper.core.region_manager : Multi-region scanning.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
)

from cloud_sweeper.core.exceptions import (
    AWSClientError,
    CredentialsError,
    RegionError,
    ServiceError,
)

logger = logging.getLogger(__name__)


class AWSClient:
    """
    Region-bound boto3 session with adaptive retries and cached clients.

    Parameters
    ----------
    region : str, default="us-east-1"
        AWS region to connect to.
    profile : str, optional
        Named profile from the shared credentials file.
    max_retries : int, default=5
        Maximum attempts per API call. Audits fan out over many regions and
        services, so throttling is expected and retried adaptively.
    timeout : int, default=30
        Connect and read timeout in seconds.

    Raises
    ------
    CredentialsError
        If the profile is unknown or no credentials are configured.
    RegionError
        If no region can be resolved.
    ServiceError
        If a service client cannot be created.
    """

    SUPPORTED_SERVICES = {
        "ec2": "Amazon EC2",
        "rds": "Amazon RDS",
        "elb": "Elastic Load Balancing (Classic)",
        "elbv2": "Elastic Load Balancing (v2)",
        "lambda": "AWS Lambda",
        "s3": "Amazon S3",
        "cloudwatch": "Amazon CloudWatch",
        "sts": "AWS Security Token Service",
    }

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        max_retries: int = 5,
        timeout: int = 30,
    ) -> None:
        self.region = region
        self.profile = profile
        self.max_retries = max_retries
        self.timeout = timeout

        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}
        self._config = Config(
            retries={"max_attempts": self.max_retries, "mode": "adaptive"},
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
        )

        logger.debug(f"Initialized AWSClient for {region} (profile={profile})")

    @property
    def session(self) -> boto3.Session:
        """The boto3 session, created on first access."""
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        session_kwargs = {"region_name": self.region}
        if self.profile:
            session_kwargs["profile_name"] = self.profile

        try:
            session = boto3.Session(**session_kwargs)
        except ProfileNotFound:
            raise CredentialsError(
                f"AWS profile '{self.profile}' not found",
                details={
                    "profile": self.profile,
                    "hint": "Check ~/.aws/config for available profiles",
                },
            )
        except NoRegionError:
            raise RegionError(
                f"Invalid or missing region: {self.region}",
                region=self.region,
                details={"hint": "Specify a region like 'us-east-1'"},
            )
        except BotoCoreError as e:
            raise AWSClientError(
                f"Failed to create AWS session: {e}",
                region=self.region,
            )

        logger.debug(f"Created boto3 session for region {self.region}")
        return session

    def client(self, service_name: str) -> Any:
        """
        Get or create a cached boto3 client for a service.

        Parameters
        ----------
        service_name : str
            boto3 service name, one of ``SUPPORTED_SERVICES``.

        Returns
        -------
        botocore.client.BaseClient
            The service client for this client's region.

        Raises
        ------
        CredentialsError
            If credentials are not found.
        ServiceError
            If the service is unsupported or the client cannot be created.
        """
        if service_name in self._clients:
            return self._clients[service_name]

        if service_name not in self.SUPPORTED_SERVICES:
            raise ServiceError(
                f"Unsupported service: {service_name}",
                service=service_name,
                region=self.region,
            )

        try:
            service_client = self.session.client(service_name, config=self._config)
        except NoCredentialsError:
            raise CredentialsError(
                "AWS credentials not found",
                details={
                    "hint": (
                        "Configure credentials using 'aws configure' or set "
                        "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY"
                    ),
                },
            )
        except BotoCoreError as e:
            raise ServiceError(
                f"Failed to create {service_name} client: {e}",
                service=service_name,
                region=self.region,
            )

        self._clients[service_name] = service_client
        logger.debug(f"Created {service_name} client for {self.region}")
        return service_client

    # =========================================================================
    # Service Client Accessors
    # =========================================================================

    def get_ec2_client(self) -> Any:
        """EC2 client (instances, volumes, snapshots, addresses, NAT gateways)."""
        return self.client("ec2")

    def get_rds_client(self) -> Any:
        """RDS client."""
        return self.client("rds")

    def get_elb_client(self) -> Any:
        """Classic Elastic Load Balancing client."""
        return self.client("elb")

    def get_elbv2_client(self) -> Any:
        """Elastic Load Balancing v2 client (application, network, gateway)."""
        return self.client("elbv2")

    def get_lambda_client(self) -> Any:
        """Lambda client."""
        return self.client("lambda")

    def get_s3_client(self) -> Any:
        """S3 client."""
        return self.client("s3")

    def get_cloudwatch_client(self) -> Any:
        """
        CloudWatch client.

        Example
        -------
        >>> cloudwatch = client.get_cloudwatch_client()
        >>> cloudwatch.get_metric_statistics(...)
        """
        return self.client("cloudwatch")

    # =========================================================================
    # Credential and Account Operations
    # =========================================================================

    def get_caller_identity(self) -> Dict[str, str]:
        """
        Return the STS caller identity (``Account``, ``Arn``, ``UserId``).

        Raises
        ------
        CredentialsError
            If the credentials are invalid, expired or missing.
        """
        try:
            return self.client("sts").get_caller_identity()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in (
                "InvalidClientTokenId",
                "SignatureDoesNotMatch",
                "ExpiredToken",
            ):
                raise CredentialsError(
                    "Invalid AWS credentials",
                    details={
                        "error_code": error_code,
                        "hint": "Check your access key, secret key and session token",
                    },
                )
            raise CredentialsError(f"Failed to validate credentials: {e}")
        except NoCredentialsError:
            raise CredentialsError(
                "AWS credentials not found",
                details={"hint": "Run 'aws configure' to set up credentials"},
            )
        except BotoCoreError as e:
            raise CredentialsError(f"Failed to validate credentials: {e}")

    def validate_credentials(self) -> bool:
        """
        Validate credentials by calling STS GetCallerIdentity.

        Returns
        -------
        bool
            True if the credentials are valid.

        Raises
        ------
        CredentialsError
            If they are not.
        """
        identity = self.get_caller_identity()
        logger.info(f"Credentials validated for {identity['Arn']}")
        return True

    def get_account_id(self) -> str:
        """The 12-digit account ID of the current credentials."""
        return self.get_caller_identity()["Account"]

    # =========================================================================
    # Factory Methods
    # =========================================================================

    def with_region(self, region: str) -> AWSClient:
        """
        Create a new client for another region with the same settings.

        Example
        -------
        >>> eu_client = AWSClient(region="us-east-1").with_region("eu-west-1")
        >>> eu_client.region
        'eu-west-1'
        """
        return AWSClient(
            region=region,
            profile=self.profile,
            max_retries=self.max_retries,
            timeout=self.timeout,
        )

    def __enter__(self) -> AWSClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._clients.clear()
        self._session = None

    def __repr__(self) -> str:
        return (
            f"AWSClient(region='{self.region}', "
            f"profile={self.profile!r}, "
            f"max_retries={self.max_retries})"
        )
