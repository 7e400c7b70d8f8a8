"""
Tests for the AWS Client module.
"""

import pytest

from cloud_sweeper.core.aws_client import AWSClient
from cloud_sweeper.core.exceptions import CredentialsError, ServiceError


class TestAWSClient:
    """Tests for AWSClient class."""

    def test_client_initialization(self, mock_aws_environment):
        """Test the session is created lazily."""
        client = AWSClient(region="eu-central-1")
        assert client.region == "eu-central-1"
        assert client.profile is None
        assert client._session is None

    @pytest.mark.parametrize(
        "getter",
        [
            "get_ec2_client",
            "get_rds_client",
            "get_elb_client",
            "get_elbv2_client",
            "get_lambda_client",
            "get_s3_client",
            "get_cloudwatch_client",
        ],
    )
    def test_service_getters(self, aws_client, getter):
        """Test every scanner service has a client for the region."""
        service = getattr(aws_client, getter)()
        assert service.meta.region_name == "us-east-1"

    def test_clients_are_cached(self, aws_client):
        """Test repeated lookups reuse one client."""
        assert aws_client.get_ec2_client() is aws_client.get_ec2_client()

    def test_unsupported_service(self, aws_client):
        """Test services outside the audit are rejected."""
        with pytest.raises(ServiceError) as exc_info:
            aws_client.client("iam")
        assert exc_info.value.details["service"] == "iam"

    def test_validate_credentials(self, aws_client):
        """Test credential validation."""
        assert aws_client.validate_credentials() is True

    def test_get_account_id(self, aws_client):
        """Test getting account ID."""
        account_id = aws_client.get_account_id()
        assert len(account_id) == 12

    def test_with_region(self, mock_aws_environment):
        """Test creating client for different region."""
        client = AWSClient(region="us-east-1", profile="audit", max_retries=7)
        eu_client = client.with_region("eu-west-1")

        assert eu_client.region == "eu-west-1"
        assert eu_client.profile == "audit"
        assert eu_client.max_retries == 7
        assert client.region == "us-east-1"

    def test_context_manager_clears_clients(self, aws_client):
        """Test leaving the context drops cached clients."""
        with aws_client as client:
            client.get_ec2_client()
            assert client._clients
        assert aws_client._clients == {}

    def test_retry_config(self, mock_aws_environment):
        """Test that adaptive retry configuration is applied."""
        client = AWSClient(region="us-east-1", max_retries=5, timeout=60)
        assert client._config.retries == {"max_attempts": 5, "mode": "adaptive"}
        assert client._config.read_timeout == 60


class TestAWSClientErrors:
    """Tests for AWSClient error handling."""

    def test_unknown_profile(self, mock_aws_environment):
        """Test an unknown profile surfaces as a credentials error."""
        client = AWSClient(region="us-east-1", profile="nonexistent-profile-xyz")
        with pytest.raises(CredentialsError) as exc_info:
            client.get_ec2_client()
        assert "nonexistent-profile-xyz" in exc_info.value.message
