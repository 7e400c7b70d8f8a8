"""
Custom Exceptions for Cloud-Sweeper
===================================

This module defines a hierarchy of custom exceptions used throughout
the application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    CloudSweeperError (base)
    ├── AWSClientError
    │   ├── CredentialsError
    │   ├── RegionError
    │   └── ServiceError
    ├── ScannerError
    │   └── ResourceFetchError
    ├── ExecutorError
    │   ├── StateLookupError
    │   ├── BackupError
    │   └── DeleteError
    ├── ConfigurationError
    └── ReportFormatError

Notes
-----
Classification never raises: incomplete data degrades to the fail-closed
policy instead. Executor errors are raised by the provider actions and are
converted into Failed or Skipped attempts by the executor, so they never
abort a batch.

Example
-------
>>> from cloud_sweeper.core.exceptions import BackupError
>>>
>>> try:
...     actions.backup(record, session_id="20240115-103000")
... except BackupError as e:
...     print(f"Backup not confirmed: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CloudSweeperError(Exception):
    """
    Base exception for all Cloud-Sweeper errors.

    All custom exceptions in the application inherit from this class,
    allowing for broad exception catching when needed.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise CloudSweeperError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# AWS Client Exceptions
# =============================================================================


class AWSClientError(CloudSweeperError):
    """
    Base exception for AWS client-related errors.

    Raised when there's an issue with AWS connectivity, authentication,
    or service access.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The AWS service that caused the error.
    region : str, optional
        The AWS region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(AWSClientError):
    """
    Raised when AWS credentials are invalid, missing, or expired.

    Example
    -------
    >>> raise CredentialsError(
    ...     "AWS credentials not found",
    ...     details={"hint": "Run 'aws configure' to set up credentials"}
    ... )
    """

    pass


class RegionError(AWSClientError):
    """Raised when there's an issue with the specified AWS region."""

    pass


class ServiceError(AWSClientError):
    """Raised when there's an error accessing a specific AWS service."""

    pass


# =============================================================================
# Scanner Exceptions
# =============================================================================


class ScannerError(CloudSweeperError):
    """
    Base exception for scanner-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_kind : str, optional
        The kind of resource being scanned.
    region : str, optional
        The AWS region being scanned.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_kind: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_kind = resource_kind
        self.region = region
        full_details = details or {}
        if resource_kind:
            full_details["resource_kind"] = resource_kind
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class ResourceFetchError(ScannerError):
    """
    Raised when unable to fetch resources from AWS.

    Example
    -------
    >>> raise ResourceFetchError(
    ...     "Failed to list volumes",
    ...     resource_kind="Volume",
    ...     region="us-east-1"
    ... )
    """

    pass


# =============================================================================
# Executor Exceptions
# =============================================================================


class ExecutorError(CloudSweeperError):
    """
    Base exception for errors raised while acting on a resource.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_id : str, optional
        The ID of the resource being processed.
    resource_kind : str, optional
        The kind of resource being processed.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        resource_kind: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_id = resource_id
        self.resource_kind = resource_kind
        full_details = details or {}
        if resource_id:
            full_details["resource_id"] = resource_id
        if resource_kind:
            full_details["resource_kind"] = resource_kind
        super().__init__(message, full_details)


class StateLookupError(ExecutorError):
    """Raised when the live state of a resource cannot be read."""

    pass


class BackupError(ExecutorError):
    """
    Raised when a backup cannot be created or its completion confirmed.

    Example
    -------
    >>> raise BackupError(
    ...     "Snapshot snap-123 did not reach 'completed'",
    ...     resource_id="vol-123456",
    ...     resource_kind="Volume"
    ... )
    """

    pass


class DeleteError(ExecutorError):
    """
    Raised when the provider rejects or fails the destructive action.

    Example
    -------
    >>> raise DeleteError(
    ...     "Volume is currently attached to an instance",
    ...     resource_id="vol-123456",
    ...     resource_kind="Volume",
    ...     details={"error_code": "VolumeInUse"}
    ... )
    """

    pass


# =============================================================================
# Configuration and Report Exceptions
# =============================================================================


class ConfigurationError(CloudSweeperError):
    """
    Raised when thresholds or run options are inconsistent.

    Example
    -------
    >>> raise ConfigurationError(
    ...     "dry-run and interactive modes are mutually exclusive"
    ... )
    """

    pass


class ReportFormatError(CloudSweeperError):
    """Raised when a classification report cannot be parsed."""

    pass
