"""Exception hierarchy for incidentdesk."""

from __future__ import annotations

from typing import Any


class IncidentDeskError(Exception):
    """Base exception for all incidentdesk errors."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(IncidentDeskError):
    """Raised when a request is missing a required field or carries a bad value."""

    status_code = 400


class AuthenticationError(IncidentDeskError):
    """Raised when the caller's credentials are missing or invalid."""

    status_code = 401


class AuthorizationError(IncidentDeskError):
    """Raised when a role or tenant check fails."""

    status_code = 403


class NotFoundError(IncidentDeskError):
    """Raised when a record does not exist."""

    status_code = 404


class DirectoryError(IncidentDeskError):
    """Raised when an identity directory call fails.

    ``code`` carries the directory's native error name (e.g.
    ``UsernameExistsException``) so callers can recognise specific failures.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class DataApiError(IncidentDeskError):
    """Raised when the hosted data API returns errors."""


class StorageError(IncidentDeskError):
    """Raised when object storage operations fail."""


class DetectionError(IncidentDeskError):
    """Raised when the detection service call fails or reports an error."""


class ConfigError(IncidentDeskError):
    """Raised when configuration is invalid."""
