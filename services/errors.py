"""Error taxonomy shared by the aggregation layer and the HTTP routes."""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for failures that carry a user-facing message."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigError(DashboardError):
    """A required configuration value is missing; startup must abort."""

    default_message = "Configuration is incomplete"


class UpstreamUnavailable(DashboardError):
    """The telemetry API failed where a result was required."""

    default_message = "The telemetry service is unavailable"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FeedNotFound(UpstreamUnavailable):
    default_message = "Egg not found"


class CredentialMissing(DashboardError):
    default_message = "Egg not found"


class NotOwner(DashboardError):
    default_message = "Not your egg"


class ValidationError(DashboardError):
    default_message = "Invalid input"
