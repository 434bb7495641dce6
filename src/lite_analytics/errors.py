"""
Error types for lite-analytics.

Every failure that crosses a package boundary is one of these. Ingestion
failures map to a small JSON body with a stable ``error`` string; aggregation
failures are opaque so a dashboard never sees a partial snapshot.
"""
from typing import Any


class ConfigError(ValueError):
    """Raised when an AnalyticsConfig value is missing or unusable."""
    pass


class AnalyticsError(Exception):
    """Base error. Subclasses set ``status_code`` and ``error``."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str | None = None, **details: Any):
        super().__init__(message or self.error)
        self.details = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        """Response body for this error."""
        return {"error": self.error, **self.details}


class StoreError(AnalyticsError):
    """Raised by store adapters when a query or the transport fails."""
    pass


# =============================================================================
# Ingestion
# =============================================================================

class IngestError(AnalyticsError):
    """A beacon was rejected. Terminal for that beacon, never retried."""
    pass


class InvalidPayload(IngestError):
    """Body is not JSON or does not match the beacon schema."""
    status_code = 400
    error = "Invalid payload"


class MissingOrigin(IngestError):
    """No website_id and no Origin/Referer header to resolve a site from."""
    status_code = 400
    error = "Missing Origin"


class InvalidOrigin(IngestError):
    """Origin/Referer header present but not parseable as a URL."""
    status_code = 400
    error = "Invalid Origin"


class SiteNotRegistered(IngestError):
    """Resolved domain or id matches no site. Expected during onboarding."""
    status_code = 404
    error = "Website not registered"


class PersistenceFailure(IngestError):
    """Store unavailable or the insert was rejected.

    The body stays generic; the cause is only logged.
    """
    status_code = 500
    error = "Internal Server Error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


# =============================================================================
# Reads and site registration
# =============================================================================

class AggregationError(AnalyticsError):
    """A dashboard read failed as a whole."""
    status_code = 503
    error = "Analytics unavailable"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


class InvalidDomain(AnalyticsError):
    status_code = 400
    error = "Invalid domain"


class DomainAlreadyRegistered(AnalyticsError):
    status_code = 409
    error = "Domain already registered"
