# backend/lib/eco_village_core/errors.py


class EcoMonitorError(Exception):
    """Base class for errors raised by the energy monitor."""


class AuthError(EcoMonitorError):
    """Login failed: bad credentials or the vendor rejected the exchange."""


class ServiceUnreachableError(AuthError):
    """The vendor API could not be reached at all during login."""

    DEFAULT_MESSAGE = (
        "Could not reach the Emporia service. Check your network connection, "
        "or log in with demo mode to explore the dashboard with simulated data."
    )

    def __init__(self, message: str = None):
        super().__init__(message or self.DEFAULT_MESSAGE)


class PerResidentFetchError(EcoMonitorError):
    """Usage history for a single resident could not be fetched."""

    def __init__(self, resident_id: str, cause: Exception):
        super().__init__(f"usage fetch failed for resident {resident_id}: {cause}")
        self.resident_id = resident_id
        self.cause = cause


class ServiceError(EcoMonitorError):
    """The text-generation service failed or returned something unusable."""


class NotAuthenticatedError(EcoMonitorError):
    """Community data was requested before a successful login."""
