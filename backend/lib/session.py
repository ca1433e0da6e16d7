"""
Session state for the dashboard.

A session is either logged out (empty store) or logged in with one complete
CommunityData snapshot. Login swaps the whole snapshot in at once; logout
throws it away. Nothing is ever updated record by record.
"""
import logging
import threading
from typing import Optional

from backend.lib.eco_village_core.errors import NotAuthenticatedError
from backend.lib.eco_village_core.models import CommunityData

logger = logging.getLogger(__name__)


class UsageStore:
    """In-memory holder of the current session's residents, dwellings and usage."""

    def __init__(self):
        self._data: Optional[CommunityData] = None

    @property
    def loaded(self) -> bool:
        return self._data is not None

    def replace(self, data: CommunityData):
        self._data = CommunityData(
            residents=tuple(data.residents),
            dwellings=tuple(data.dwellings),
            usage=tuple(data.usage),
        )

    def clear(self):
        self._data = None

    def snapshot(self) -> CommunityData:
        if self._data is None:
            raise NotAuthenticatedError("No community data loaded; log in first")
        return self._data


class DashboardSession:
    """
    Unauthenticated -> Authenticated, back to Unauthenticated on logout.

    `sources` maps a source name ("emporia", "simulation") to a zero-argument
    factory returning a data source. Every source offers the same two calls,
    login(email, password) and fetch_community_data(days), so nothing
    downstream knows which one is active.
    """

    def __init__(self, sources: dict, default_source: str = "simulation", history_days: int = 30):
        self.sources = sources
        self.default_source = default_source
        self.history_days = history_days
        self.store = UsageStore()
        self.source = None
        self.source_name = None
        self.email = None
        self._lock = threading.Lock()

    @property
    def authenticated(self) -> bool:
        return self.store.loaded

    def login(self, email: str, password: str, source_name: str = None) -> CommunityData:
        """
        Authenticate against the chosen source and load its data.

        Either everything is loaded or nothing is: if login or the bulk fetch
        raises, the session stays logged out and the error propagates.
        """
        source_name = source_name or self.default_source
        if source_name not in self.sources:
            raise ValueError(f"Unknown data source: {source_name}")

        source = self.sources[source_name]()
        source.login(email, password)
        data = source.fetch_community_data(days=self.history_days)

        with self._lock:
            self.store.replace(data)
            self.source = source
            self.source_name = source_name
            self.email = email
        logger.info(
            "Session started via %s: %d residents, %d dwellings, %d records",
            source_name, len(data.residents), len(data.dwellings), len(data.usage),
        )
        return self.store.snapshot()

    def logout(self):
        with self._lock:
            if self.source is not None and hasattr(self.source, "logout"):
                self.source.logout()
            self.store.clear()
            self.source = None
            self.source_name = None
            self.email = None
        logger.info("Session cleared")

    def data(self) -> CommunityData:
        with self._lock:
            return self.store.snapshot()
