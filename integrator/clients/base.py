import time
from abc import ABC, abstractmethod

import requests


class ThrottledClient:
    """Keeps at least `min_interval` seconds between two outbound calls."""

    min_interval = 0.0

    def __init__(self):
        self._last_request_at = None

    def throttle(self):
        now = time.monotonic()
        if self._last_request_at is not None:
            wait = self.min_interval - (now - self._last_request_at)
            if wait > 0:
                time.sleep(wait)
        self._last_request_at = time.monotonic()


class BaseStorefront(ABC):
    @abstractmethod
    def make_session(self) -> requests.Session:
        """Create and configure an HTTP session with auth headers."""

    @abstractmethod
    def list_all(self) -> list:
        """Return every listing currently on the storefront."""

    @abstractmethod
    def create(self, package):
        """Create a listing for a catalog package and return its ListingState."""

    @abstractmethod
    def delete(self, listing_id):
        """Remove a listing."""
