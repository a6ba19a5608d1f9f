import logging

import requests
from django.conf import settings

from integrator.exceptions import SourceError

from .base import BaseSource

logger = logging.getLogger(__name__)

CATALOG_BASE_URL = getattr(settings, 'CATALOG_API_BASE_URL', 'https://api.fake-catalog.test')
CATALOG_TIMEOUT = getattr(settings, 'CATALOG_API_TIMEOUT', 30)


class CatalogApiSource(BaseSource):
    def __init__(self, base_url=None, session=None):
        self.base_url = (base_url or CATALOG_BASE_URL).rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})

    def list_active(self) -> list:
        url = f"{self.base_url}/package"
        try:
            response = self.session.get(url, timeout=CATALOG_TIMEOUT)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            logger.error("Error fetching packages from %s: %s", url, exc)
            raise SourceError(f"Catalog fetch failed: {exc}") from exc
        except ValueError as exc:
            raise SourceError("Invalid catalog response: body is not JSON") from exc

        return self.parse_envelope(body)
