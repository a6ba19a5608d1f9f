import json
from pathlib import Path

from django.conf import settings

from integrator.exceptions import SourceError

from .base import BaseSource


class JsonFileSource(BaseSource):
    """Reads a catalog envelope dumped to disk, for local runs."""

    def __init__(self, path=None):
        self.path = Path(path) if path else settings.BASE_DIR / 'catalog_data.json'

    def load(self):
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise SourceError(f"Cannot read catalog file {self.path}: {exc}") from exc

    def list_active(self) -> list:
        return self.parse_envelope(self.load())
