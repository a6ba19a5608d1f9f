import logging
from abc import ABC, abstractmethod

from integrator.exceptions import SourceError
from integrator.transforms import deduplicate, parse_package, validate_package

logger = logging.getLogger(__name__)


class BaseSource(ABC):
    # invalid entries dropped by the last parse_envelope call
    skipped_invalid = 0

    @abstractmethod
    def list_active(self) -> list:
        """Load the non-deleted catalog packages."""

    def parse_envelope(self, body) -> list:
        """Validates the vendor envelope and returns active CatalogPackages."""
        if not isinstance(body, dict):
            raise SourceError("Invalid catalog response: body is not an object")

        status = body.get('status')
        if not isinstance(status, dict) or status.get('code') != 0:
            raise SourceError(f"Invalid catalog response status: {status!r}")

        listing = body.get('listPrepaidPackageTemplate')
        templates = listing.get('template') if isinstance(listing, dict) else None
        if not isinstance(templates, list):
            raise SourceError("Invalid catalog response: missing package templates")

        packages = []
        skipped = 0
        for raw in templates:
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed package entry: %r", raw)
                skipped += 1
                continue
            is_valid, reason = validate_package(raw)
            if not is_valid:
                logger.warning("Skipping invalid package: %s", reason)
                skipped += 1
                continue
            packages.append(parse_package(raw))

        packages = deduplicate(packages)
        active = [p for p in packages if not p.deleted]
        self.skipped_invalid = skipped
        logger.info("Fetched %d packages (%d active)", len(packages), len(active))
        return active
