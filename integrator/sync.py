import logging
import threading
import time

from django.conf import settings

from integrator.entities import SyncOutcome
from integrator.exceptions import StorefrontError

logger = logging.getLogger(__name__)

BATCH_SIZE = getattr(settings, 'SYNC_BATCH_SIZE', 5)
BATCH_PAUSE = getattr(settings, 'SYNC_BATCH_PAUSE', 2.0)


class SyncSnapshot:
    """Last-synced fields per package id. Process-local, empty after a restart."""

    def __init__(self):
        self._fields = {}

    def __len__(self):
        return len(self._fields)

    def __contains__(self, package_id):
        return package_id in self._fields

    def get(self, package_id):
        return self._fields.get(package_id)

    def has_changed(self, package):
        return self._fields.get(package.package_id) != package.snapshot_fields()

    def record(self, package):
        self._fields[package.package_id] = package.snapshot_fields()


class Synchronizer:
    """Diffs the catalog against the storefront and converges the listings.

    Deletes listings whose package left the active catalog, then creates
    listings for new or changed packages in rate-limited batches. At most one
    run is in flight per instance; overlapping calls are skipped, not queued.
    """

    def __init__(self, source, storefront, ledger, snapshot=None,
                 batch_size=BATCH_SIZE, batch_pause=BATCH_PAUSE):
        self.source = source
        self.storefront = storefront
        self.ledger = ledger
        self.snapshot = snapshot if snapshot is not None else SyncSnapshot()
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self._running = threading.Lock()

    @property
    def is_running(self):
        return self._running.locked()

    def run(self):
        if not self._running.acquire(blocking=False):
            logger.info("Sync already in progress, skipping")
            return SyncOutcome.skipped()
        try:
            return self._run()
        finally:
            self._running.release()

    def _run(self):
        logger.info("Starting catalog sync")
        outcome = SyncOutcome()

        try:
            packages = self.source.list_active()
            listings = self.storefront.list_all()
        except Exception as exc:
            logger.exception("Catalog sync aborted: %s", exc)
            outcome.status = 'error'
            outcome.error_message = str(exc)
            self.ledger.log_sync(outcome, error=exc)
            raise
        outcome.skipped_invalid = self.source.skipped_invalid

        active_ids = {p.package_id for p in packages}
        # Listings without an ESIM- sku are not ours to delete
        to_delete = [
            listing for listing in listings
            if listing.package_id is not None and listing.package_id not in active_ids
        ]
        to_upsert = [p for p in packages if self.snapshot.has_changed(p)]

        outcome.total = len(packages)
        outcome.unchanged = len(packages) - len(to_upsert)
        logger.info(
            "%d packages, %d listings: %d new/changed, %d to delete",
            len(packages), len(listings), len(to_upsert), len(to_delete),
        )

        try:
            self._delete_listings(to_delete, outcome)
            self._upsert_packages(to_upsert, outcome)
        except Exception as exc:
            logger.exception("Catalog sync aborted mid-run: %s", exc)
            outcome.status = 'error'
            outcome.error_message = str(exc)
            self.ledger.log_sync(outcome, error=exc)
            raise

        logger.info(
            "Sync complete: created=%d failed=%d deleted=%d delete_errors=%d unchanged=%d",
            len(outcome.created), len(outcome.failed), len(outcome.deleted),
            len(outcome.delete_errors), outcome.unchanged,
        )
        self.ledger.log_sync(outcome)
        return outcome

    def _delete_listings(self, listings, outcome):
        for listing in listings:
            try:
                self.storefront.delete(listing.listing_id)
            except StorefrontError as exc:
                logger.error("Failed to delete listing %s (%s): %s", listing.listing_id, listing.sku, exc)
                outcome.delete_errors.append(
                    {'listing_id': listing.listing_id, 'sku': listing.sku, 'error': str(exc)}
                )
                continue
            outcome.deleted.append(listing.listing_id)
            logger.info("Deleted listing %s (%s)", listing.listing_id, listing.sku)

    def _upsert_packages(self, packages, outcome):
        for start in range(0, len(packages), self.batch_size):
            if start > 0:
                time.sleep(self.batch_pause)

            batch = packages[start:start + self.batch_size]
            logger.debug("Processing packages %d-%d", start + 1, start + len(batch))
            for package in batch:
                try:
                    self.storefront.create(package)
                except StorefrontError as exc:
                    logger.error("Failed to sync %s: %s", package.sku, exc)
                    outcome.failed.append({'sku': package.sku, 'error': str(exc)})
                    continue
                self.snapshot.record(package)
                outcome.created.append(package.sku)
                logger.info("Synced %s", package.sku)
