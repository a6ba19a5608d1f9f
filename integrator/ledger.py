import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from integrator.exceptions import LedgerError
from integrator.models import OrderRecord, SyncLog

logger = logging.getLogger(__name__)


class OrderLedger:
    """Durable order/line-item status store; the source of truth for idempotency.

    Rows are never deleted. Only the currently active (not superseded) row of an
    (order, package) pair takes part in idempotency checks.
    """

    def _active(self):
        return OrderRecord.objects.filter(superseded_at__isnull=True)

    def find(self, order_id, package_id):
        return self._active().filter(
            shopify_order_id=str(order_id), package_id=str(package_id),
        ).first()

    def for_order(self, order_id):
        return list(OrderRecord.objects.filter(shopify_order_id=str(order_id)).order_by('created_at'))

    def completed_package_ids(self, order_id):
        return set(
            self._active()
            .filter(shopify_order_id=str(order_id), status=OrderRecord.STATUS_COMPLETED)
            .values_list('package_id', flat=True)
        )

    def recent(self, limit=10):
        return list(OrderRecord.objects.order_by('-created_at')[:limit])

    def reserve(self, order_id, package_id, email, name=''):
        """Inserts a pending row, or returns None if the pair is already taken."""
        try:
            with transaction.atomic():
                return OrderRecord.objects.create(
                    shopify_order_id=str(order_id),
                    package_id=str(package_id),
                    customer_email=email,
                    customer_name=name,
                    status=OrderRecord.STATUS_PENDING,
                )
        except IntegrityError:
            logger.info("Line item %s/%s already reserved", order_id, package_id)
            return None

    def mark_completed(self, record, transaction_id, details):
        return self._transition(
            record,
            status=OrderRecord.STATUS_COMPLETED,
            vendor_transaction_id=transaction_id,
            fulfillment_details=details,
        )

    def mark_error(self, record, message):
        return self._transition(record, status=OrderRecord.STATUS_ERROR, error_message=message)

    def _transition(self, record, **fields):
        updated = OrderRecord.objects.filter(
            pk=record.pk, status=OrderRecord.STATUS_PENDING,
        ).update(updated_at=timezone.now(), **fields)
        if not updated:
            logger.error(
                "Record %s is no longer pending, refusing transition to %s",
                record.pk, fields['status'],
            )
            return False
        record.refresh_from_db()
        return True

    def supersede(self, order_id, package_id):
        """Operator action: retire a failed row so the line item can be fulfilled again."""
        with transaction.atomic():
            record = (
                self._active()
                .select_for_update()
                .filter(shopify_order_id=str(order_id), package_id=str(package_id))
                .first()
            )
            if record is None:
                raise LedgerError(f"No active record for {order_id}/{package_id}")
            if record.status != OrderRecord.STATUS_ERROR:
                raise LedgerError(f"Only failed records can be superseded, {record} is {record.status}")
            record.superseded_at = timezone.now()
            record.save(update_fields=['superseded_at', 'updated_at'])

        logger.warning("Record %s superseded by operator", record)
        return record

    def log_sync(self, outcome, error=None):
        return SyncLog.objects.create(
            total=outcome.total,
            updated=len(outcome.created),
            deleted=len(outcome.deleted),
            errors=outcome.error_count,
            unchanged=outcome.unchanged,
            details={
                'success': outcome.created,
                'errors': outcome.failed,
                'deleted': outcome.deleted,
                'delete_errors': outcome.delete_errors,
                'skipped_invalid': outcome.skipped_invalid,
            },
            status=SyncLog.STATUS_ERROR if error else SyncLog.STATUS_SUCCESS,
            error_message=str(error) if error else None,
        )
