import logging

from integrator.entities import package_id_from_sku
from integrator.models import OrderRecord

logger = logging.getLogger(__name__)


def customer_name_of(order):
    customer = order.get('customer') or {}
    first_name = customer.get('first_name')
    if not first_name:
        return ''
    return f"{first_name} {customer.get('last_name') or ''}".strip()


def fulfillable_items(order):
    """Returns (package_id, title) for every line item carrying an ESIM- sku."""
    items = []
    for item in order.get('line_items') or []:
        package_id = package_id_from_sku(item.get('sku'))
        if package_id is None:
            logger.debug("Ignoring non-eSIM line item %r", item.get('sku'))
            continue
        items.append((package_id, item.get('title', '')))
    return items


class OrderProcessor:
    """Turns storefront orders into vendor purchases, at most once per line item.

    A pending ledger row is written before the vendor is called; that row is the
    reservation that keeps a concurrent or repeated delivery of the same order
    from buying the same package again.
    """

    def __init__(self, ledger, vendor, notifier):
        self.ledger = ledger
        self.vendor = vendor
        self.notifier = notifier

    def handle_order(self, order):
        order_id = order['id']
        items = fulfillable_items(order)
        logger.info("Processing order %s (%d eSIM line items)", order_id, len(items))

        package_ids = {package_id for package_id, _ in items}
        if package_ids and package_ids <= self.ledger.completed_package_ids(order_id):
            logger.info("Order %s already processed", order_id)
            return {'already_processed': True, 'fulfilled': [], 'skipped': sorted(package_ids)}

        result = {'already_processed': False, 'fulfilled': [], 'skipped': []}
        email = order.get('email') or ''
        name = customer_name_of(order)

        for package_id, title in items:
            existing = self.ledger.find(order_id, package_id)
            if existing is not None:
                if existing.status == OrderRecord.STATUS_ERROR:
                    logger.warning(
                        "Line item %s/%s failed earlier and awaits operator action",
                        order_id, package_id,
                    )
                else:
                    logger.info("Line item %s/%s already %s", order_id, package_id, existing.status)
                result['skipped'].append(package_id)
                continue

            record = self.ledger.reserve(order_id, package_id, email, name)
            if record is None:
                result['skipped'].append(package_id)
                continue

            self._fulfill(record, order, title)
            result['fulfilled'].append(package_id)

        return result

    def _fulfill(self, record, order, title):
        try:
            purchase = self.vendor.purchase(
                record.package_id, record.customer_email, record.customer_name,
            )
        except Exception as exc:
            logger.error("Purchase failed for %s/%s: %s", record.shopify_order_id, record.package_id, exc)
            self.ledger.mark_error(record, str(exc))
            raise

        self.ledger.mark_completed(record, purchase.transaction_id, purchase.esim_data)
        logger.info(
            "Fulfilled %s/%s (transaction %s)",
            record.shopify_order_id, record.package_id, purchase.transaction_id,
        )

        try:
            self.notifier.send(
                record.customer_email,
                purchase.esim_data,
                {
                    'order_number': order.get('order_number'),
                    'package_name': title,
                    'transaction_id': purchase.transaction_id,
                },
            )
        except Exception:
            # Fulfillment already happened; the record stays completed
            logger.exception(
                "Notification failed for %s/%s", record.shopify_order_id, record.package_id,
            )
