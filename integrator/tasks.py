import logging

from celery import shared_task

from integrator.services import get_order_processor, get_synchronizer

logger = logging.getLogger(__name__)


@shared_task
def sync_catalog():
    return get_synchronizer().run().as_dict()


@shared_task
def process_order(order):
    logger.info("Processing order %s from queue", order.get('id'))
    return get_order_processor().handle_order(order)
