"""Process-wide service objects, built once from settings and wired together.

Each getter returns the same instance for the life of the process so the vendor
token and the sync snapshot survive between calls.
"""
from functools import lru_cache

from django.conf import settings
from django.utils.module_loading import import_string

from integrator.ledger import OrderLedger
from integrator.notifications import EsimMailer
from integrator.orders import OrderProcessor
from integrator.sync import Synchronizer

SOURCE_CLASS = getattr(settings, 'SYNC_SOURCE_CLASS', 'integrator.sources.catalog_source.CatalogApiSource')
STOREFRONT_CLASS = getattr(
    settings, 'SYNC_STOREFRONT_CLASS', 'integrator.clients.storefront_client.ShopifyStorefront',
)
VENDOR_CLASS = getattr(settings, 'VENDOR_CLIENT_CLASS', 'integrator.clients.vendor_client.VendorClient')


@lru_cache(maxsize=None)
def get_ledger():
    return OrderLedger()


@lru_cache(maxsize=None)
def get_vendor_client():
    return import_string(VENDOR_CLASS)()


@lru_cache(maxsize=None)
def get_synchronizer():
    return Synchronizer(
        source=import_string(SOURCE_CLASS)(),
        storefront=import_string(STOREFRONT_CLASS)(),
        ledger=get_ledger(),
    )


@lru_cache(maxsize=None)
def get_order_processor():
    return OrderProcessor(ledger=get_ledger(), vendor=get_vendor_client(), notifier=EsimMailer())


def reset_services():
    for getter in (get_ledger, get_vendor_client, get_synchronizer, get_order_processor):
        getter.cache_clear()
