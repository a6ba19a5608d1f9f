import logging
import time

import requests
from django.conf import settings

from integrator.entities import ListingState
from integrator.exceptions import StorefrontError
from integrator.transforms import build_product_payload

from .base import BaseStorefront, ThrottledClient

logger = logging.getLogger(__name__)

SHOP_NAME = getattr(settings, 'SHOPIFY_SHOP_NAME', 'test-shop')
SHOPIFY_ACCESS_TOKEN = getattr(settings, 'SHOPIFY_ACCESS_TOKEN', 'shpat-test-token')
SHOPIFY_API_VERSION = getattr(settings, 'SHOPIFY_API_VERSION', '2024-01')
REQUEST_TIMEOUT = getattr(settings, 'SHOPIFY_API_TIMEOUT', 30)

MIN_REQUEST_INTERVAL = 0.5
RETRY_DELAY = 2.0
MAX_CREATE_ATTEMPTS = 2
PAGE_LIMIT = 250
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def shop_base_url(shop_name, api_version):
    shop = shop_name.replace('.myshopify.com', '')
    return f"https://{shop}.myshopify.com/admin/api/{api_version}"


class ShopifyStorefront(ThrottledClient, BaseStorefront):
    min_interval = MIN_REQUEST_INTERVAL

    def __init__(self, shop_name=None, access_token=None, api_version=None):
        super().__init__()
        self.base_url = shop_base_url(shop_name or SHOP_NAME, api_version or SHOPIFY_API_VERSION)
        self.access_token = access_token or SHOPIFY_ACCESS_TOKEN
        self.session = self.make_session()

    def make_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'X-Shopify-Access-Token': self.access_token,
            'Content-Type': 'application/json',
        })
        return session

    def list_all(self) -> list:
        listings = []
        url = f"{self.base_url}/products.json"
        params = {'limit': PAGE_LIMIT}

        while url:
            self.throttle()
            try:
                response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
                response.raise_for_status()
                products = response.json().get('products', [])
            except (requests.RequestException, ValueError) as exc:
                raise StorefrontError(f"Listing products failed: {exc}",
                                      _status_of(exc)) from exc

            listings.extend(_listing_from_product(p) for p in products)
            # page_info cursors already carry the limit
            url = response.links.get('next', {}).get('url')
            params = None

        logger.info("Storefront has %d listings", len(listings))
        return listings

    def create(self, package):
        payload = build_product_payload(package)
        url = f"{self.base_url}/products.json"

        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            self.throttle()
            try:
                response = self.session.post(url, json=payload, timeout=REQUEST_TIMEOUT)
            except (requests.ConnectionError, requests.Timeout) as exc:
                error, retryable = StorefrontError(f"Create {package.sku} failed: {exc}"), True
            except requests.RequestException as exc:
                raise StorefrontError(f"Create {package.sku} failed: {exc}", _status_of(exc)) from exc
            else:
                if response.ok:
                    try:
                        return _listing_from_product(response.json()['product'])
                    except (ValueError, KeyError, TypeError) as exc:
                        raise StorefrontError(
                            f"Create {package.sku}: unexpected response body", response.status_code,
                        ) from exc
                error = StorefrontError(
                    f"Create {package.sku} failed with HTTP {response.status_code}: "
                    f"{response.text[:200]}",
                    response.status_code,
                )
                retryable = response.status_code in RETRYABLE_STATUS

            if not retryable or attempt == MAX_CREATE_ATTEMPTS:
                raise error
            logger.warning(
                "Create %s failed (%s), attempt %d/%d, waiting %.1fs",
                package.sku, error, attempt, MAX_CREATE_ATTEMPTS, RETRY_DELAY,
            )
            time.sleep(RETRY_DELAY)

    def delete(self, listing_id):
        self.throttle()
        url = f"{self.base_url}/products/{listing_id}.json"
        try:
            response = self.session.delete(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StorefrontError(f"Delete {listing_id} failed: {exc}",
                                  _status_of(exc)) from exc


def _status_of(exc):
    response = getattr(exc, 'response', None)
    return response.status_code if response is not None else None


def _listing_from_product(product):
    variants = product.get('variants') or [{}]
    first = variants[0]
    return ListingState(
        listing_id=product['id'],
        sku=first.get('sku') or '',
        title=product.get('title', ''),
        price=str(first.get('price', '')),
    )
