import logging
import time

import requests
from django.conf import settings

from integrator.entities import PurchaseResult
from integrator.exceptions import AuthError, NetworkError, VendorError

logger = logging.getLogger(__name__)

VENDOR_BASE_URL = getattr(settings, 'VENDOR_API_BASE_URL', 'https://api.fake-vendor.test')
VENDOR_IDENTIFIER = getattr(settings, 'VENDOR_IDENTIFIER', '')
VENDOR_PASSWORD = getattr(settings, 'VENDOR_PASSWORD', '')
VENDOR_DEALER_ID = getattr(settings, 'VENDOR_DEALER_ID', '')
REQUEST_TIMEOUT = getattr(settings, 'VENDOR_API_TIMEOUT', 30)

AUTH_PATH = '/api/auth/local'
PURCHASE_PATH = '/api/purchaseb2b'

# The vendor does not report token expiry
TOKEN_TTL = 60 * 60
MAX_NETWORK_RETRIES = 3
RETRY_BACKOFF = 1.0
MAX_REAUTH_RETRIES = 1


class VendorClient:
    """Authenticated purchase calls against the eSIM fulfillment vendor."""

    def __init__(self, base_url=None, identifier=None, password=None, dealer_id=None):
        self.base_url = (base_url or VENDOR_BASE_URL).rstrip('/')
        self.identifier = identifier if identifier is not None else VENDOR_IDENTIFIER
        self.password = password if password is not None else VENDOR_PASSWORD
        self.dealer_id = dealer_id if dealer_id is not None else VENDOR_DEALER_ID
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })
        self.token = None
        self.token_expires_at = None

    def authenticate(self):
        if not self.identifier or not self.password:
            raise AuthError("Vendor credentials are not configured")

        self.token = None
        response = self._send(
            AUTH_PATH,
            {'identifier': self.identifier, 'password': self.password},
            authenticated=False,
        )
        if response.status_code in (400, 401, 403):
            logger.error("Vendor authentication rejected (HTTP %d)", response.status_code)
            raise AuthError(f"Vendor rejected credentials (HTTP {response.status_code})")
        if not response.ok:
            raise AuthError(f"Vendor authentication failed (HTTP {response.status_code})")

        try:
            token = response.json().get('jwt')
        except (ValueError, AttributeError):
            token = None
        if not token:
            raise AuthError("No JWT in vendor auth response")

        self.token = token
        self.token_expires_at = time.monotonic() + TOKEN_TTL
        logger.info("Authenticated with vendor at %s", self.base_url)
        return token

    def token_is_valid(self):
        return (
            self.token is not None
            and self.token_expires_at is not None
            and time.monotonic() < self.token_expires_at
        )

    def check_and_refresh(self, force=False):
        if force or not self.token_is_valid():
            self.authenticate()
        return self.token

    def purchase(self, package_id, email, name=''):
        self.check_and_refresh()

        customer_name = name or email.split('@')[0]
        request_data = {
            'data': {
                'packageId': str(package_id),
                'price': 0,
                'dealerId': self.dealer_id,
                'packageName': '',
                'status': '',
                'customerName': customer_name,
            }
        }
        logger.info("Purchasing package %s for %s", package_id, email)

        for attempt in range(MAX_REAUTH_RETRIES + 1):
            response = self._send(PURCHASE_PATH, request_data)
            if response.status_code != 401:
                break
            if attempt == MAX_REAUTH_RETRIES:
                raise AuthError("Vendor rejected a freshly issued token")
            logger.warning("Vendor token expired during purchase of %s, re-authenticating", package_id)
            self.authenticate()

        if not response.ok:
            raise VendorError(response.status_code, response.text[:200] or response.reason)

        try:
            body = response.json()
        except ValueError as exc:
            raise VendorError('invalid-response', "Purchase response is not JSON") from exc

        status = body.get('status') if isinstance(body, dict) else None
        if not isinstance(status, dict) or status.get('code') != 0:
            status = status if isinstance(status, dict) else {}
            raise VendorError(status.get('code'), status.get('message') or 'Purchase failed')

        return PurchaseResult(
            transaction_id=body.get('transactionid'),
            esim_data={
                'qr_code': body.get('qrcode'),
                'activation_code': body.get('activationcode'),
                'iccid': body.get('iccid'),
                'package_details': {
                    'name': body.get('packagename'),
                    'data': body.get('databyte'),
                    'validity': body.get('validitydays'),
                    'network': body.get('networkname'),
                },
            },
        )

    def _send(self, path, payload, authenticated=True):
        url = f"{self.base_url}{path}"
        headers = {'Authorization': f"Bearer {self.token}"} if authenticated else {}

        for attempt in range(MAX_NETWORK_RETRIES + 1):
            try:
                return self.session.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
            except requests.ConnectionError as exc:
                if attempt == MAX_NETWORK_RETRIES:
                    raise NetworkError(
                        f"Vendor unreachable after {MAX_NETWORK_RETRIES} retries: {exc}"
                    ) from exc
                delay = RETRY_BACKOFF * (attempt + 1)
                logger.warning(
                    "Vendor connection error on %s, attempt %d/%d, waiting %.1fs",
                    path, attempt + 1, MAX_NETWORK_RETRIES, delay,
                )
                time.sleep(delay)
            except requests.Timeout as exc:
                # the vendor may already have acted on the request
                raise NetworkError(f"Vendor timed out on {path}: {exc}") from exc
