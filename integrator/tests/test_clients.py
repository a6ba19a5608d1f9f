import json
import time
from unittest.mock import patch

import requests
import responses
from django.test import TestCase

from integrator.clients.storefront_client import ShopifyStorefront
from integrator.clients.vendor_client import VendorClient
from integrator.entities import CatalogPackage
from integrator.exceptions import AuthError, NetworkError, StorefrontError, VendorError

SHOP_URL = "https://test-shop.myshopify.com/admin/api/2024-01"
VENDOR_URL = "https://vendor.test"


def _package(package_id="131519", cost=950):
    return CatalogPackage(
        package_id=package_id, name="Turkey 5GB", country_label="Turkey",
        cost_minor_units=cost, data_bytes=5368709120, period_days=30, sponsor_name="Turkcell",
    )


def _product(product_id, sku):
    return {"id": product_id, "title": "Turkey eSIM Package", "variants": [{"sku": sku, "price": "9.50"}]}


def _purchase_body(code=0, message="OK"):
    return {
        "status": {"code": code, "message": message},
        "transactionid": "T1",
        "qrcode": "iVBORw0KGgo=",
        "activationcode": "LPA:1$smdp.test$ABC",
        "iccid": "8990000000000000001",
        "packagename": "Turkey 5GB",
        "databyte": 5368709120,
        "validitydays": 30,
        "networkname": "Turkcell",
    }


class TestStorefrontCreate(TestCase):
    def setUp(self):
        self.storefront = ShopifyStorefront(shop_name="test-shop", access_token="shpat-x")

    @responses.activate
    def test_create_posts_product(self):
        responses.add(
            responses.POST, f"{SHOP_URL}/products.json",
            json={"product": _product(1001, "ESIM-131519")}, status=201,
        )

        with patch('integrator.clients.base.time.sleep'):
            listing = self.storefront.create(_package())

        self.assertEqual(listing.listing_id, 1001)
        self.assertEqual(listing.package_id, "131519")
        request = responses.calls[0].request
        self.assertEqual(request.headers['X-Shopify-Access-Token'], 'shpat-x')
        sent = json.loads(request.body)
        self.assertEqual(sent['product']['variants'][0]['sku'], "ESIM-131519")

    @responses.activate
    def test_retry_once_on_429(self):
        responses.add(responses.POST, f"{SHOP_URL}/products.json", json={"errors": "throttled"}, status=429)
        responses.add(
            responses.POST, f"{SHOP_URL}/products.json",
            json={"product": _product(1001, "ESIM-131519")}, status=201,
        )

        with patch('integrator.clients.storefront_client.time.sleep') as sleep:
            listing = self.storefront.create(_package())

        self.assertEqual(listing.listing_id, 1001)
        self.assertEqual(len(responses.calls), 2)
        sleep.assert_any_call(2.0)

    @responses.activate
    def test_5xx_retries_only_once(self):
        for _ in range(3):
            responses.add(responses.POST, f"{SHOP_URL}/products.json", json={"errors": "boom"}, status=500)

        with patch('integrator.clients.storefront_client.time.sleep'):
            with self.assertRaises(StorefrontError) as ctx:
                self.storefront.create(_package())

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(len(responses.calls), 2)

    @responses.activate
    def test_validation_error_not_retried(self):
        responses.add(
            responses.POST, f"{SHOP_URL}/products.json",
            json={"errors": {"title": ["can't be blank"]}}, status=422,
        )

        with patch('integrator.clients.storefront_client.time.sleep'):
            with self.assertRaises(StorefrontError):
                self.storefront.create(_package())

        self.assertEqual(len(responses.calls), 1)

    @responses.activate
    def test_broken_transfer_is_storefront_error(self):
        responses.add(
            responses.POST, f"{SHOP_URL}/products.json",
            body=requests.exceptions.ChunkedEncodingError("connection broken"),
        )

        with patch('integrator.clients.storefront_client.time.sleep'):
            with self.assertRaises(StorefrontError):
                self.storefront.create(_package())

        self.assertEqual(len(responses.calls), 1)

    @responses.activate
    def test_list_body_is_storefront_error(self):
        responses.add(responses.POST, f"{SHOP_URL}/products.json", json=[], status=201)

        with patch('integrator.clients.storefront_client.time.sleep'):
            with self.assertRaises(StorefrontError) as ctx:
                self.storefront.create(_package())

        self.assertEqual(ctx.exception.status_code, 201)


class TestStorefrontListAndDelete(TestCase):
    def setUp(self):
        self.storefront = ShopifyStorefront(shop_name="test-shop.myshopify.com", access_token="shpat-x")

    @responses.activate
    def test_list_follows_pagination(self):
        next_url = f"{SHOP_URL}/products.json?limit=250&page_info=abc"
        responses.add(
            responses.GET, f"{SHOP_URL}/products.json",
            json={"products": [_product(1, "ESIM-A")]},
            headers={"Link": f'<{next_url}>; rel="next"'},
        )
        responses.add(
            responses.GET, f"{SHOP_URL}/products.json",
            json={"products": [_product(2, "ESIM-B"), _product(3, "SHIRT-1")]},
        )

        with patch('integrator.clients.base.time.sleep'):
            listings = self.storefront.list_all()

        self.assertEqual([l.sku for l in listings], ["ESIM-A", "ESIM-B", "SHIRT-1"])
        self.assertEqual([l.package_id for l in listings], ["A", "B", None])
        self.assertIn("page_info=abc", responses.calls[1].request.url)

    @responses.activate
    def test_list_failure_raises(self):
        responses.add(responses.GET, f"{SHOP_URL}/products.json", json={"errors": "x"}, status=401)

        with self.assertRaises(StorefrontError):
            self.storefront.list_all()

    @responses.activate
    def test_delete(self):
        responses.add(responses.DELETE, f"{SHOP_URL}/products/77.json", json={}, status=200)

        self.storefront.delete(77)

        self.assertEqual(len(responses.calls), 1)

    @responses.activate
    def test_delete_failure_raises(self):
        responses.add(responses.DELETE, f"{SHOP_URL}/products/77.json", json={"errors": "Not Found"}, status=404)

        with self.assertRaises(StorefrontError) as ctx:
            self.storefront.delete(77)

        self.assertEqual(ctx.exception.status_code, 404)


class TestThrottle(TestCase):
    def test_waits_for_minimum_interval(self):
        storefront = ShopifyStorefront(shop_name="test-shop", access_token="shpat-x")
        with patch('integrator.clients.base.time.monotonic', side_effect=[100.0, 100.0, 100.2, 100.5]), \
                patch('integrator.clients.base.time.sleep') as sleep:
            storefront.throttle()
            storefront.throttle()

        sleep.assert_called_once()
        self.assertAlmostEqual(sleep.call_args[0][0], 0.3)

    def test_no_wait_after_interval_elapsed(self):
        storefront = ShopifyStorefront(shop_name="test-shop", access_token="shpat-x")
        with patch('integrator.clients.base.time.monotonic', side_effect=[100.0, 100.0, 101.0, 101.0]), \
                patch('integrator.clients.base.time.sleep') as sleep:
            storefront.throttle()
            storefront.throttle()

        sleep.assert_not_called()


class TestVendorAuthentication(TestCase):
    def setUp(self):
        self.vendor = VendorClient(base_url=VENDOR_URL, identifier="dealer", password="secret")

    @responses.activate
    def test_authenticate_stores_token(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})

        token = self.vendor.authenticate()

        self.assertEqual(token, "tok-1")
        self.assertTrue(self.vendor.token_is_valid())
        self.assertEqual(
            json.loads(responses.calls[0].request.body),
            {"identifier": "dealer", "password": "secret"},
        )

    @responses.activate
    def test_rejected_credentials(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"error": "bad"}, status=400)

        with self.assertRaises(AuthError):
            self.vendor.authenticate()
        self.assertIsNone(self.vendor.token)

    @responses.activate
    def test_missing_jwt(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"user": {}})

        with self.assertRaisesRegex(AuthError, "No JWT"):
            self.vendor.authenticate()

    def test_missing_credentials_fail_without_request(self):
        vendor = VendorClient(base_url=VENDOR_URL, identifier="", password="")
        with self.assertRaises(AuthError):
            vendor.authenticate()

    @responses.activate
    def test_check_and_refresh_reuses_valid_token(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})

        self.vendor.check_and_refresh()
        self.vendor.check_and_refresh()

        self.assertEqual(len(responses.calls), 1)

    @responses.activate
    def test_check_and_refresh_renews_expired_token(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-2"})

        self.vendor.check_and_refresh()
        self.vendor.token_expires_at = time.monotonic() - 1
        self.vendor.check_and_refresh()

        self.assertEqual(self.vendor.token, "tok-2")

    @responses.activate
    def test_forced_refresh(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})

        self.vendor.check_and_refresh()
        self.vendor.check_and_refresh(force=True)

        self.assertEqual(len(responses.calls), 2)


class TestVendorPurchase(TestCase):
    def setUp(self):
        self.vendor = VendorClient(
            base_url=VENDOR_URL, identifier="dealer", password="secret", dealer_id="D1",
        )

    @responses.activate
    def test_successful_purchase(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", json=_purchase_body())

        result = self.vendor.purchase("131519", "a@b.com")

        self.assertEqual(result.transaction_id, "T1")
        self.assertEqual(result.esim_data['iccid'], "8990000000000000001")
        self.assertEqual(result.esim_data['package_details']['network'], "Turkcell")
        request = responses.calls[1].request
        self.assertEqual(request.headers['Authorization'], "Bearer tok-1")
        sent = json.loads(request.body)['data']
        self.assertEqual(sent['packageId'], "131519")
        self.assertEqual(sent['dealerId'], "D1")
        self.assertEqual(sent['customerName'], "a")

    @responses.activate
    def test_non_zero_status_is_vendor_error(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(
            responses.POST, f"{VENDOR_URL}/api/purchaseb2b",
            json=_purchase_body(code=12, message="Insufficient balance"),
        )

        with self.assertRaises(VendorError) as ctx:
            self.vendor.purchase("131519", "a@b.com", "Ada Lovelace")

        self.assertEqual(ctx.exception.code, 12)
        self.assertEqual(ctx.exception.message, "Insufficient balance")
        self.assertEqual(len(responses.calls), 2)

    @responses.activate
    def test_401_reauthenticates_and_retries_once(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", json={}, status=401)
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-2"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", json=_purchase_body())

        result = self.vendor.purchase("131519", "a@b.com")

        self.assertEqual(result.transaction_id, "T1")
        self.assertEqual(responses.calls[3].request.headers['Authorization'], "Bearer tok-2")

    @responses.activate
    def test_repeated_401_surfaces_auth_error(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", json={}, status=401)

        with self.assertRaises(AuthError):
            self.vendor.purchase("131519", "a@b.com")

        purchase_calls = [c for c in responses.calls if c.request.url.endswith("purchaseb2b")]
        self.assertEqual(len(purchase_calls), 2)

    @responses.activate
    def test_connection_errors_retried_with_linear_backoff(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", body=requests.ConnectionError("reset"))
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", body=requests.ConnectionError("reset"))
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", json=_purchase_body())

        with patch('integrator.clients.vendor_client.time.sleep') as sleep:
            result = self.vendor.purchase("131519", "a@b.com")

        self.assertEqual(result.transaction_id, "T1")
        self.assertEqual([c[0][0] for c in sleep.call_args_list], [1.0, 2.0])

    @responses.activate
    def test_connection_errors_exhaust_retries(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", body=requests.ConnectionError("down"))

        with patch('integrator.clients.vendor_client.time.sleep') as sleep:
            with self.assertRaises(NetworkError):
                self.vendor.purchase("131519", "a@b.com")

        self.assertEqual([c[0][0] for c in sleep.call_args_list], [1.0, 2.0, 3.0])

    @responses.activate
    def test_read_timeout_not_retried(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", body=requests.ReadTimeout("slow"))

        with patch('integrator.clients.vendor_client.time.sleep') as sleep:
            with self.assertRaises(NetworkError):
                self.vendor.purchase("131519", "a@b.com")

        sleep.assert_not_called()

    @responses.activate
    def test_http_error_is_vendor_error(self):
        responses.add(responses.POST, f"{VENDOR_URL}/api/auth/local", json={"jwt": "tok-1"})
        responses.add(responses.POST, f"{VENDOR_URL}/api/purchaseb2b", body="bad gateway", status=502)

        with self.assertRaises(VendorError) as ctx:
            self.vendor.purchase("131519", "a@b.com")

        self.assertEqual(ctx.exception.code, 502)
