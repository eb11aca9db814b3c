import json

import httpx
from django.test import SimpleTestCase

from commerce.bigcommerce import BigCommerceClient
from commerce.exceptions import CommerceAPIError, CommerceConfigError


def _client(handler):
    client = BigCommerceClient(store_hash="abc123", access_token="token", channel_id=7)
    transport = httpx.MockTransport(handler)

    def _http():
        return httpx.Client(
            base_url=client.base_url,
            transport=transport,
            headers={"X-Auth-Token": client.access_token},
        )

    client._http = _http
    return client


class BigCommerceClientTests(SimpleTestCase):
    """
    GUARANTEES:
    - Missing credentials fail before any request
    - Non-2xx responses carry the HTTP status in the error message
    - Transport failures are reported as network / timeout errors
    - Catalog listing follows pagination
    """

    def test_unconfigured_client_raises(self):
        with self.assertRaises(CommerceConfigError):
            BigCommerceClient(store_hash="", access_token="").get_cart("c1")

    def test_create_cart_posts_channel_and_line_items(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["token"] = request.headers["X-Auth-Token"]
            return httpx.Response(200, json={"data": {"id": "cart-1", "redirect_urls": {}}})

        data = _client(handler).create_cart([{"product_id": 5, "quantity": 2, "list_price": "9.99"}])

        self.assertEqual(data["id"], "cart-1")
        self.assertIn("/stores/abc123/v3/carts", seen["url"])
        self.assertIn("include=redirect_urls", seen["url"])
        self.assertEqual(seen["body"]["channel_id"], 7)
        self.assertEqual(seen["token"], "token")

    def test_http_error_message_includes_status(self):
        def handler(request):
            return httpx.Response(503, json={"title": "Service Unavailable"})

        with self.assertRaises(CommerceAPIError) as ctx:
            _client(handler).get_cart("c1")

        self.assertEqual(str(ctx.exception), "BigCommerce HTTP 503: Service Unavailable")
        self.assertEqual(ctx.exception.status, 503)

    def test_network_and_timeout_errors(self):
        def refused(request):
            raise httpx.ConnectError("ECONNREFUSED", request=request)

        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with self.assertRaisesRegex(CommerceAPIError, "network error"):
            _client(refused).get_cart("c1")
        with self.assertRaisesRegex(CommerceAPIError, "timeout"):
            _client(slow).get_cart("c1")

    def test_non_json_body_is_an_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with self.assertRaisesRegex(CommerceAPIError, "non-JSON"):
            _client(handler).get_cart("c1")

    def test_iter_products_walks_pages(self):
        def handler(request):
            page = int(request.url.params["page"])
            return httpx.Response(
                200,
                json={
                    "data": [{"id": page * 10}, {"id": page * 10 + 1}],
                    "meta": {"pagination": {"total_pages": 2, "current_page": page}},
                },
            )

        ids = [item["id"] for item in _client(handler).iter_products(limit=2)]

        self.assertEqual(ids, [10, 11, 20, 21])
