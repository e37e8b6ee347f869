# ============================================================================
# API ROUTE TESTS
# ============================================================================
# STATUS: Tests - HTTP surface end to end (in-memory broker)
# PURPOSE: Verify admission order, status codes and the error envelope
# ============================================================================
"""
API Route Tests

Tests the FastAPI application built by main.create_app() using
TestClient, the in-memory queue backend and mocked collaborators.

Run with:
    pytest tests/test_routes.py -v
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from core.config import DispatchPolicy, GatewayConfig
from infrastructure.queue_registry import QueueRegistry
from main import create_app
from security.auth import group_query_items
from security.signature import sign


API_KEY = "operator-key-123"
SECRET = "proxy-secret"
AUTH = {"x-api-key": API_KEY}


# ============================================================================
# FIXTURES
# ============================================================================

def _make_config(**overrides):
    values = dict(
        env="development",
        internal_api_key=API_KEY,
        shopify_api_secret=SECRET,
        queue_enabled=True,
        queue_backend="memory",
    )
    values.update(overrides)
    return GatewayConfig(**values)


def _make_client(config=None, raise_server_exceptions=True, **collaborators):
    app = create_app(config or _make_config(), **collaborators)
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


def _signed(params, secret=SECRET):
    items = list(params)
    return items + [("signature", sign(group_query_items(items), secret))]


PROXY_BASE = [
    ("shop", "demo.myshopify.com"),
    ("path_prefix", "/apps/bunjang"),
    ("timestamp", "1700000000"),
]


def _assert_envelope(response, status_code, error_code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["status"] == "error"
    assert body["errorCode"] == error_code
    assert isinstance(body["message"], str)
    return body


# ============================================================================
# SYNC TRIGGERS
# ============================================================================

class TestSyncRoutes:
    """Tests for the operator sync trigger endpoints."""

    def test_full_catalog_accepted(self):
        response = _make_client().post("/api/sync/catalog/full", headers=AUTH)

        assert response.status_code == 202
        body = response.json()
        assert body["queueName"] == "catalog-processing-queue"
        assert body["jobName"] == "ManualTrigger-FetchBunjangCatalog-Full"
        assert body["jobId"]
        assert body["duplicate"] is False
        assert body["timestamp"].endswith("Z")

    def test_segment_catalog_accepted(self):
        response = _make_client().post("/api/sync/catalog/segment", headers=AUTH)

        assert response.status_code == 202
        assert response.json()["jobName"] == "ManualTrigger-FetchBunjangCatalog-Segment"

    def test_single_product_accepted(self):
        response = _make_client().post("/api/sync/product/123456", headers=AUTH)

        assert response.status_code == 202
        body = response.json()
        assert body["bunjangPid"] == "123456"
        assert body["queueName"] == "product-sync-queue"
        assert body["jobId"].startswith("manual-single-product-123456-")

    def test_repeated_resync_distinct_jobs(self):
        client = _make_client()

        first = client.post("/api/sync/product/42", headers=AUTH).json()
        second = client.post("/api/sync/product/42", headers=AUTH).json()

        assert first["jobId"] != second["jobId"]

    def test_request_id_header_reaches_dispatcher(self):
        client = _make_client()
        services = client.app.state.services
        services.dispatcher = MagicMock(wraps=services.dispatcher)

        response = client.post(
            "/api/sync/catalog/full", headers={**AUTH, "X-Request-ID": "ops-run-17"},
        )

        assert response.status_code == 202
        context = services.dispatcher.trigger_full_catalog_sync.call_args.args[0]
        assert context.request_id == "ops-run-17"
        assert context.client_identity.startswith("key:")

    def test_malformed_request_id_replaced(self):
        client = _make_client()
        services = client.app.state.services
        services.dispatcher = MagicMock(wraps=services.dispatcher)

        client.post("/api/sync/catalog/segment", headers={**AUTH, "X-Request-ID": "bad id with spaces"})

        context = services.dispatcher.trigger_segment_catalog_sync.call_args.args[0]
        assert context.request_id != "bad id with spaces"
        assert len(context.request_id) == 16

    def test_single_flight_duplicate_still_accepted(self):
        client = _make_client(_make_config(
            dispatch_policy=DispatchPolicy(product_sync_single_flight=True),
        ))

        client.post("/api/sync/product/42", headers=AUTH)
        response = client.post("/api/sync/product/42", headers=AUTH)

        assert response.status_code == 202
        assert response.json()["duplicate"] is True
        assert response.json()["jobId"] == "manual-single-product-42"

    def test_api_key_query_parameter(self):
        response = _make_client().post(f"/api/sync/catalog/full?apiKey={API_KEY}")
        assert response.status_code == 202

    def test_missing_key(self):
        response = _make_client().post("/api/sync/catalog/full")
        _assert_envelope(response, 401, "API_KEY_MISSING")

    def test_wrong_key(self):
        response = _make_client().post("/api/sync/catalog/full", headers={"x-api-key": "nope"})
        _assert_envelope(response, 403, "API_KEY_INVALID")

    def test_auth_before_validation(self):
        response = _make_client().post("/api/sync/product/bad!pid")
        body = _assert_envelope(response, 401, "API_KEY_MISSING")
        assert "details" not in body

    def test_invalid_pid(self):
        response = _make_client().post("/api/sync/product/bad!pid", headers=AUTH)

        body = _assert_envelope(response, 422, "VALIDATION_FAILED")
        assert body["details"][0]["field"] == "bunjangPid"
        assert body["details"][0]["value"] == "bad!pid"

    def test_queue_disabled(self):
        client = _make_client(_make_config(queue_enabled=False))
        response = client.post("/api/sync/catalog/full", headers=AUTH)
        _assert_envelope(response, 503, "QUEUE_SYSTEM_DISABLED")

    def test_queue_unavailable(self):
        # Service Bus selected but neither connection string nor namespace set
        client = _make_client(_make_config(queue_backend="servicebus"))

        response = client.post("/api/sync/product/1", headers=AUTH)

        body = _assert_envelope(response, 503, "QUEUE_INSTANCE_UNAVAILABLE")
        assert body["details"]["queueName"] == "product-sync-queue"

    def test_production_hides_details(self):
        client = _make_client(_make_config(env="production", queue_backend="servicebus"))

        response = client.post("/api/sync/product/1", headers=AUTH)

        body = _assert_envelope(response, 503, "QUEUE_INSTANCE_UNAVAILABLE")
        assert "details" not in body

    def test_submission_failure_code(self):
        handle = MagicMock()
        handle.add.side_effect = RuntimeError("broker went away")
        client = _make_client()
        client.app.state.services.dispatcher.registry = QueueRegistry(lambda name: handle)

        response = client.post("/api/sync/catalog/segment", headers=AUTH)

        body = _assert_envelope(response, 500, "QUEUE_JOB_ADD_FAILED_SEGMENT_CATALOG")
        assert "broker went away" not in response.text
        assert body["details"]["jobName"] == "ManualTrigger-FetchBunjangCatalog-Segment"

    def test_server_key_unset(self):
        client = _make_client(_make_config(internal_api_key=None))
        response = client.post("/api/sync/catalog/full", headers=AUTH)
        _assert_envelope(response, 500, "AUTH_NOT_CONFIGURED_ON_SERVER")


# ============================================================================
# PRICE UTILS
# ============================================================================

class TestPriceRoutes:
    """Tests for the non-production price preview."""

    def _calculator(self):
        calculator = MagicMock()
        calculator.calculate_shopify_price.return_value = {"shopifyPrice": 9.99, "currency": "USD"}
        return calculator

    def test_delegates_coerced_values(self):
        calculator = self._calculator()
        client = _make_client(price_calculator=calculator)

        response = client.get(
            "/api/price-utils/calculate-shopify?krwPrice=10000&krwShippingFee=3000",
            headers=AUTH,
        )

        assert response.status_code == 200
        calculator.calculate_shopify_price.assert_called_once_with(10000.0, 3000.0)
        assert response.json() == {
            "krwPrice": 10000.0,
            "krwShippingFee": 3000.0,
            "shopifyPrice": 9.99,
            "currency": "USD",
        }

    def test_negative_price(self):
        calculator = self._calculator()
        client = _make_client(price_calculator=calculator)

        response = client.get("/api/price-utils/calculate-shopify?krwPrice=-5", headers=AUTH)

        body = _assert_envelope(response, 422, "VALIDATION_FAILED")
        assert body["details"][0]["constraint"] == ">0"
        calculator.calculate_shopify_price.assert_not_called()

    @pytest.mark.parametrize("raw", ["inf", "-inf"])
    def test_non_finite_price(self, raw):
        calculator = self._calculator()
        client = _make_client(price_calculator=calculator)

        response = client.get(f"/api/price-utils/calculate-shopify?krwPrice={raw}", headers=AUTH)

        body = _assert_envelope(response, 422, "VALIDATION_FAILED")
        assert body["details"][0]["field"] == "krwPrice"
        assert body["details"][0]["constraint"] == "finite"
        assert body["details"][0]["value"] == raw
        calculator.calculate_shopify_price.assert_not_called()

    def test_requires_key(self):
        client = _make_client(price_calculator=self._calculator())
        response = client.get("/api/price-utils/calculate-shopify?krwPrice=-5")
        _assert_envelope(response, 401, "API_KEY_MISSING")

    def test_calculator_not_configured(self):
        response = _make_client().get(
            "/api/price-utils/calculate-shopify?krwPrice=100", headers=AUTH,
        )
        _assert_envelope(response, 503, "SERVICE_NOT_CONFIGURED")

    def test_not_mounted_in_production(self):
        client = _make_client(_make_config(env="production"), price_calculator=self._calculator())
        response = client.get("/api/price-utils/calculate-shopify?krwPrice=100", headers=AUTH)
        _assert_envelope(response, 404, "NOT_FOUND")


# ============================================================================
# STOREFRONT PROXY
# ============================================================================

class TestProxyRoutes:
    """Tests for the signed app proxy endpoints."""

    def _catalog(self):
        catalog = MagicMock()
        catalog.list_products.return_value = {"products": [], "page": 2, "total": 0}
        catalog.get_product.return_value = {"pid": "123", "name": "Sneakers"}
        return catalog

    def test_list_products(self):
        catalog = self._catalog()
        client = _make_client(product_catalog=catalog)
        params = _signed(PROXY_BASE + [("page", "2"), ("categories", "310,320"), ("search", " nike ")])

        response = client.get("/api/bunjang-proxy/products", params=params)

        assert response.status_code == 200
        assert response.json() == {"products": [], "page": 2, "total": 0}
        catalog.list_products.assert_called_once_with(
            categories=["310", "320"],
            search="nike",
            page=2,
            limit=20,
            sort="latest",
        )

    def test_unsigned_request(self):
        client = _make_client(product_catalog=self._catalog())
        response = client.get("/api/bunjang-proxy/products", params=PROXY_BASE)
        _assert_envelope(response, 401, "SIGNATURE_MISSING")

    def test_tampered_request(self):
        catalog = self._catalog()
        client = _make_client(product_catalog=catalog)
        params = _signed(PROXY_BASE + [("page", "2")])
        params[3] = ("page", "3")

        response = client.get("/api/bunjang-proxy/products", params=params)

        _assert_envelope(response, 403, "SIGNATURE_INVALID")
        catalog.list_products.assert_not_called()

    def test_unsigned_parameter_not_trusted(self):
        # Anything appended after signing breaks the signature
        params = _signed(PROXY_BASE) + [("limit", "100")]
        response = _make_client(product_catalog=self._catalog()).get(
            "/api/bunjang-proxy/products", params=params,
        )
        _assert_envelope(response, 403, "SIGNATURE_INVALID")

    def test_signed_but_invalid(self):
        client = _make_client(product_catalog=self._catalog())
        params = _signed(PROXY_BASE + [("limit", "500"), ("page", "0")])

        response = client.get("/api/bunjang-proxy/products", params=params)

        body = _assert_envelope(response, 422, "VALIDATION_FAILED")
        assert {v["field"] for v in body["details"]} == {"limit", "page"}

    def test_product_detail(self):
        catalog = self._catalog()
        client = _make_client(product_catalog=catalog)

        response = client.get("/api/bunjang-proxy/product/123", params=_signed(PROXY_BASE))

        assert response.status_code == 200
        assert response.json()["name"] == "Sneakers"
        catalog.get_product.assert_called_once_with("123")

    def test_product_not_found(self):
        catalog = self._catalog()
        catalog.get_product.return_value = None
        client = _make_client(product_catalog=catalog)

        response = client.get("/api/bunjang-proxy/product/999", params=_signed(PROXY_BASE))

        _assert_envelope(response, 404, "NOT_FOUND")

    def test_custom_prefix(self):
        client = _make_client(
            _make_config(app_proxy_subpath_prefix="market"),
            product_catalog=self._catalog(),
        )
        response = client.get("/api/market/products", params=_signed(PROXY_BASE))
        assert response.status_code == 200

    def test_catalog_not_configured(self):
        response = _make_client().get("/api/bunjang-proxy/products", params=_signed(PROXY_BASE))
        _assert_envelope(response, 503, "SERVICE_NOT_CONFIGURED")

    def test_secret_unset(self):
        client = _make_client(_make_config(shopify_api_secret=None), product_catalog=self._catalog())
        response = client.get("/api/bunjang-proxy/products", params=_signed(PROXY_BASE))
        _assert_envelope(response, 500, "AUTH_NOT_CONFIGURED_ON_SERVER")

    def test_unhandled_collaborator_error(self):
        catalog = self._catalog()
        catalog.list_products.side_effect = RuntimeError("db password=hunter2 rejected")
        client = _make_client(product_catalog=catalog, raise_server_exceptions=False)

        response = client.get("/api/bunjang-proxy/products", params=_signed(PROXY_BASE))

        _assert_envelope(response, 500, "INTERNAL_SERVER_ERROR")
        assert "hunter2" not in response.text


# ============================================================================
# SERVICE ROUTES AND LIFESPAN
# ============================================================================

class TestServiceRoutes:
    """Tests for /api, /health and startup queue initialization."""

    def test_service_info(self):
        body = _make_client().get("/api").json()

        assert body["service"] == "bunjang-sync-gateway"
        assert body["status"] == "running"
        assert body["version"]

    def test_health_before_startup(self):
        body = _make_client().get("/health").json()

        assert body["status"] == "ok"
        assert body["queue"]["enabled"] is True
        assert body["queue"]["backend"] == "memory"
        assert body["queue"]["initialized"] == []

    def test_lifespan_initializes_queues(self):
        app = create_app(_make_config())

        with TestClient(app) as client:
            body = client.get("/health").json()
            assert body["queue"]["initialized"] == ["catalog-processing-queue", "product-sync-queue"]

        assert app.state.services.registry.initialized_queues() == []

    def test_unknown_route_envelope(self):
        response = _make_client().get("/api/nope")
        _assert_envelope(response, 404, "NOT_FOUND")

    def test_wrong_method_envelope(self):
        response = _make_client().get("/api/sync/catalog/full", headers=AUTH)
        _assert_envelope(response, 405, "METHOD_NOT_ALLOWED")
