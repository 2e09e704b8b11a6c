import json
import os

# No log file from test runs
os.environ.setdefault("LOG_FILE", "")

import httpx
import pytest
from fastapi.testclient import TestClient

from checkout_bridge import main
from checkout_bridge.config import ShopConfig, ShopKey
from checkout_bridge.mapping import MappingStore

PRIMARY_DOMAIN = "shop-b.example"
SECONDARY_DOMAIN = "shop-c.example"


def checkout_response(url):
    return {"data": {"cartCreate": {"cart": {"id": "gid://shopify/Cart/1", "checkoutUrl": url}, "userErrors": []}}}


class FakeStorefront:
    """In-memory stand-in for the Storefront endpoints of every shop, keyed by host."""

    def __init__(self):
        self.down = set()
        self.unreachable = set()
        self.slow = set()
        self.cart_responses = {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        body = json.loads(request.content)
        self.requests.append((host, body, request.headers))

        if host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if host in self.slow:
            raise httpx.ReadTimeout("read timed out", request=request)
        if host in self.down:
            return httpx.Response(503, json={"errors": "unavailable"})

        if "cartCreate" in body["query"]:
            payload = self.cart_responses.get(host, checkout_response(f"https://{host}/cart/c/abc"))
            if isinstance(payload, httpx.Response):
                return payload
            return httpx.Response(200, json=payload)
        return httpx.Response(200, json={"data": {"shop": {"name": host}}})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    @property
    def probed_hosts(self):
        return [host for host, body, _ in self.requests if "cartCreate" not in body["query"]]

    @property
    def cart_requests(self):
        return [(host, body) for host, body, _ in self.requests if "cartCreate" in body["query"]]


@pytest.fixture()
def shops():
    return {
        ShopKey.PRIMARY: ShopConfig(key=ShopKey.PRIMARY, domain=PRIMARY_DOMAIN, token="tok-b"),
        ShopKey.SECONDARY: ShopConfig(key=ShopKey.SECONDARY, domain=SECONDARY_DOMAIN, token="tok-c"),
    }


@pytest.fixture()
def storefront():
    return FakeStorefront()


@pytest.fixture()
def http(storefront):
    client = storefront.client()
    yield client
    client.close()


@pytest.fixture()
def mapping_file(tmp_path, monkeypatch):
    monkeypatch.delenv("MAPPING_JSON", raising=False)
    path = tmp_path / "mapping.json"
    path.write_text(json.dumps({"SKU-RED": "44000000000001", "SKU-BLUE": "gid://shopify/ProductVariant/44000000000002"}))
    return path


@pytest.fixture()
def mapping_store(mapping_file):
    store = MappingStore(path=str(mapping_file))
    store.load_initial()
    return store


@pytest.fixture()
def client(shops, storefront, mapping_store):
    def _http_client():
        c = storefront.client()
        try:
            yield c
        finally:
            c.close()

    main.app.dependency_overrides[main.get_shops] = lambda: shops
    main.app.dependency_overrides[main.get_mapping_store] = lambda: mapping_store
    main.app.dependency_overrides[main.get_http_client] = _http_client
    main.app.dependency_overrides[main.get_admin_token] = lambda: None
    yield TestClient(main.app, follow_redirects=False)
    main.app.dependency_overrides.clear()
