"""End-to-end runs of the bridge against the mock Storefront application."""

import pytest
from fastapi.testclient import TestClient

from checkout_bridge import main
from checkout_bridge.config import ShopConfig, ShopKey
from mock_services.mock_storefront import app as storefront_app


def _shops(primary_token, secondary_token):
    return {
        ShopKey.PRIMARY: ShopConfig(key=ShopKey.PRIMARY, domain="shop-b.example", token=primary_token),
        ShopKey.SECONDARY: ShopConfig(key=ShopKey.SECONDARY, domain="shop-c.example", token=secondary_token),
    }


@pytest.fixture()
def bridge(mapping_store):
    """Returns a factory building a bridge TestClient whose shops are served by the mock storefront."""
    def _http_client():
        # TestClient is an httpx.Client routing every URL into the mock app
        yield TestClient(storefront_app)

    def _make(primary_token, secondary_token="sf_ok_c"):
        shops = _shops(primary_token, secondary_token)
        main.app.dependency_overrides[main.get_shops] = lambda: shops
        main.app.dependency_overrides[main.get_mapping_store] = lambda: mapping_store
        main.app.dependency_overrides[main.get_http_client] = _http_client
        return TestClient(main.app, follow_redirects=False)

    yield _make
    main.app.dependency_overrides.clear()


def test_checkout_on_primary(bridge):
    response = bridge("sf_ok_b").post("/bridge", json={"lines": [{"id": "1", "quantity": 1}]})
    assert response.status_code == 302
    assert response.headers["location"].startswith("https://shop-b.example/cart/c/")


def test_fallback_to_secondary(bridge):
    response = bridge("sf_down_b").post("/bridge", json={"lines": [{"id": "1"}]})
    assert response.status_code == 302
    assert response.headers["location"].startswith("https://shop-c.example/cart/c/")


def test_both_down(bridge):
    response = bridge("sf_down_b", "sf_down_c").post("/bridge", json={"lines": [{"id": "1"}]})
    assert response.status_code == 503


def test_sold_out(bridge):
    response = bridge("sf_soldout_b").post("/bridge", json={"lines": [{"id": "1"}]})
    assert response.status_code == 500
    assert response.json() == {"error": "Sold out"}


def test_missing_checkout_url(bridge):
    response = bridge("sf_nourl_b").post("/bridge", json={"lines": [{"id": "1"}]})
    assert response.status_code == 500
    assert response.json() == {"error": "checkoutUrl introuvable"}


def test_mock_requires_token():
    response = TestClient(storefront_app).post(
        "/api/2024-10/graphql.json", json={"query": "query { shop { name } }"}
    )
    assert response.status_code == 401
