"""Catalog service client tests using httpx.MockTransport."""

import json
import time
from decimal import Decimal

import httpx
import pytest

from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.services.catalog_client import (
    CatalogServiceClient,
    CatalogServiceError,
    CatalogServiceUnavailableError,
)

PRODUCTS = {
    "prod-a": {"id": "prod-a", "seller_id": "seller-1", "name": "Lamp", "price": "20.00", "stock": 10,
               "image_url": None},
    "prod-c": {"id": "prod-c", "seller_id": "seller-2", "name": "Mug", "price": "7.50", "stock": 3,
               "image_url": "https://img.example.com/mug.jpg"},
}
SELLERS = {
    "seller-1": {"id": "seller-1", "user_id": "seller-user-1", "shop_name": "First Shop"},
}


class FakeCatalogService:
    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/products/batch":
            ids = request.url.params.get_list("ids")
            return httpx.Response(200, json=[PRODUCTS[i] for i in ids if i in PRODUCTS])

        if path.startswith("/products/") and path.endswith("/stock"):
            product_id = path.split("/")[2]
            if product_id not in PRODUCTS:
                return httpx.Response(404, json={"detail": "Product not found"})
            delta = json.loads(request.content)["quantity"]
            if PRODUCTS[product_id]["stock"] + delta < 0:
                return httpx.Response(409, json={"detail": "Insufficient stock"})
            return httpx.Response(200, json=PRODUCTS[product_id])

        if path.startswith("/products/"):
            product_id = path.split("/")[2]
            if product_id not in PRODUCTS:
                return httpx.Response(404, json={"detail": "Product not found"})
            return httpx.Response(200, json=PRODUCTS[product_id])

        if path == "/sellers":
            user_id = request.url.params.get("user_id")
            return httpx.Response(200, json=[s for s in SELLERS.values() if s["user_id"] == user_id])

        if path.startswith("/sellers/"):
            seller_id = path.split("/")[2]
            if seller_id not in SELLERS:
                return httpx.Response(404, json={"detail": "Seller not found"})
            return httpx.Response(200, json=SELLERS[seller_id])

        if path == "/health":
            return httpx.Response(200, json={"status": "healthy"})

        return httpx.Response(500)


@pytest.fixture()
def fake_service():
    return FakeCatalogService()


@pytest.fixture()
def client(fake_service):
    return CatalogServiceClient(base_url="http://catalog", transport=httpx.MockTransport(fake_service))


def test_resolve_products_in_one_request(client, fake_service):
    products = client.resolve_products(["prod-a", "prod-c", "ghost"])

    assert [p.id for p in products] == ["prod-a", "prod-c"]
    assert products[0].price == Decimal("20.00")
    assert len(fake_service.requests) == 1


def test_resolve_nothing_skips_request(client, fake_service):
    assert client.resolve_products([]) == []
    assert fake_service.requests == []


def test_decrement_sends_negative_delta(client, fake_service):
    client.decrement_stock("prod-a", 2)

    request = fake_service.requests[0]
    assert request.method == "PATCH"
    assert json.loads(request.content) == {"quantity": -2}


def test_decrement_maps_conflict_to_insufficient_stock(client):
    with pytest.raises(InsufficientStock) as exc:
        client.decrement_stock("prod-c", 4)

    assert exc.value.product_id == "prod-c"


def test_decrement_of_unknown_product(client):
    with pytest.raises(NotFound):
        client.decrement_stock("ghost", 1)


def test_restock_sends_positive_delta(client, fake_service):
    client.restock("prod-c", 3)

    assert json.loads(fake_service.requests[0].content) == {"quantity": 3}


def test_seller_lookups(client):
    assert client.resolve_seller_by_product("prod-c") == "seller-2"
    assert client.resolve_seller_by_product("ghost") is None
    assert client.is_owned_by("seller-1", "seller-user-1") is True
    assert client.is_owned_by("seller-1", "buyer-1") is False
    assert client.is_owned_by("seller-9", "seller-user-1") is False
    assert client.find_seller_by_owner("seller-user-1").id == "seller-1"
    assert client.find_seller_by_owner("buyer-1") is None


def test_unexpected_status_raises():
    client = CatalogServiceClient(
        base_url="http://catalog", transport=httpx.MockTransport(lambda request: httpx.Response(502))
    )

    with pytest.raises(CatalogServiceError):
        client.resolve_products(["prod-a"])


def test_connection_errors_are_retried_then_reported(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda seconds: None)
    attempts = []

    def refuse(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = CatalogServiceClient(base_url="http://catalog", transport=httpx.MockTransport(refuse))

    with pytest.raises(CatalogServiceUnavailableError):
        client.resolve_products(["prod-a"])

    assert len(attempts) == 3


def test_ping(client):
    assert client.ping() is True

    down = CatalogServiceClient(
        base_url="http://catalog",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    assert down.ping() is False
