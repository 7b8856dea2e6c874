"""Shared catalog tables: guarded stock writes and seller lookups."""

import pytest

from conftest import stock_of
from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.models.order import OrderLineItem
from marketplace.repositories.product_repository import ProductRepository, SellerRepository
from marketplace.services.inventory import InventoryLedger


def test_resolve_products_omits_unknown_ids(catalog):
    products = ProductRepository(catalog).resolve_products(["prod-b", "ghost"])

    assert [p.id for p in products] == ["prod-b"]
    assert products[0].seller_id == "seller-1"


def test_decrement_never_goes_below_zero(catalog):
    products = ProductRepository(catalog)

    products.decrement_stock("prod-c", 3)
    with pytest.raises(InsufficientStock):
        products.decrement_stock("prod-c", 1)

    assert stock_of(catalog, "prod-c") == 0


def test_stock_writes_on_unknown_product(catalog):
    products = ProductRepository(catalog)

    with pytest.raises(NotFound):
        products.decrement_stock("ghost", 1)
    with pytest.raises(NotFound):
        products.restock("ghost", 1)


def _lines(*quantities):
    return [
        OrderLineItem(position=i, product_id=pid, quantity=qty, stock_taken=False)
        for i, (pid, qty) in enumerate(quantities)
    ]


class BrokenRugCatalog(ProductRepository):
    def decrement_stock(self, product_id, quantity):
        if product_id == "prod-b":
            raise RuntimeError("catalog timed out")
        super().decrement_stock(product_id, quantity)


def test_ledger_reserves_all_lines_or_none(catalog):
    ledger = InventoryLedger(ProductRepository(catalog))
    lines = _lines(("prod-a", 4), ("prod-c", 2), ("prod-d", 2))

    with pytest.raises(InsufficientStock):
        ledger.reserve(lines)

    assert stock_of(catalog, "prod-a") == 10
    assert stock_of(catalog, "prod-c") == 3
    assert stock_of(catalog, "prod-d") == 1
    assert not any(line.stock_taken for line in lines)


def test_ledger_gives_lines_back_on_any_failure(catalog):
    ledger = InventoryLedger(BrokenRugCatalog(catalog))
    lines = _lines(("prod-a", 2), ("prod-b", 1))

    with pytest.raises(RuntimeError):
        ledger.reserve(lines)

    assert stock_of(catalog, "prod-a") == 10
    assert [line.stock_taken for line in lines] == [False, False]


def test_ledger_skips_lines_already_taken(catalog):
    ledger = InventoryLedger(ProductRepository(catalog))
    lines = _lines(("prod-a", 2), ("prod-b", 1))
    lines[0].stock_taken = True

    ledger.reserve(lines)

    assert stock_of(catalog, "prod-a") == 10
    assert stock_of(catalog, "prod-b") == 4


def test_ledger_release(catalog):
    ledger = InventoryLedger(ProductRepository(catalog))
    lines = _lines(("prod-a", 4))
    ledger.reserve(lines)
    assert stock_of(catalog, "prod-a") == 6

    ledger.release(lines)
    ledger.release(lines)

    assert stock_of(catalog, "prod-a") == 10
    assert lines[0].stock_taken is False


def test_seller_lookups(catalog):
    sellers = SellerRepository(catalog)

    assert sellers.resolve_seller_by_product("prod-c") == "seller-2"
    assert sellers.resolve_seller_by_product("ghost") is None
    assert sellers.is_owned_by("seller-2", "seller-user-2") is True
    assert sellers.is_owned_by("seller-2", "seller-user-1") is False
    assert sellers.find_seller_by_owner("seller-user-1").shop_name == "First Shop"
    assert sellers.find_seller_by_owner("buyer-1") is None
