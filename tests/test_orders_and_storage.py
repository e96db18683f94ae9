from datetime import timedelta
from decimal import Decimal

import mongomock
import pytest

from cart import CartStore
from errors import EmptyCartError, NotFoundError, ValidationError
from orders import OrderStore
from schemas import CatalogItem, OrderStatus, Platform, ProductCategory
from storage import InMemoryKeyValueStore, MongoKeyValueStore


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["storefront_test"]


# ---------- orders ----------

def test_create_order_from_empty_entries_fails():
    store = OrderStore(CartStore())
    with pytest.raises(EmptyCartError) as exc:
        store.create_order([], "a@b.com")
    assert exc.value.message == "Cart is empty"
    assert store.get_order_history() == []


def test_create_order_clears_cart(item_a, item_b):
    cart = CartStore()
    cart.add_to_cart(item_a, 2)
    cart.add_to_cart(item_b)
    store = OrderStore(cart)

    order = store.create_order(cart.entries(), "a@b.com")

    assert cart.entries() == ()
    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal("42.68")
    assert order.currency == "USD"
    assert len(order.items) == 2
    assert order.payment_id is None


def test_order_ids_are_unique(item_a):
    cart = CartStore()
    store = OrderStore(cart)
    ids = set()
    for _ in range(5):
        cart.add_to_cart(item_a)
        ids.add(store.create_order(cart.entries(), "a@b.com").id)
    assert len(ids) == 5


def test_order_rejects_mixed_currencies(item_a):
    eur = CatalogItem(id="eur", title="Euro thing", price=Decimal("5"), currency="EUR",
                      category=ProductCategory.DONATIONS, platform=Platform.ALL)
    cart = CartStore()
    cart.add_to_cart(item_a)
    cart.add_to_cart(eur)
    with pytest.raises(ValidationError):
        OrderStore(cart).create_order(cart.entries(), "a@b.com")


def test_order_history_newest_first(item_a, clock):
    cart = CartStore()
    store = OrderStore(cart, clock=clock)

    cart.add_to_cart(item_a)
    first = store.create_order(cart.entries(), "a@b.com")
    clock.advance(minutes=5)
    cart.add_to_cart(item_a)
    second = store.create_order(cart.entries(), "a@b.com")
    cart.add_to_cart(item_a)
    third = store.create_order(cart.entries(), "a@b.com")

    assert [o.id for o in store.get_order_history()] == [third.id, second.id, first.id]


def test_mark_paid_updates_status_only(item_a):
    cart = CartStore()
    cart.add_to_cart(item_a)
    store = OrderStore(cart)
    order = store.create_order(cart.entries(), "a@b.com")

    paid = store.mark_paid(order.id, "pay-1")

    assert paid.status == OrderStatus.PAID
    assert paid.payment_id == "pay-1"
    assert paid.total_amount == order.total_amount
    assert store.get_order(order.id) == paid

    with pytest.raises(NotFoundError):
        store.mark_paid("missing", "pay-2")


def test_orders_archived_and_restored(item_a, mongo_db, clock):
    cart = CartStore()
    store = OrderStore(cart, db=mongo_db, clock=clock)
    cart.add_to_cart(item_a, 2)
    order = store.create_order(cart.entries(), "a@b.com")
    store.mark_paid(order.id, "pay-1")

    doc = mongo_db["order"].find_one({"id": order.id})
    assert doc["status"] == "PAID"
    assert doc["total_amount"] == "40.00"

    restored = OrderStore(CartStore(), db=mongo_db)
    assert restored.restore() == 1
    again = restored.get_order(order.id)
    assert again.status == OrderStatus.PAID
    assert again.total_amount == Decimal("40.00")
    assert again.created_at == clock.now


# ---------- key-value storage ----------

@pytest.mark.parametrize("backend", ["memory", "mongo"])
def test_key_value_roundtrip_and_namespaces(backend, mongo_db):
    store = InMemoryKeyValueStore() if backend == "memory" else MongoKeyValueStore(mongo_db["kv"])

    wallets = store.namespace("wallet_config")
    payments = store.namespace("payments")
    wallets.set("wallet_BTC", "addr-1")
    payments.set("wallet_BTC", "other")

    assert wallets.get("wallet_BTC") == "addr-1"
    assert payments.get("wallet_BTC") == "other"
    assert store.get("wallet_config:wallet_BTC") == "addr-1"
    assert dict(wallets.items()) == {"wallet_BTC": "addr-1"}

    wallets.set("wallet_BTC", "addr-2")
    assert wallets.get("wallet_BTC") == "addr-2"

    wallets.delete("wallet_BTC")
    assert wallets.get("wallet_BTC") is None
    assert store.get("missing") is None


def test_nested_namespace():
    store = InMemoryKeyValueStore()
    inner = store.namespace("a").namespace("b")
    inner.set("k", "v")
    assert store.get("a:b:k") == "v"


def test_clock_fixture_advances(clock):
    start = clock()
    clock.advance(minutes=1)
    assert clock() - start == timedelta(minutes=1)
