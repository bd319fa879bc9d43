"""Cart store mutations, totals and persistence."""

import json
from decimal import Decimal
from unittest.mock import MagicMock

from lichi_server.cart import CART_KEY, CartStore
from lichi_server.errors import PersistenceError
from lichi_server.models import CartItem
from lichi_server.storage import MemoryStore
from tests.conftest import make_product


def _stored(store: MemoryStore) -> list[dict]:
    return json.loads(store.get(CART_KEY))


def test_add_same_pair_increments_and_new_size_appends(memory_store):
    cart = CartStore(memory_store)
    product = make_product(1)

    cart.add_item(product, "M")
    cart.add_item(product, "M")
    cart.add_item(product, "L")

    assert [(item.size, item.quantity) for item in cart.items] == [("M", 2), ("L", 1)]
    assert cart.total_count == 3


def test_uniqueness_holds_across_interleaved_adds(memory_store):
    cart = CartStore(memory_store)
    first, second = make_product(1), make_product(2)
    calls = [(first, "S"), (second, "S"), (first, "S"), (first, "M"), (second, "S"), (first, "S")]

    for product, size in calls:
        cart.add_item(product, size)

    keys = [(item.product.id, item.size) for item in cart.items]
    assert len(keys) == len(set(keys))
    assert {key: item.quantity for key, item in zip(keys, cart.items)} == {
        (1, "S"): 3,
        (2, "S"): 2,
        (1, "M"): 1,
    }


def test_totals_are_recomputed_after_every_mutation(memory_store):
    cart = CartStore(memory_store)
    cheap, dear = make_product(1, price="100"), make_product(2, price="2500.50")

    cart.add_item(cheap, "S")
    cart.add_item(dear, "M")
    cart.add_item(dear, "M")
    assert cart.total_count == 3
    assert cart.total_price == Decimal("5101.00")

    cart.decrement(cart.find(2, "M"))
    assert cart.total_count == 2
    assert cart.total_price == Decimal("2600.50")


def test_empty_cart_totals(memory_store):
    cart = CartStore(memory_store)
    assert cart.total_count == 0
    assert cart.total_price == Decimal("0")


def test_every_mutation_writes_through(memory_store):
    cart = CartStore(memory_store)
    product = make_product(1)

    cart.add_item(product, "M")
    assert _stored(memory_store)[0]["quantity"] == 1

    item = cart.items[0]
    cart.increment(item)
    assert _stored(memory_store)[0]["quantity"] == 2

    cart.set_quantity(item, 5)
    assert _stored(memory_store)[0]["quantity"] == 5

    cart.remove_item(item)
    assert _stored(memory_store) == []


def test_decrement_single_unit_removes_item(memory_store):
    cart = CartStore(memory_store)
    cart.add_item(make_product(1), "M")

    cart.decrement(cart.items[0])

    assert cart.items == []
    assert _stored(memory_store) == []


def test_set_quantity_below_one_removes_item(memory_store):
    cart = CartStore(memory_store)
    cart.add_item(make_product(1), "M")
    cart.add_item(make_product(2), "M")

    cart.set_quantity(cart.items[0], 0)

    assert [item.product.id for item in cart.items] == [2]


def test_remove_item_removes_the_referenced_instance(memory_store):
    cart = CartStore(memory_store)
    product = make_product(1)
    first = CartItem(product=product, size="M")
    second = CartItem(product=product, size="M")
    cart.items = [first, second]

    cart.remove_item(second)

    assert len(cart.items) == 1
    assert cart.items[0] is first


def test_remove_unknown_item_keeps_cart(memory_store):
    cart = CartStore(memory_store)
    cart.add_item(make_product(1), "M")

    cart.remove_item(CartItem(product=make_product(1), size="M"))

    assert len(cart.items) == 1


def test_load_restores_saved_cart(memory_store):
    cart = CartStore(memory_store)
    cart.add_item(make_product(1, price="990"), "S")
    cart.add_item(make_product(1, price="990"), "S")
    cart.add_item(make_product(2), "L")

    restored = CartStore(memory_store)
    restored.load()

    assert restored.items == cart.items
    assert restored.total_count == 3


def test_load_without_stored_cart_is_empty(memory_store):
    cart = CartStore(memory_store)
    cart.load()
    assert cart.items == []


def test_load_discards_unreadable_cart():
    for blob in ["{not json", json.dumps({"items": []}), json.dumps([{"product": {"name": "x"}}])]:
        cart = CartStore(MemoryStore({CART_KEY: blob}))
        cart.items = [CartItem(product=make_product(), size="M")]
        cart.load()
        assert cart.items == []


def test_load_discards_deeply_nested_cart():
    cart = CartStore(MemoryStore({CART_KEY: "[" * 100000 + "]" * 100000}))
    cart.items = [CartItem(product=make_product(), size="M")]

    cart.load()

    assert cart.items == []


def test_load_merges_duplicate_lines():
    line = CartItem(product=make_product(1), size="M", quantity=2).serialize()
    cart = CartStore(MemoryStore({CART_KEY: json.dumps([line, line])}))

    cart.load()

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 4


def test_save_raises_persistence_error(failing_store):
    cart = CartStore(failing_store)
    failing_store.fail = True
    try:
        cart.save()
    except PersistenceError as e:
        assert "disk full" in str(e)
    else:
        raise AssertionError("save() should raise PersistenceError")


def test_failed_save_rolls_back_and_notifies_observer(failing_store):
    observer = MagicMock()
    cart = CartStore(failing_store, on_error=observer)
    product = make_product(1)
    cart.add_item(product, "M")
    item = cart.items[0]

    failing_store.fail = True
    assert cart.add_item(product, "M") is False
    assert cart.add_item(product, "L") is False
    assert cart.remove_item(item) is False
    assert cart.decrement(item) is False

    assert cart.items == [item]
    assert cart.items[0] is item
    assert item.quantity == 1
    assert observer.call_count == 4
    assert isinstance(observer.call_args.args[0], PersistenceError)
    assert _stored(failing_store)[0]["quantity"] == 1


def test_snapshot_is_detached(memory_store):
    cart = CartStore(memory_store)
    cart.add_item(make_product(1, price="500"), "M")

    snapshot = cart.snapshot()
    cart.increment(cart.items[0])

    assert snapshot.item_count == 1
    assert snapshot.total == Decimal("500")
    assert snapshot.items[0].quantity == 1
