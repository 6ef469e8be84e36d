import pytest

from consignInventory.models import InventoryItem
from consignInventory.utils.inventory_deltas import (
    apply_deltas,
    compute_deltas,
    read_on_hand,
    restore,
    sum_qty_by_product,
    write_on_hand,
)
from tests.factories import InventoryItemFactory, ProductFactory, SettlementLineFactory, StoreFactory


def test_compute_deltas_covers_union_and_skips_zero():
    assert compute_deltas({1: 5, 2: 3}, {1: 7, 3: 2, 2: 3}) == {1: 2, 3: 2}
    assert compute_deltas({4: 6}, {}) == {4: -6}


@pytest.mark.django_db
def test_read_on_hand_defaults_to_zero():
    store, product = StoreFactory(), ProductFactory()
    assert read_on_hand(store.id, product.id) == 0


@pytest.mark.django_db
def test_write_on_hand_upserts():
    store, product = StoreFactory(), ProductFactory()
    write_on_hand(store.id, product.id, 4)
    write_on_hand(store.id, product.id, 4)

    assert InventoryItem.objects.filter(store=store, product=product).count() == 1
    assert read_on_hand(store.id, product.id) == 4


@pytest.mark.django_db
def test_positive_delta_reduces_stock_floored_at_zero():
    item = InventoryItemFactory(on_hand_qty=3)
    other = ProductFactory()
    InventoryItemFactory(store=item.store, product=other, on_hand_qty=10)

    updated = apply_deltas(item.store_id, {item.product_id: 5, other.id: 4})

    assert updated == 2
    assert read_on_hand(item.store_id, item.product_id) == 0
    assert read_on_hand(item.store_id, other.id) == 6


@pytest.mark.django_db
def test_negative_delta_gives_stock_back():
    item = InventoryItemFactory(on_hand_qty=1)
    apply_deltas(item.store_id, {item.product_id: -3})
    assert read_on_hand(item.store_id, item.product_id) == 4


@pytest.mark.django_db
def test_restore_adds_summed_quantities():
    line = SettlementLineFactory(qty_sold=2)
    SettlementLineFactory(settlement=line.settlement, product=line.product, qty_sold=5)
    unlinked = SettlementLineFactory(settlement=line.settlement, product=None, product_name_raw="gone", qty_sold=9)

    lines = [line, *line.settlement.lines.exclude(pk=line.pk)]
    assert sum_qty_by_product(lines) == {line.product_id: 7}
    assert unlinked.product_id is None

    assert restore(line.store_id, lines) == 1
    assert read_on_hand(line.store_id, line.product_id) == 7
