from decimal import Decimal

import pytest

from consignInventory.models import InventoryItem, Settlement, SettlementLine
from consignInventory.utils import settlements as gateway
from importers._errors import SettlementDeleteError
from tests.factories import (
    InventoryItemFactory,
    ProductFactory,
    SettlementFactory,
    SettlementLineFactory,
    StoreFactory,
    UserFactory,
)


def _header_kwargs(store, **overrides):
    values = dict(
        store_id=store.id,
        period_month="2024-05",
        gross_amount=6500,
        commission_rate=Decimal("0.25"),
        commission_amount=1625,
        net_amount=4875,
        rows_count=1,
    )
    values.update(overrides)
    return values


@pytest.mark.django_db
def test_upsert_header_creates_then_overwrites_in_place():
    store = StoreFactory()
    first = gateway.upsert_header(**_header_kwargs(store))
    second = gateway.upsert_header(**_header_kwargs(store, gross_amount=1000, net_amount=750, commission_amount=250))

    assert first.pk == second.pk
    assert Settlement.objects.count() == 1
    second.refresh_from_db()
    assert second.gross_amount == 1000
    assert second.currency == "KRW"
    assert second.status == "draft"


@pytest.mark.django_db
def test_headers_are_scoped_per_owner():
    store = StoreFactory()
    alice, bob = UserFactory(), UserFactory()
    a = gateway.upsert_header(**_header_kwargs(store), owner=alice)
    b = gateway.upsert_header(**_header_kwargs(store), owner=bob)

    assert a.pk != b.pk
    assert gateway.find_header(store.id, "2024-05", owner=alice) == a
    assert gateway.find_header(store.id, "2024-05") is None


@pytest.mark.django_db
def test_replace_lines_never_merges():
    settlement = SettlementFactory()
    old_product, new_product = ProductFactory(), ProductFactory()
    SettlementLineFactory(settlement=settlement, product=old_product, qty_sold=4)

    gateway.replace_lines(
        settlement.pk,
        [
            SettlementLine(
                store=settlement.store,
                product=new_product,
                product_name_raw=new_product.name,
                qty_sold=2,
                unit_price=500,
                gross_amount=1000,
            )
        ],
    )

    lines = gateway.list_lines(settlement.pk)
    assert [line.product_id for line in lines] == [new_product.id]


@pytest.mark.django_db
def test_delete_header_with_no_rows_raises():
    with pytest.raises(SettlementDeleteError):
        gateway.delete_header(999999)


@pytest.mark.django_db
def test_delete_settlement_removes_header_and_lines():
    line = SettlementLineFactory(qty_sold=3)
    settlement_id = line.settlement_id

    restored = gateway.delete_settlement(settlement_id)

    assert restored == 0
    assert not Settlement.objects.filter(pk=settlement_id).exists()
    assert not SettlementLine.objects.filter(settlement_id=settlement_id).exists()


@pytest.mark.django_db
def test_delete_settlement_restores_inventory_by_pure_addition():
    store = StoreFactory()
    product = ProductFactory()
    InventoryItemFactory(store=store, product=product, on_hand_qty=2)
    settlement = SettlementFactory(store=store)
    SettlementLineFactory(settlement=settlement, product=product, qty_sold=3)
    SettlementLineFactory(settlement=settlement, product=product, qty_sold=1)

    restored = gateway.delete_settlement(settlement.pk, restore_inventory=True)

    assert restored == 1
    assert InventoryItem.objects.get(store=store, product=product).on_hand_qty == 6


@pytest.mark.django_db
def test_delete_missing_settlement_raises_and_writes_nothing():
    with pytest.raises(SettlementDeleteError):
        gateway.delete_settlement(424242, restore_inventory=True)
    assert InventoryItem.objects.count() == 0


@pytest.mark.django_db
def test_list_headers_filters_by_store_and_month():
    a, b = StoreFactory(), StoreFactory()
    SettlementFactory(store=a, period_month="2024-04")
    keep = SettlementFactory(store=a, period_month="2024-05")
    SettlementFactory(store=b, period_month="2024-05")

    assert list(gateway.list_headers(store_id=a.id, period_month="2024-05")) == [keep]
    assert gateway.list_headers(period_month="2024-05").count() == 2
    assert gateway.list_headers().count() == 3


@pytest.mark.django_db
def test_get_detail_returns_header_and_lines():
    line = SettlementLineFactory(qty_sold=4)
    detail = gateway.get_detail(line.settlement_id)

    assert detail.header.pk == line.settlement_id
    assert detail.lines == [line]
    assert detail.total_qty == 4
