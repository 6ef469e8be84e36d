import datetime

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone

from consignInventory.models import (
    ImportLog,
    InventoryItem,
    MarketplaceSetting,
    Product,
    Settlement,
    SettlementLine,
    Store,
)


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = factory.Sequence(lambda n: f"user{n}")


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product

    name = factory.Sequence(lambda n: f"Product {n}")
    sku = factory.Sequence(lambda n: f"SKU{n:05d}")
    barcode = factory.Sequence(lambda n: f"88000000{n:05d}")
    active = True
    make_enabled = True
    price = 10000
    # strictly increasing so "first created" is deterministic within a test
    created_at = factory.Sequence(
        lambda n: timezone.now() - datetime.timedelta(days=1) + datetime.timedelta(seconds=n)
    )


class StoreFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Store

    name = factory.Sequence(lambda n: f"Store {n}")
    commission_rate = None


class MarketplaceSettingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = MarketplaceSetting

    store = factory.SubFactory(StoreFactory)
    commission_rate = "0.3000"


class InventoryItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = InventoryItem

    store = factory.SubFactory(StoreFactory)
    product = factory.SubFactory(ProductFactory)
    on_hand_qty = 10


class SettlementFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Settlement

    store = factory.SubFactory(StoreFactory)
    period_month = "2024-05"
    gross_amount = 0
    commission_rate = 0
    commission_amount = 0
    net_amount = 0


class SettlementLineFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = SettlementLine

    settlement = factory.SubFactory(SettlementFactory)
    store = factory.SelfAttribute("settlement.store")
    product = factory.SubFactory(ProductFactory)
    product_name_raw = factory.LazyAttribute(lambda o: o.product.name if o.product else "Unknown")
    qty_sold = 1
    unit_price = 1000
    gross_amount = factory.LazyAttribute(lambda o: o.qty_sold * o.unit_price)


class ImportLogFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ImportLog

    source = "settlement"
    run_type = "live"
    rows_processed = 10
    matched_count = 8
    unmatched_count = 2
    error_count = 0
