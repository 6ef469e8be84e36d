import json

import pytest
from django.contrib.admin.sites import site
from django.urls import reverse

from consignInventory.admin import StoreAdmin
from consignInventory.models import InventoryItem, Product, Store
from tests.factories import MarketplaceSettingFactory, ProductFactory, StoreFactory


@pytest.mark.django_db
def test_root_redirects_to_settlements(client, operator):
    response = client.get("/")
    assert response.status_code == 302
    assert response.headers["Location"] == reverse("settlements_dashboard")


@pytest.mark.django_db
def test_navigation_links_for_signed_in_user(client, operator):
    response = client.get(reverse("products_dashboard"))
    names = [link["name"] for link in response.context["nav_links"]]
    assert names == ["정산", "제품", "입점처", "재고"]
    assert response.context["nav_links_admin"] == []


@pytest.mark.django_db
def test_products_dashboard_search(client, operator):
    ProductFactory(name="Ceramic Mug", barcode="8801")
    ProductFactory(name="Linen Bag", barcode="7701")

    response = client.get(reverse("products_dashboard"), {"q": "770"})

    assert [p.name for p in response.context["products"]] == ["Linen Bag"]


@pytest.mark.django_db
def test_create_product_blank_codes_become_null(client, operator):
    response = client.post(
        reverse("product_create"),
        {"name": " Linen Bag ", "sku": " ", "barcode": "", "price": 12000, "active": "on"},
    )

    assert response.status_code == 302
    product = Product.objects.get()
    assert product.name == "Linen Bag"
    assert product.sku is None and product.barcode is None


@pytest.mark.django_db
def test_create_product_invalid_returns_400(client, operator):
    response = client.post(reverse("product_create"), {"name": "", "price": 0})
    assert response.status_code == 400
    assert Product.objects.count() == 0


@pytest.mark.django_db
def test_store_commission_must_be_percent(client, operator):
    store = StoreFactory(commission_rate=10)

    client.post(reverse("store_commission", args=[store.pk]), {"commission_rate": "150"})
    store.refresh_from_db()
    assert store.commission_rate == 10

    client.post(reverse("store_commission", args=[store.pk]), {"commission_rate": "22.5"})
    store.refresh_from_db()
    assert str(store.commission_rate) == "22.50"


@pytest.mark.django_db
def test_create_and_update_store(client, operator):
    client.post(reverse("store_create"), {"name": " 온라인몰 ", "commission_rate": "30"})
    store = Store.objects.get()
    assert store.name == "온라인몰"

    response = client.post(
        reverse("store_update", args=[store.pk]),
        {"name": "온라인몰", "commission_rate": "35", "contact_name": "Kim"},
    )
    assert response.status_code == 302
    store.refresh_from_db()
    assert store.contact_name == "Kim"


@pytest.mark.django_db
def test_inventory_dashboard_lists_active_products(client, operator, store, product):
    ProductFactory(name="Retired", active=False)

    response = client.get(reverse("inventory_dashboard"), {"store": store.pk})

    assert response.context["selected_store"] == store
    assert [row["product"] for row in response.context["rows"]] == [product]
    assert response.context["total_on_hand"] == 0


@pytest.mark.django_db
def test_inline_inventory_update_sends_trigger(client, operator, store, product):
    url = reverse("inventory_update", args=[store.pk, product.pk])

    response = client.post(url, {"on_hand_qty": 7}, HTTP_HX_REQUEST="true")

    assert response.status_code == 200
    assert InventoryItem.objects.get(store=store, product=product).on_hand_qty == 7
    assert json.loads(response["HX-Trigger"])["showMessage"]["level"] == "success"


@pytest.mark.django_db
def test_inline_inventory_rejects_negative(client, operator, store, product):
    url = reverse("inventory_update", args=[store.pk, product.pk])

    response = client.post(url, {"on_hand_qty": -1}, HTTP_HX_REQUEST="true")

    assert response.status_code == 400
    payload = json.loads(response["HX-Trigger"])
    assert payload["showMessage"]["level"] == "error"
    assert payload["inventory:refresh"] is True
    assert not InventoryItem.objects.exists()


@pytest.mark.django_db
def test_store_admin_shows_marketplace_rate():
    store = StoreFactory()
    admin_obj = StoreAdmin(Store, site)

    assert admin_obj.marketplace_rate(store) == "—"
    MarketplaceSettingFactory(store=store, commission_rate="0.1500")
    store = Store.objects.get(pk=store.pk)
    assert str(admin_obj.marketplace_rate(store)) == "0.1500"


@pytest.mark.django_db
def test_staff_can_open_settlement_admin(admin_client):
    response = admin_client.get("/admin/consignInventory/settlement/")
    assert response.status_code == 200
