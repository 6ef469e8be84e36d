"""
URL configuration for core project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/
"""
from django.conf import settings
from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView

from consignInventory.views.inventory import inventory_dashboard_view, update_on_hand
from consignInventory.views.products import create_product_view, products_dashboard_view
from consignInventory.views.settlements import (
    apply_settlement_view,
    delete_settlement_view,
    download_settlement_template,
    preview_create_product_view,
    preview_match_product_view,
    preview_reset_view,
    preview_toggle_ignore_view,
    settlement_detail_view,
    settlement_mapping_view,
    settlements_dashboard_view,
    upload_settlement_view,
)
from consignInventory.views.stores import (
    create_store_view,
    stores_dashboard_view,
    update_store_commission_view,
    update_store_view,
)


urlpatterns = [
    path("admin/", admin.site.urls),
    path("", RedirectView.as_view(pattern_name="settlements_dashboard", permanent=False)),

    # settlements
    path("settlements/", settlements_dashboard_view, name="settlements_dashboard"),
    path("settlements/upload/", upload_settlement_view, name="settlement_upload"),
    path("settlements/mapping/", settlement_mapping_view, name="settlement_mapping"),
    path("settlements/preview/match/", preview_match_product_view, name="settlement_preview_match"),
    path("settlements/preview/create-product/", preview_create_product_view, name="settlement_preview_create_product"),
    path("settlements/preview/<int:idx>/ignore/", preview_toggle_ignore_view, name="settlement_preview_ignore"),
    path("settlements/preview/reset/", preview_reset_view, name="settlement_preview_reset"),
    path("settlements/apply/", apply_settlement_view, name="settlement_apply"),
    path("settlements/template/", download_settlement_template, name="settlement_template"),
    path("settlements/<int:pk>/", settlement_detail_view, name="settlement_detail"),
    path("settlements/<int:pk>/delete/", delete_settlement_view, name="settlement_delete"),

    # catalog
    path("products/", products_dashboard_view, name="products_dashboard"),
    path("products/create/", create_product_view, name="product_create"),
    path("stores/", stores_dashboard_view, name="stores_dashboard"),
    path("stores/create/", create_store_view, name="store_create"),
    path("stores/<int:pk>/update/", update_store_view, name="store_update"),
    path("stores/<int:pk>/commission/", update_store_commission_view, name="store_commission"),

    # inventory
    path("inventory/", inventory_dashboard_view, name="inventory_dashboard"),
    path("inventory/<int:store_id>/<int:product_id>/update/", update_on_hand, name="inventory_update"),
]

if settings.DEBUG:
    urlpatterns.append(path("__reload__/", include("django_browser_reload.urls")))
