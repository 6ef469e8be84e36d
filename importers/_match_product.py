# importers/_match_product.py
"""
_match_product.py
------------------
Catalog lookups for the settlement importer.

Resolves a CSV row to:
  - a Store, by exact (trimmed, case-sensitive) name
  - a Product, by exact (trimmed) barcode

Barcodes are not unique in the catalog. When several products share one,
the first created product wins (created_at, then id).

Returns:
  Store | None, Product | None
"""

from __future__ import annotations

from typing import Iterable

from consignInventory.models import Product, Store


def _normalize_key(value) -> str:
    """Trim only; store names and barcodes are compared case-sensitively."""
    return str(value or "").strip()


class CatalogIndex:
    """In-memory snapshot of the product and store catalogs for one preview pass."""

    def __init__(self, products: Iterable[Product], stores: Iterable[Store]):
        self.products = list(products)
        self.stores = list(stores)
        self._stores_by_id = {store.id: store for store in self.stores}
        self._stores_by_name: dict[str, Store] = {}
        for store in self.stores:
            self._stores_by_name.setdefault(_normalize_key(store.name), store)

        self._products_by_id = {product.id: product for product in self.products}
        self._products_by_barcode: dict[str, Product] = {}
        ordered = sorted(
            self.products,
            key=lambda p: (p.created_at is None, p.created_at, p.id or 0),
        )
        for product in ordered:
            barcode = _normalize_key(product.barcode)
            if barcode:
                self._products_by_barcode.setdefault(barcode, product)

    @classmethod
    def from_db(cls) -> "CatalogIndex":
        return cls(
            Product.objects.order_by("created_at", "id"),
            Store.objects.order_by("created_at", "id"),
        )

    def find_store_by_name(self, name: str | None) -> Store | None:
        key = _normalize_key(name)
        if not key:
            return None
        return self._stores_by_name.get(key)

    def find_product_by_barcode(self, barcode: str | None) -> Product | None:
        key = _normalize_key(barcode)
        if not key:
            return None
        return self._products_by_barcode.get(key)

    def get_store(self, store_id) -> Store | None:
        return self._stores_by_id.get(store_id)

    def get_product(self, product_id) -> Product | None:
        return self._products_by_id.get(product_id)


def find_product_by_barcode(barcode: str | None) -> Product | None:
    """Single lookup against the database, same tie-break as CatalogIndex."""
    key = _normalize_key(barcode)
    if not key:
        return None
    return Product.objects.filter(barcode=key).order_by("created_at", "id").first()


def find_store_by_name(name: str | None) -> Store | None:
    key = _normalize_key(name)
    if not key:
        return None
    return Store.objects.filter(name=key).order_by("created_at", "id").first()
