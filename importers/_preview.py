# importers/_preview.py
"""
_preview.py
-----------
Row validation and the editable preview shown before a settlement is applied.

Each mapped CSV row becomes one PreviewRow. Rules run in order and the first
failure wins:

  1. store name blank
  2. period not YYYY-MM
  3. barcode blank
  4. sold_qty <= 0
  5. unit_price <= 0
  6. currency != KRW
  7. store name not in the store catalog
  8. barcode not in the product catalog (row keeps its store_id)

Rows failing only rule 8 can be fixed in place by picking an existing
product or creating one. Any row can be ignored, which removes it from both
the apply gate and aggregation.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, fields
from typing import Iterable

from importers._column_mapping import DEFAULT_CURRENCY, SettlementCsvRow
from importers._match_product import CatalogIndex

PERIOD_PATTERN = re.compile(r"^\d{4}-\d{2}$")

ERROR_STORE_BLANK = "store(입점처명)이 비어있습니다."
ERROR_PERIOD_FORMAT = "period 형식이 올바르지 않습니다 (YYYY-MM)."
ERROR_BARCODE_BLANK = "barcode가 비어있습니다."
ERROR_QTY = "sold_qty는 1 이상이어야 합니다."
ERROR_UNIT_PRICE = "unit_price는 1 이상이어야 합니다."
ERROR_CURRENCY = "현재는 KRW만 지원합니다."
ERROR_STORE_UNKNOWN = "앱에 등록된 입점처명과 일치하지 않습니다."
ERROR_PRODUCT_UNKNOWN = (
    "바코드에 해당하는 제품이 없습니다. (제품 선택 또는 새 제품 만들기를 사용하세요)"
)
ERROR_NOT_MATCHABLE = "바코드에 해당하는 제품이 없는 행에만 제품을 지정할 수 있습니다."


@dataclass
class PreviewRow:
    idx: int
    store_name: str
    period: str
    barcode: str
    sold_qty: int
    unit_price: int
    currency: str = DEFAULT_CURRENCY
    status: str = "error"
    error: str | None = None
    ignored: bool = False
    store_id: int | None = None
    product_id: int | None = None
    product_name: str | None = None
    product_name_matched: str | None = None
    match_status: str = "unmatched"
    amount: int = 0
    line_no: int = 0

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def gross(self) -> int:
        """Net sales as reported in the CSV, not qty x rounded unit price."""
        return self.amount

    @property
    def needs_product(self) -> bool:
        """True when only the product lookup failed and the store is known."""
        return self.status == "error" and self.store_id is not None and self.product_id is None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PreviewRow":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


def validate_row(idx: int, row: SettlementCsvRow, catalog: CatalogIndex) -> PreviewRow:
    """Classify one mapped row as ok/error against the live catalog."""
    store_name = (row.store or "").strip()
    period = (row.period or "").strip()
    barcode = str(row.barcode or "").strip()
    sold_qty = max(0, int(row.sold_qty or 0))
    unit_price = max(0, int(row.unit_price or 0))
    currency = (row.currency or DEFAULT_CURRENCY).strip().upper() or DEFAULT_CURRENCY

    preview = PreviewRow(
        idx=idx,
        store_name=store_name,
        period=period,
        barcode=barcode,
        sold_qty=sold_qty,
        unit_price=unit_price,
        currency=currency,
        amount=int(row.amount or 0),
        line_no=row.line_no,
    )

    if not store_name:
        preview.error = ERROR_STORE_BLANK
        return preview
    if not PERIOD_PATTERN.match(period):
        preview.error = ERROR_PERIOD_FORMAT
        return preview
    if not barcode:
        preview.error = ERROR_BARCODE_BLANK
        return preview
    if sold_qty <= 0:
        preview.error = ERROR_QTY
        return preview
    if unit_price <= 0:
        preview.error = ERROR_UNIT_PRICE
        return preview
    if currency != DEFAULT_CURRENCY:
        preview.error = ERROR_CURRENCY
        return preview

    store = catalog.find_store_by_name(store_name)
    if store is None:
        preview.error = ERROR_STORE_UNKNOWN
        return preview
    preview.store_id = store.id

    product = catalog.find_product_by_barcode(barcode)
    if product is None:
        preview.error = ERROR_PRODUCT_UNKNOWN
        return preview

    preview.product_id = product.id
    preview.product_name = product.name
    preview.product_name_matched = product.name
    preview.match_status = "matched"
    preview.status = "ok"
    return preview


def build_preview(rows: Iterable[SettlementCsvRow], catalog: CatalogIndex) -> list[PreviewRow]:
    return [validate_row(i, row, catalog) for i, row in enumerate(rows, start=1)]


def _find_row(rows: list[PreviewRow], idx: int) -> PreviewRow:
    for row in rows:
        if row.idx == idx:
            return row
    raise KeyError(f"Preview row {idx} not found")


def matchable_row(rows: list[PreviewRow], idx: int) -> PreviewRow:
    """The row at ``idx``, provided the product lookup is its only failure."""
    row = _find_row(rows, idx)
    if not row.needs_product:
        raise ValueError(ERROR_NOT_MATCHABLE)
    return row


def apply_manual_match(rows: list[PreviewRow], idx: int, product) -> PreviewRow:
    """Promote a row to ok by pointing it at an existing product."""
    row = matchable_row(rows, idx)
    row.status = "ok"
    row.error = None
    row.ignored = False
    row.product_id = product.id
    row.product_name = str(product.name or "")
    row.product_name_matched = str(product.name or "")
    row.match_status = "manual"
    return row


def toggle_ignored(rows: list[PreviewRow], idx: int) -> PreviewRow:
    row = _find_row(rows, idx)
    row.ignored = not row.ignored
    return row


def active_rows(rows: Iterable[PreviewRow]) -> list[PreviewRow]:
    return [row for row in rows if not row.ignored]


def blocking_rows(rows: Iterable[PreviewRow]) -> list[PreviewRow]:
    """Non-ignored rows that still carry an error."""
    return [row for row in active_rows(rows) if row.status == "error"]


def can_apply(rows: list[PreviewRow]) -> bool:
    return bool(rows) and not blocking_rows(rows)


def preview_stats(rows: Iterable[PreviewRow]) -> dict:
    active = active_rows(rows)
    ok = [row for row in active if row.is_ok]
    return {
        "ok": len(ok),
        "err": len(active) - len(ok),
        "gross": sum(row.gross for row in ok),
        "sold": sum(row.sold_qty for row in ok),
        "stores": len({row.store_name.strip() for row in ok if row.store_name.strip()}),
    }
