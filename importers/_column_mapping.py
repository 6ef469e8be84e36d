# importers/_column_mapping.py
"""
_column_mapping.py
------------------
Column guessing and row extraction for settlement CSVs.

Two upload contexts exist:
  - marketplace settlement exports: barcode / sold_qty / amount
  - legacy manual mapping: product name / qty (+ optional sku, unit price, amount)

Header guessing normalizes header text and walks a synonym list:
  1. exact normalized match (synonym order)
  2. substring containment either way (synonym order)
  3. "" -> the user has to pick the column by hand

Unit price is never read from the file for marketplace exports; it is
derived from amount / sold_qty.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP

from importers._csv_reader import ParsedCsv, cell, parse_csv_text
from importers._errors import ColumnMappingError

DEFAULT_CURRENCY = "KRW"

BARCODE_CANDIDATES = ["barcode", "바코드", "ean", "jan", "상품바코드"]
SOLD_QTY_CANDIDATES = ["sold_qty", "qty", "수량", "판매수량", "매출수량", "판매량"]
AMOUNT_CANDIDATES = ["amount", "순매출", "매출액", "정산금", "금액"]

PRODUCT_NAME_CANDIDATES = ["productname", "product_name", "상품명", "제품명", "name"]
LEGACY_QTY_CANDIDATES = ["qty", "수량", "판매수량"]
SKU_CANDIDATES = ["sku", "품번", "상품코드"]
UNIT_PRICE_CANDIDATES = ["unit_price", "단가", "판매가"]

_CURRENCY_SYMBOLS = re.compile(r"[₩,]")


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def _to_decimal_loose(value) -> Decimal | None:
    """Parse '1,234' / '₩1,000' style strings; None for blank or non-finite."""
    if value is None:
        return None
    text = _CURRENCY_SYMBOLS.sub("", str(value)).strip()
    if not text:
        return None
    try:
        number = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def round_half_up(value) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_int_safe(value) -> int:
    """Quantity parser: floor, clamp at 0, 0 for anything unparseable."""
    number = _to_decimal_loose(value)
    if number is None:
        return 0
    return max(0, int(number.quantize(Decimal("1"), rounding=ROUND_FLOOR)))


def parse_money_safe(value) -> int:
    """KRW parser: round, clamp at 0, 0 for anything unparseable."""
    number = _to_decimal_loose(value)
    if number is None:
        return 0
    return max(0, round_half_up(number))


# ---------------------------------------------------------------------------
# Header guessing
# ---------------------------------------------------------------------------

def normalize_header(value: str | None) -> str:
    text = str(value or "").strip().lower()
    text = re.sub(r"\s+", "", text)
    return re.sub(r"[_-]", "", text)


def guess_header(headers: list[str], candidates: list[str]) -> str:
    """Return the header that best matches the candidates, or ''."""
    normalized = [(header, normalize_header(header)) for header in headers]

    for candidate in candidates:
        target = normalize_header(candidate)
        for header, norm in normalized:
            if norm == target:
                return header

    for candidate in candidates:
        target = normalize_header(candidate)
        if not target:
            continue
        for header, norm in normalized:
            if not norm:
                continue
            if target in norm or norm in target:
                return header

    return ""


# ---------------------------------------------------------------------------
# Mapping contracts
# ---------------------------------------------------------------------------

@dataclass
class SettlementColumnMapping:
    barcode: str = ""
    sold_qty: str = ""
    amount: str = ""

    @classmethod
    def guess(cls, headers: list[str]) -> "SettlementColumnMapping":
        return cls(
            barcode=guess_header(headers, BARCODE_CANDIDATES),
            sold_qty=guess_header(headers, SOLD_QTY_CANDIDATES),
            amount=guess_header(headers, AMOUNT_CANDIDATES),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.barcode and self.sold_qty and self.amount)

    def to_dict(self) -> dict:
        return asdict(self)

    def resolve(self, headers: list[str]) -> dict[str, int]:
        index = {header: i for i, header in enumerate(headers)}
        required = [
            ("barcode", self.barcode, "매핑 오류: 바코드 컬럼을 선택하세요."),
            ("sold_qty", self.sold_qty, "매핑 오류: 판매수량 컬럼을 선택하세요."),
            ("amount", self.amount, "매핑 오류: 순매출(amount) 컬럼을 선택하세요."),
        ]
        resolved = {}
        for key, column, message in required:
            if not column or column not in index:
                raise ColumnMappingError(message)
            resolved[key] = index[column]
        return resolved


@dataclass
class LegacyColumnMapping:
    product_name: str = ""
    qty: str = ""
    sku: str = ""
    unit_price: str = ""
    amount: str = ""

    @classmethod
    def guess(cls, headers: list[str]) -> "LegacyColumnMapping":
        return cls(
            product_name=guess_header(headers, PRODUCT_NAME_CANDIDATES),
            qty=guess_header(headers, LEGACY_QTY_CANDIDATES),
            sku=guess_header(headers, SKU_CANDIDATES),
            unit_price=guess_header(headers, UNIT_PRICE_CANDIDATES),
            amount=guess_header(headers, AMOUNT_CANDIDATES),
        )

    def resolve(self, headers: list[str]) -> dict[str, int | None]:
        index = {header: i for i, header in enumerate(headers)}
        for column in (self.product_name, self.qty):
            if column not in index:
                raise ColumnMappingError(f"CSV에 '{column}' 컬럼이 없습니다.")
        return {
            "product_name": index[self.product_name],
            "qty": index[self.qty],
            "sku": index.get(self.sku) if self.sku else None,
            "unit_price": index.get(self.unit_price) if self.unit_price else None,
            "amount": index.get(self.amount) if self.amount else None,
        }


# ---------------------------------------------------------------------------
# Row extraction
# ---------------------------------------------------------------------------

@dataclass
class SettlementCsvRow:
    store: str
    period: str
    barcode: str
    sold_qty: int
    unit_price: int
    amount: int = 0
    currency: str = DEFAULT_CURRENCY
    line_no: int = 0


@dataclass
class LegacyCsvRow:
    product_name: str
    qty: int
    sku: str | None = None
    unit_price: Decimal | None = None
    amount: Decimal | None = None
    raw: dict[str, str] = field(default_factory=dict)


def parse_with_mapping(
    csv_text: str,
    mapping: SettlementColumnMapping,
    *,
    store_name: str,
    period_month: str,
) -> list[SettlementCsvRow]:
    """CSV text + marketplace mapping -> settlement rows ready for validation."""
    parsed: ParsedCsv = parse_csv_text(csv_text)
    if parsed.is_empty:
        return []

    columns = mapping.resolve(parsed.headers)
    out: list[SettlementCsvRow] = []

    for line_no, row in enumerate(parsed.rows, start=2):
        barcode = cell(row, columns["barcode"])
        sold_qty = parse_int_safe(cell(row, columns["sold_qty"]))
        amount = parse_money_safe(cell(row, columns["amount"]))

        # completely blank line
        if not barcode and sold_qty == 0 and amount == 0:
            continue

        # amount-only policy: keep the row so validation can flag it
        if sold_qty <= 0 or amount <= 0:
            unit_price = 0
        else:
            unit_price = round_half_up(Decimal(amount) / Decimal(sold_qty))

        out.append(
            SettlementCsvRow(
                store=store_name,
                period=period_month,
                barcode=barcode,
                sold_qty=sold_qty,
                unit_price=unit_price,
                amount=amount,
                currency=DEFAULT_CURRENCY,
                line_no=line_no,
            )
        )

    return out


def parse_legacy_rows(csv_text: str, mapping: LegacyColumnMapping) -> list[LegacyCsvRow]:
    """CSV text + legacy product-name mapping -> loosely parsed rows."""
    parsed = parse_csv_text(csv_text)
    if parsed.is_empty:
        return []

    columns = mapping.resolve(parsed.headers)
    out: list[LegacyCsvRow] = []

    for row in parsed.rows:
        product_name = cell(row, columns["product_name"])
        if not product_name:
            continue

        qty = _to_decimal_loose(cell(row, columns["qty"])) or Decimal("0")
        sku = cell(row, columns["sku"]) if columns["sku"] is not None else ""
        unit_price = (
            _to_decimal_loose(cell(row, columns["unit_price"]))
            if columns["unit_price"] is not None
            else None
        )
        amount = (
            _to_decimal_loose(cell(row, columns["amount"]))
            if columns["amount"] is not None
            else None
        )
        raw = {header: (row[i] if i < len(row) else "") for i, header in enumerate(parsed.headers)}

        out.append(
            LegacyCsvRow(
                product_name=product_name,
                qty=max(0, int(qty.quantize(Decimal("1"), rounding=ROUND_FLOOR))),
                sku=sku or None,
                unit_price=unit_price,
                amount=amount,
                raw=raw,
            )
        )

    return out
