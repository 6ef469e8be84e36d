"""
_aggregate_settlement.py
------------------------
Turns validated preview rows into settlement headers and lines.

Flow:
  1. Drop ignored and error rows.
  2. Group by (store_id, period) in first-seen order.
  3. Inside a group, merge rows per product:
       qty_sold     = sum of sold_qty
       gross_amount = sum of the rows' CSV amounts
       unit_price   = chosen by the configured policy
  4. Resolve the commission rate and derive commission / net.

Commission rate lookup:
  marketplace setting (0-1 fraction, non-zero) -> store percent / 100 -> 0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable

from django.conf import settings

from importers._column_mapping import DEFAULT_CURRENCY, round_half_up
from importers._preview import PreviewRow

logger = logging.getLogger(__name__)

UNIT_PRICE_POLICIES = ("last", "first", "average")
DEFAULT_UNIT_PRICE_POLICY = "last"


def get_unit_price_policy(policy: str | None = None) -> str:
    """Explicit argument, then SETTLEMENT_UNIT_PRICE_POLICY, then 'last'."""
    value = policy or getattr(settings, "SETTLEMENT_UNIT_PRICE_POLICY", DEFAULT_UNIT_PRICE_POLICY)
    value = str(value or "").strip().lower()
    if value not in UNIT_PRICE_POLICIES:
        logger.warning("Unknown unit price policy %r, falling back to %r", value, DEFAULT_UNIT_PRICE_POLICY)
        return DEFAULT_UNIT_PRICE_POLICY
    return value


@dataclass
class AggregatedLine:
    product_id: int
    product_name: str
    qty_sold: int = 0
    unit_price: int = 0
    gross_amount: int = 0
    match_status: str = "matched"
    sku: str | None = None

    def add(self, row: PreviewRow, policy: str) -> None:
        first = self.qty_sold == 0
        self.qty_sold += row.sold_qty
        self.gross_amount += row.amount
        if row.match_status == "manual":
            self.match_status = "manual"

        if policy == "first":
            if first:
                self.unit_price = row.unit_price
        elif policy == "average":
            self.unit_price = round_half_up(Decimal(self.gross_amount) / Decimal(self.qty_sold))
        else:
            self.unit_price = row.unit_price


@dataclass
class SettlementGroup:
    store_id: int
    period_month: str
    store_name: str = ""
    currency: str = DEFAULT_CURRENCY
    lines: list[AggregatedLine] = field(default_factory=list)
    commission_rate: Decimal = Decimal("0")
    commission_amount: int = 0
    net_amount: int = 0

    @property
    def key(self) -> tuple[int, str]:
        return (self.store_id, self.period_month)

    @property
    def gross_amount(self) -> int:
        return sum(line.gross_amount for line in self.lines)

    @property
    def rows_count(self) -> int:
        return len(self.lines)

    @property
    def qty_by_product(self) -> dict[int, int]:
        return {line.product_id: line.qty_sold for line in self.lines}

    def apply_commission(self, rate: Decimal) -> None:
        self.commission_rate = Decimal(rate)
        gross = self.gross_amount
        self.commission_amount = round_half_up(Decimal(gross) * self.commission_rate)
        self.net_amount = gross - self.commission_amount


def group_rows(rows: Iterable[PreviewRow], policy: str | None = None) -> list[SettlementGroup]:
    """Group usable rows by (store, period) and merge lines per product."""
    policy = get_unit_price_policy(policy)
    groups: dict[tuple[int, str], SettlementGroup] = {}
    line_index: dict[tuple[int, str], dict[int, AggregatedLine]] = {}

    for row in rows:
        if row.ignored or row.status != "ok":
            continue
        if row.store_id is None or row.product_id is None:
            continue

        key = (row.store_id, row.period)
        group = groups.get(key)
        if group is None:
            group = SettlementGroup(
                store_id=row.store_id,
                period_month=row.period,
                store_name=row.store_name,
                currency=row.currency or DEFAULT_CURRENCY,
            )
            groups[key] = group
            line_index[key] = {}

        lines = line_index[key]
        line = lines.get(row.product_id)
        if line is None:
            line = AggregatedLine(
                product_id=row.product_id,
                product_name=row.product_name_matched or row.product_name or row.barcode,
                match_status=row.match_status,
            )
            lines[row.product_id] = line
            group.lines.append(line)
        line.add(row, policy)

    return list(groups.values())


# ---------------------------------------------------------------------------
# Commission
# ---------------------------------------------------------------------------

def _marketplace_fraction(store) -> Decimal | None:
    from consignInventory.models import MarketplaceSetting

    setting = MarketplaceSetting.objects.filter(store_id=store.id).first()
    if setting is None or setting.commission_rate is None:
        return None
    return Decimal(setting.commission_rate)


def resolve_commission_rate(
    store,
    *,
    marketplace_lookup: Callable[[object], Decimal | None] | None = None,
) -> Decimal:
    """
    Commission as a 0-1 fraction for a store.

    A marketplace setting wins when it exists and is non-zero. Failures while
    reading it are logged and treated as "no setting".
    """
    lookup = marketplace_lookup or _marketplace_fraction
    try:
        fraction = lookup(store)
    except Exception:
        logger.warning("Marketplace settings lookup failed for store %s", getattr(store, "id", None), exc_info=True)
        fraction = None

    if fraction:
        return Decimal(fraction)

    store_pct = getattr(store, "commission_rate", None)
    if store_pct:
        return Decimal(store_pct) / Decimal("100")
    return Decimal("0")


def aggregate_settlements(
    rows: Iterable[PreviewRow],
    stores: dict,
    *,
    policy: str | None = None,
    marketplace_lookup: Callable[[object], Decimal | None] | None = None,
) -> list[SettlementGroup]:
    """Group rows and attach commission using the ``stores`` id -> Store map."""
    groups = group_rows(rows, policy=policy)
    for group in groups:
        store = stores.get(group.store_id)
        if store is None:
            group.apply_commission(Decimal("0"))
            continue
        group.store_name = store.name
        group.apply_commission(resolve_commission_rate(store, marketplace_lookup=marketplace_lookup))
    return groups
