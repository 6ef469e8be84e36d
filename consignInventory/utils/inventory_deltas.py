"""Per-store on-hand adjustments driven by settlement sales."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from ..models import InventoryItem

logger = logging.getLogger(__name__)


def read_on_hand(store_id: int, product_id: int) -> int:
    item = InventoryItem.objects.filter(store_id=store_id, product_id=product_id).first()
    return int(item.on_hand_qty) if item else 0


def write_on_hand(store_id: int, product_id: int, qty: int) -> InventoryItem:
    item, _ = InventoryItem.objects.update_or_create(
        store_id=store_id,
        product_id=product_id,
        defaults={"on_hand_qty": int(qty)},
    )
    return item


def sum_qty_by_product(lines: Iterable) -> dict[int, int]:
    """Sold quantity per product over settlement lines (unlinked lines skipped)."""
    totals: dict[int, int] = defaultdict(int)
    for line in lines:
        if line.product_id is None:
            continue
        totals[line.product_id] += int(line.qty_sold or 0)
    return dict(totals)


def compute_deltas(old_qty: dict[int, int], new_qty: dict[int, int]) -> dict[int, int]:
    """new - old for every product in either map, zeros dropped."""
    deltas = {}
    for product_id in dict.fromkeys([*old_qty, *new_qty]):
        delta = int(new_qty.get(product_id, 0)) - int(old_qty.get(product_id, 0))
        if delta:
            deltas[product_id] = delta
    return deltas


def apply_deltas(store_id: int, deltas: dict[int, int]) -> int:
    """
    Positive delta means more sold: take it off on-hand, never below 0.
    Negative delta means a corrected re-upload sold less: give it back.
    """
    updated = 0
    for product_id, delta in deltas.items():
        if not delta:
            continue
        current = read_on_hand(store_id, product_id)
        if delta > 0:
            next_qty = max(0, current - delta)
        else:
            next_qty = current + abs(delta)
        write_on_hand(store_id, product_id, next_qty)
        logger.debug("store=%s product=%s on_hand %s -> %s", store_id, product_id, current, next_qty)
        updated += 1
    return updated


def restore(store_id: int, lines: Iterable) -> int:
    """Add back every sold quantity from lines that are about to be deleted."""
    updated = 0
    for product_id, qty in sum_qty_by_product(lines).items():
        if qty <= 0:
            continue
        write_on_hand(store_id, product_id, read_on_hand(store_id, product_id) + qty)
        updated += 1
    return updated
