"""Settlement header/line persistence helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from django.db import transaction

from importers._errors import SettlementDeleteError

from ..models import Settlement, SettlementLine
from .inventory_deltas import restore

logger = logging.getLogger(__name__)


@dataclass
class SettlementDetail:
    header: Settlement
    lines: list[SettlementLine]

    @property
    def total_qty(self) -> int:
        return sum(line.qty_sold for line in self.lines)


def _owner_filter(owner) -> dict:
    if owner is not None and not getattr(owner, "is_authenticated", True):
        owner = None
    return {"owner": owner}


def find_header(store_id: int, period_month: str, *, owner=None) -> Settlement | None:
    return (
        Settlement.objects.filter(store_id=store_id, period_month=period_month, **_owner_filter(owner))
        .order_by("id")
        .first()
    )


def upsert_header(
    *,
    store_id: int,
    period_month: str,
    gross_amount: int,
    commission_rate: Decimal,
    commission_amount: int,
    net_amount: int,
    rows_count: int,
    apply_to_inventory: bool = False,
    source_filename: str = "",
    status: str = "draft",
    currency: str = "KRW",
    owner=None,
) -> Settlement:
    """Create or overwrite the header for owner + store + month."""
    values = {
        "currency": currency,
        "gross_amount": int(gross_amount),
        "commission_rate": Decimal(commission_rate),
        "commission_amount": int(commission_amount),
        "net_amount": int(net_amount),
        "rows_count": int(rows_count),
        "status": status,
        "apply_to_inventory": bool(apply_to_inventory),
        "source_filename": source_filename or "",
    }
    header = find_header(store_id, period_month, owner=owner)
    if header is None:
        header = Settlement.objects.create(
            store_id=store_id,
            period_month=period_month,
            **_owner_filter(owner),
            **values,
        )
        logger.info("Created settlement %s for store=%s period=%s", header.pk, store_id, period_month)
        return header

    for key, value in values.items():
        setattr(header, key, value)
    header.save()
    logger.info("Updated settlement %s for store=%s period=%s", header.pk, store_id, period_month)
    return header


def list_lines(settlement_id: int) -> list[SettlementLine]:
    return list(
        SettlementLine.objects.filter(settlement_id=settlement_id)
        .select_related("product")
        .order_by("id")
    )


def replace_lines(settlement_id: int, lines: Iterable[SettlementLine]) -> list[SettlementLine]:
    """Delete every line of the header, then insert ``lines``. Never merges."""
    new_lines = list(lines)
    for line in new_lines:
        line.settlement_id = settlement_id
    with transaction.atomic():
        SettlementLine.objects.filter(settlement_id=settlement_id).delete()
        created = SettlementLine.objects.bulk_create(new_lines)
    return created


def delete_header(settlement_id: int) -> None:
    deleted = Settlement.objects.filter(pk=settlement_id).delete()[0]
    if not deleted:
        raise SettlementDeleteError(f"정산 삭제 실패: 삭제된 행이 없습니다. (id={settlement_id})")


def list_headers(store_id: int | None = None, period_month: str | None = None, *, owner=None):
    qs = Settlement.objects.select_related("store").order_by("-period_month", "store__name", "id")
    if owner is not None:
        qs = qs.filter(**_owner_filter(owner))
    if store_id:
        qs = qs.filter(store_id=store_id)
    if period_month:
        qs = qs.filter(period_month=period_month)
    return qs


def get_detail(settlement_id: int) -> SettlementDetail:
    header = Settlement.objects.select_related("store").get(pk=settlement_id)
    return SettlementDetail(header=header, lines=list_lines(header.pk))


def delete_settlement(settlement_id: int, *, restore_inventory: bool = False) -> int:
    """
    Delete lines then header, optionally adding sold quantities back to stock.

    Returns the number of inventory rows touched by the restore.
    """
    with transaction.atomic():
        header = Settlement.objects.filter(pk=settlement_id).first()
        restored = 0
        if header is not None and restore_inventory:
            restored = restore(header.store_id, list_lines(header.pk))
        SettlementLine.objects.filter(settlement_id=settlement_id).delete()
        delete_header(settlement_id)
    logger.info("Deleted settlement %s (restore_inventory=%s)", settlement_id, restore_inventory)
    return restored
