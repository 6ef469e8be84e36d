"""
settlement_importer.py
----------------------
Primary importer for marketplace settlement CSVs.
Handles:
- CSV decoding and header guessing (via load_text)
- Row mapping + validation into an editable preview (via build_preview)
- Aggregation, commission and persistence per store/month (via apply)
- Inventory deltas when the operator confirmed them up front
- Safe dry-run and summary reporting
"""

import logging
from decimal import Decimal
from pathlib import Path

from consignInventory.models import ImportLog, Product, SettlementLine, Store
from consignInventory.utils import settlements as settlement_store
from consignInventory.utils.inventory_deltas import apply_deltas, compute_deltas, sum_qty_by_product
from importers._aggregate_settlement import SettlementGroup, aggregate_settlements, get_unit_price_policy
from importers._base_Importer import BaseImporter
from importers._column_mapping import SettlementColumnMapping, parse_with_mapping
from importers._csv_reader import ParsedCsv, decode_csv_bytes, parse_csv_text
from importers._errors import CsvParseError, SettlementApplyError
from importers._match_product import CatalogIndex
from importers._preview import (
    PreviewRow,
    active_rows,
    apply_manual_match,
    blocking_rows,
    build_preview,
    matchable_row,
)

ERROR_EMPTY_CSV = "CSV가 비어있거나 헤더를 읽을 수 없습니다."
ERROR_BLOCKING_ROWS = "오류가 있는 행이 {count}개 있습니다. 수정하거나 무시한 뒤 적용하세요."
ERROR_NOTHING_TO_APPLY = "적용할 행이 없습니다."
ERROR_CONFIRM_INVENTORY = "재고 반영을 확인해야 적용할 수 있습니다."


def create_product_from_row(rows, idx, *, name, sku=None, barcode=None):
    """Create a catalog product for an unmatched row and match the row to it."""
    name = (name or "").strip()
    if not name:
        raise ValueError("제품명을 입력하세요.")
    matchable_row(rows, idx)
    product = Product.objects.create(
        name=name,
        sku=(sku or "").strip() or None,
        barcode=(barcode or "").strip() or None,
        active=True,
        make_enabled=True,
        price=0,
    )
    apply_manual_match(rows, idx, product)
    return product


class SettlementImporter(BaseImporter):
    def __init__(self, dry_run: bool = False, *, policy: str | None = None, **kwargs):
        super().__init__(dry_run=dry_run, **kwargs)
        self.policy = get_unit_price_policy(policy)
        self.preview_rows: list[PreviewRow] = []
        self.saved = []
        self.groups: list[SettlementGroup] = []

    # ------------------------------------------------------------------
    # Upload + preview
    # ------------------------------------------------------------------
    def load_text(self, text: str, filename: str = "") -> tuple[ParsedCsv, SettlementColumnMapping]:
        """Parse the raw CSV once to expose headers and a guessed mapping."""
        parsed = parse_csv_text(text)
        if parsed.is_empty:
            self.counters["errors"] += 1
            self.log(f"{filename or 'CSV'}: {ERROR_EMPTY_CSV}", "❌", logging.ERROR)
            raise CsvParseError(ERROR_EMPTY_CSV)

        mapping = SettlementColumnMapping.guess(parsed.headers)
        self.log(
            f"Loaded {filename or 'CSV'}: {len(parsed.headers)} columns, {len(parsed.rows)} rows "
            f"(barcode={mapping.barcode or '?'}, sold_qty={mapping.sold_qty or '?'}, amount={mapping.amount or '?'})",
            "📥",
        )
        return parsed, mapping

    def build_preview(
        self,
        text: str,
        mapping: SettlementColumnMapping,
        store_name: str,
        period_month: str,
        *,
        catalog: CatalogIndex | None = None,
    ) -> list[PreviewRow]:
        csv_rows = parse_with_mapping(text, mapping, store_name=store_name, period_month=period_month)
        catalog = catalog or CatalogIndex.from_db()
        rows = build_preview(csv_rows, catalog)

        self.counters["rows_processed"] = len(rows)
        self.counters["matched"] = sum(1 for row in rows if row.is_ok)
        self.counters["unmatched"] = len(rows) - self.counters["matched"]
        for row in rows:
            if not row.is_ok:
                self.log(f"Row {row.line_no or row.idx} ({row.barcode or '-'}): {row.error}", "⚠️", logging.WARNING)
        self.log(
            f"Preview ready: {self.counters['matched']} ok / {self.counters['unmatched']} error",
            "🔎",
        )
        self.preview_rows = rows
        return rows

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------
    def _check_gate(self, rows, apply_to_inventory, confirm_inventory):
        blocking = blocking_rows(rows)
        if blocking:
            raise SettlementApplyError(ERROR_BLOCKING_ROWS.format(count=len(blocking)))
        if not [row for row in active_rows(rows) if row.is_ok]:
            raise SettlementApplyError(ERROR_NOTHING_TO_APPLY)
        if apply_to_inventory and not confirm_inventory:
            raise SettlementApplyError(ERROR_CONFIRM_INVENTORY)

    def apply(
        self,
        rows: list[PreviewRow],
        *,
        apply_to_inventory: bool = False,
        confirm_inventory: bool = False,
        source_filename: str = "",
        owner=None,
    ):
        """
        Persist one settlement per (store, month) found in ``rows``.

        Nothing is written when the gate refuses. Each group is its own atomic
        block, so a failure leaves earlier groups committed and re-raises as
        SettlementApplyError.
        """
        self.counters["rows_processed"] = len(rows)
        self.counters["matched"] = sum(1 for row in rows if row.is_ok)
        self.counters["unmatched"] = len(rows) - self.counters["matched"]
        try:
            self._check_gate(rows, apply_to_inventory, confirm_inventory)
        except SettlementApplyError as exc:
            self.counters["errors"] += 1
            self.log(str(exc), "❌", logging.ERROR)
            raise

        self.counters["ignored"] = sum(1 for row in rows if row.ignored)
        self.log(
            f"Starting {'dry-run' if self.dry_run else 'live'} apply "
            f"(policy={self.policy}, inventory={'on' if apply_to_inventory else 'off'})",
            "🚀",
        )

        store_ids = {row.store_id for row in active_rows(rows) if row.store_id is not None}
        stores = Store.objects.in_bulk(list(store_ids))
        self.groups = aggregate_settlements(rows, stores, policy=self.policy)
        self.saved = []

        for group in self.groups:
            try:
                with self.write_context():
                    settlement = self._persist_group(
                        group,
                        apply_to_inventory=apply_to_inventory,
                        source_filename=source_filename,
                        owner=owner,
                    )
            except Exception as exc:
                self.counters["errors"] += 1
                self.log(f"{group.store_name} {group.period_month}: {exc}", "❌", logging.ERROR)
                raise SettlementApplyError(
                    f"정산 저장 실패 ({group.store_name} {group.period_month}): {exc}"
                ) from exc
            self.saved.append(settlement)

        self.summarize()
        return self.saved

    def _persist_group(self, group: SettlementGroup, *, apply_to_inventory, source_filename, owner):
        header = settlement_store.find_header(group.store_id, group.period_month, owner=owner)
        old_qty = sum_qty_by_product(settlement_store.list_lines(header.pk)) if header else {}
        deltas = compute_deltas(old_qty, group.qty_by_product) if apply_to_inventory else {}

        label = f"{group.store_name} {group.period_month}"
        if self.dry_run:
            self.counters["settlements_saved"] += 1
            self.counters["inventory_updates"] += len(deltas)
            self.log(
                f"[Dry Run] Would save {label}: gross={group.gross_amount} "
                f"commission={group.commission_amount} ({group.commission_rate}) net={group.net_amount}, "
                f"{group.rows_count} lines, {len(deltas)} inventory changes",
                "🧪",
            )
            return group

        header = settlement_store.upsert_header(
            store_id=group.store_id,
            period_month=group.period_month,
            gross_amount=group.gross_amount,
            commission_rate=group.commission_rate,
            commission_amount=group.commission_amount,
            net_amount=group.net_amount,
            rows_count=group.rows_count,
            apply_to_inventory=apply_to_inventory,
            source_filename=source_filename,
            currency=group.currency,
            owner=owner,
        )
        settlement_store.replace_lines(
            header.pk,
            [
                SettlementLine(
                    store_id=group.store_id,
                    product_id=line.product_id,
                    product_name_raw=line.product_name,
                    product_name_matched=line.product_name,
                    sku_raw=line.sku,
                    qty_sold=line.qty_sold,
                    unit_price=line.unit_price,
                    gross_amount=line.gross_amount,
                    match_status=line.match_status,
                )
                for line in group.lines
            ],
        )
        updates = apply_deltas(group.store_id, deltas) if deltas else 0
        self.counters["settlements_saved"] += 1
        self.counters["inventory_updates"] += updates
        self.log(
            f"Saved {label}: gross={group.gross_amount} net={group.net_amount}, "
            f"{group.rows_count} lines, {updates} inventory updates",
            "💾",
        )
        return header

    # ------------------------------------------------------------------
    # CLI entry
    # ------------------------------------------------------------------
    def run_from_file(
        self,
        file_path: Path,
        *,
        store_name: str,
        period_month: str,
        mapping: SettlementColumnMapping | None = None,
        apply_to_inventory: bool = False,
        confirm_inventory: bool = False,
        owner=None,
    ):
        """Load, preview and apply a settlement CSV from disk."""
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        text = decode_csv_bytes(file_path.read_bytes())
        _, guessed = self.load_text(text, file_path.name)
        if mapping is None:
            mapping = guessed
        else:
            mapping = SettlementColumnMapping(
                barcode=mapping.barcode or guessed.barcode,
                sold_qty=mapping.sold_qty or guessed.sold_qty,
                amount=mapping.amount or guessed.amount,
            )

        rows = self.build_preview(text, mapping, store_name, period_month)
        return self.apply(
            rows,
            apply_to_inventory=apply_to_inventory,
            confirm_inventory=confirm_inventory,
            source_filename=file_path.name,
            owner=owner,
        )

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def write_import_log(self, *, filename="", store=None, period_month="", user=None) -> ImportLog:
        summary = self.summarize()
        metadata = self.get_run_metadata()
        stats = metadata["stats"]
        duration = metadata.get("duration_seconds")
        return ImportLog.objects.create(
            source="settlement",
            run_type="dry-run" if self.dry_run else "live",
            filename=filename or "",
            store=store,
            period_month=period_month or "",
            started_at=metadata.get("started_at"),
            finished_at=metadata.get("finished_at"),
            duration_seconds=Decimal(str(round(duration, 2))) if duration is not None else None,
            rows_processed=stats.get("rows_processed", 0),
            matched_count=stats.get("matched", 0),
            unmatched_count=stats.get("unmatched", 0),
            ignored_count=stats.get("ignored", 0),
            settlements_saved=stats.get("settlements_saved", 0),
            inventory_updates=stats.get("inventory_updates", 0),
            error_count=stats.get("errors", 0),
            summary=summary,
            log_output=self.get_output(),
            uploaded_by=user if getattr(user, "is_authenticated", False) else None,
        )
