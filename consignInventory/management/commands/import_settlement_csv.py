"""Wrap the SettlementImporter for CLI execution."""

import re
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from importers import SettlementImporter
from importers._column_mapping import SettlementColumnMapping
from importers._errors import SettlementImportError
from importers._match_product import find_store_by_name

PERIOD_RE = re.compile(r"^\d{4}-\d{2}$")


class Command(BaseCommand):
    """Preview a settlement CSV and save it when every row is clean."""
    help = "Import a marketplace settlement CSV for one store and month. Supports --dry-run."

    def add_arguments(self, parser):
        parser.add_argument(
            "--file",
            required=True,
            help="Path to the settlement CSV file (relative names also looked up in SETTLEMENT_CSV_DIR).",
        )
        parser.add_argument("--store", required=True, help="Store name exactly as registered.")
        parser.add_argument("--month", required=True, help="Settlement month (YYYY-MM).")
        parser.add_argument("--barcode-col", default="", help="Header of the barcode column (guessed if omitted).")
        parser.add_argument("--qty-col", default="", help="Header of the sold quantity column (guessed if omitted).")
        parser.add_argument("--amount-col", default="", help="Header of the net sales column (guessed if omitted).")
        parser.add_argument(
            "--apply-inventory",
            action="store_true",
            help="Subtract sold quantities from the store's on-hand stock (counts as confirmation).",
        )
        parser.add_argument("--dry-run", action="store_true", help="Simulate only (no DB writes).")
        parser.add_argument("--report", action="store_true", help="Write a metric,value CSV report.")

    def handle(self, *args, **opts):
        file_path = Path(opts["file"])
        if not file_path.exists() and not file_path.is_absolute():
            # bare names fall back to the configured drop folder
            file_path = Path(getattr(settings, "SETTLEMENT_CSV_DIR", ".")) / file_path
        if not file_path.exists():
            raise CommandError(f"File not found: {file_path}")

        month = (opts["month"] or "").strip()
        if not PERIOD_RE.match(month):
            raise CommandError(f"Invalid --month value: {month} (expected YYYY-MM)")

        store = find_store_by_name(opts["store"])
        if store is None:
            raise CommandError(f"Store not found: {opts['store']}")

        mapping = SettlementColumnMapping(
            barcode=opts["barcode_col"],
            sold_qty=opts["qty_col"],
            amount=opts["amount_col"],
        )
        importer = SettlementImporter(dry_run=opts["dry_run"], report=opts["report"])
        self.stdout.write(self.style.NOTICE(
            f"📥 Importing {file_path} for {store.name} {month} {'(dry-run)' if opts['dry_run'] else ''}"
        ))

        try:
            saved = importer.run_from_file(
                file_path,
                store_name=store.name,
                period_month=month,
                mapping=mapping,
                apply_to_inventory=opts["apply_inventory"],
                confirm_inventory=opts["apply_inventory"],
            )
        except SettlementImportError as exc:
            for row in importer.preview_rows:
                if row.status == "error" and not row.ignored:
                    self.stderr.write(f"  line {row.line_no}: {row.barcode or '-'} {row.error}")
            importer.write_import_log(filename=file_path.name, store=store, period_month=month)
            raise CommandError(f"Import failed: {exc}") from exc

        importer.write_import_log(filename=file_path.name, store=store, period_month=month)
        self.stdout.write(importer.get_output())
        self.stdout.write(self.style.SUCCESS(
            f"✅ Done. {len(saved)} settlement(s), {importer.counters['inventory_updates']} inventory update(s)."
        ))
