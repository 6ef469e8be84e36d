# importers/_base_Importer.py

import csv
import io
import logging
from contextlib import nullcontext
from pathlib import Path

from django.conf import settings
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger("importers")

COUNTER_LABELS = (
    ("rows_processed", "Rows processed"),
    ("matched", "Matched"),
    ("unmatched", "Unmatched"),
    ("ignored", "Ignored"),
    ("settlements_saved", "Settlements saved"),
    ("inventory_updates", "Inventory updates"),
    ("errors", "Errors"),
)


class BaseImporter:
    """
    Shared plumbing for settlement importers:
    - dry_run support (writes wrapped in atomic, or skipped)
    - run buffer with emoji-prefixed lines, mirrored to the logging module
    - counters for summaries, ImportLog rows and test assertions
    - optional metric,value CSV report per run
    """

    def __init__(self, dry_run=False, log_to_console=False, *, report=False, report_dir=None):
        self.dry_run = dry_run
        self.log_to_console = log_to_console
        self.report_enabled = report
        default_dir = getattr(settings, "SETTLEMENT_REPORT_DIR", "archive/reports")
        self.report_dir = Path(report_dir) if report_dir else Path(default_dir)
        self.report_date = timezone.localdate()
        self.reset()

    def reset(self):
        self.buffer = io.StringIO()
        self.counters = {key: 0 for key, _ in COUNTER_LABELS}
        self.start_time = timezone.now()
        self.finished_at = None
        self._summary_cache = None

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------
    def log(self, message, emoji="💬", level=logging.INFO):
        timestamp = timezone.now().strftime("%H:%M:%S")
        line = f"[{timestamp}] {emoji} {message}"
        self.buffer.write(line + "\n")
        logger.log(level, "%s %s", emoji, message)
        if self.log_to_console:
            print(line)

    def write_context(self):
        """Atomic block for live runs; no-op context for dry runs."""
        return nullcontext() if self.dry_run else transaction.atomic()

    # ---------------------------------------------------------------------
    # Summary
    # ---------------------------------------------------------------------
    def summarize(self):
        if self._summary_cache is not None:
            return self._summary_cache
        self.finished_at = timezone.now()
        elapsed = (self.finished_at - self.start_time).total_seconds()
        lines = [f"\n📊 Settlement Import Summary ({'Dry Run' if self.dry_run else 'Committed'})"]
        lines.extend(f"{label}: {self.counters[key]}" for key, label in COUNTER_LABELS)
        lines.append(f"Elapsed: {elapsed:.2f}s\n")
        summary = "\n".join(lines)
        self.log(summary, "✅")
        if self.report_enabled:
            self._write_report(elapsed)
        self._summary_cache = summary
        return summary

    def get_output(self) -> str:
        return self.buffer.getvalue()

    def get_run_metadata(self) -> dict:
        """Structured data for the most recent run, used to fill ImportLog."""
        duration = None
        if self.finished_at:
            duration = (self.finished_at - self.start_time).total_seconds()
        return {
            "started_at": self.start_time,
            "finished_at": self.finished_at,
            "duration_seconds": duration,
            "stats": dict(self.counters),
        }

    # ---------------------------------------------------------------------
    # Reporting helpers
    # ---------------------------------------------------------------------
    def _write_report(self, elapsed_seconds: float) -> None:
        """Persist a metric,value CSV when reporting is enabled."""

        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self.log(f"Unable to create report directory {self.report_dir}: {exc}", "⚠️", logging.WARNING)
            return

        destination = self.report_dir / f"{self.report_date.isoformat()}.csv"
        rows = [
            ("run_mode", "dry-run" if self.dry_run else "live"),
            ("started_at", self.start_time.isoformat()),
            ("elapsed_seconds", f"{elapsed_seconds:.2f}"),
        ]
        rows.extend((key, str(value)) for key, value in self.counters.items())

        with destination.open("w", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(["metric", "value"])
            writer.writerows(rows)

        self.log(f"Report written to {destination}", "📝")
