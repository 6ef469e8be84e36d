# consignInventory/models.py

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


# Helpers
CURRENCY_CHOICES = (
    ("KRW", "KRW"),
)

SETTLEMENT_STATUS_CHOICES = (
    ("draft", "Draft"),
    ("confirmed", "Confirmed"),
)

MATCH_STATUS_CHOICES = (
    ("matched", "Matched"),
    ("unmatched", "Unmatched"),
    ("manual", "Manual"),
)


class Product(models.Model):
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=128, blank=True, null=True)
    active = models.BooleanField(default=True, help_text="Currently sold.")
    make_enabled = models.BooleanField(default=True, help_text="Included in production planning.")
    price = models.PositiveIntegerField(default=0, help_text="List price in KRW.")
    sku = models.CharField(max_length=128, blank=True, null=True)
    # Settlement CSVs resolve rows to products through the barcode.
    barcode = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"], name="product_sku_idx"),
            models.Index(fields=["barcode"], name="product_barcode_idx"),
        ]

    def __str__(self):
        if self.barcode:
            return f"{self.name} ({self.barcode})"
        return self.name


class Store(models.Model):
    """A store / marketplace (입점처) that sells consigned products."""

    name = models.CharField(max_length=255)
    # Percentage (25 == 25%). MarketplaceSetting stores a 0-1 fraction instead.
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Commission in percent, e.g. 25 for 25%.",
    )
    target_qty_override = models.PositiveIntegerField(null=True, blank=True)
    memo = models.TextField(blank=True)
    contact_name = models.CharField(max_length=128, blank=True)
    phone = models.CharField(max_length=64, blank=True)
    address = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def commission_fraction(self) -> Decimal:
        return (Decimal(self.commission_rate or 0) / Decimal("100"))


class MarketplaceSetting(models.Model):
    """Per-store settlement settings; commission_rate is a fraction (0.25)."""

    store = models.OneToOneField(Store, on_delete=models.CASCADE, related_name="marketplace_setting")
    commission_rate = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Commission as a fraction, e.g. 0.2500.",
    )
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.store.name} settings"


class InventoryItem(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="inventory_items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="inventory_items")
    on_hand_qty = models.IntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("store", "product")
        ordering = ["store__name", "product__name"]

    def __str__(self):
        return f"{self.store.name} / {self.product.name}: {self.on_hand_qty}"


class Settlement(models.Model):
    """Settlement header: one per owner + store + month."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="settlements",
    )
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="settlements")
    period_month = models.CharField(max_length=7, help_text="YYYY-MM")
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="KRW")
    gross_amount = models.BigIntegerField(default=0)
    commission_rate = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0"))
    commission_amount = models.BigIntegerField(default=0)
    net_amount = models.BigIntegerField(default=0)
    rows_count = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=SETTLEMENT_STATUS_CHOICES, default="draft")
    apply_to_inventory = models.BooleanField(default=False)
    source_filename = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("owner", "store", "period_month")
        ordering = ["-period_month", "store__name"]

    def __str__(self):
        return f"{self.store.name} {self.period_month}"


class SettlementLine(models.Model):
    settlement = models.ForeignKey(Settlement, on_delete=models.CASCADE, related_name="lines")
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="settlement_lines")
    product = models.ForeignKey(
        Product,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="settlement_lines",
    )
    product_name_raw = models.CharField(max_length=255)
    product_name_matched = models.CharField(max_length=255, blank=True, null=True)
    sku_raw = models.CharField(max_length=128, blank=True, null=True)
    qty_sold = models.PositiveIntegerField(default=0)
    unit_price = models.BigIntegerField(default=0)
    gross_amount = models.BigIntegerField(default=0)
    match_status = models.CharField(max_length=16, choices=MATCH_STATUS_CHOICES, default="matched")

    class Meta:
        ordering = ["settlement", "product_name_raw"]

    def __str__(self):
        return f"{self.product_name_raw} x{self.qty_sold}"


class ImportLog(models.Model):
    SOURCE_CHOICES = [
        ("settlement", "Settlement CSV"),
    ]
    RUN_TYPE_CHOICES = [
        ("dry-run", "Dry Run"),
        ("live", "Live"),
    ]

    source = models.CharField(max_length=50, choices=SOURCE_CHOICES, default="settlement")
    run_type = models.CharField(max_length=20, choices=RUN_TYPE_CHOICES, default="dry-run")
    filename = models.CharField(max_length=255, blank=True)
    store = models.ForeignKey(Store, null=True, blank=True, on_delete=models.SET_NULL, related_name="import_logs")
    period_month = models.CharField(max_length=7, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    duration_seconds = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    rows_processed = models.PositiveIntegerField(default=0)
    matched_count = models.PositiveIntegerField(default=0)
    unmatched_count = models.PositiveIntegerField(default=0)
    ignored_count = models.PositiveIntegerField(default=0)
    settlements_saved = models.PositiveIntegerField(default=0)
    inventory_updates = models.PositiveIntegerField(default=0)
    error_count = models.PositiveIntegerField(default=0)
    summary = models.TextField(blank=True)
    log_output = models.TextField(blank=True, null=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="import_logs",
    )

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        timestamp = self.created_at.astimezone(timezone.get_current_timezone()) if self.created_at else None
        ts_display = timestamp.strftime("%Y-%m-%d %H:%M") if timestamp else "pending"
        return f"{self.get_source_display()} {self.get_run_type_display()} @ {ts_display}"
