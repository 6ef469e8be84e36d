from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("category", models.CharField(blank=True, max_length=128, null=True)),
                ("active", models.BooleanField(default=True, help_text="Currently sold.")),
                ("make_enabled", models.BooleanField(default=True, help_text="Included in production planning.")),
                ("price", models.PositiveIntegerField(default=0, help_text="List price in KRW.")),
                ("sku", models.CharField(blank=True, max_length=128, null=True)),
                ("barcode", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["sku"], name="product_sku_idx"),
                    models.Index(fields=["barcode"], name="product_barcode_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Store",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                (
                    "commission_rate",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Commission in percent, e.g. 25 for 25%.",
                        max_digits=5,
                        null=True,
                    ),
                ),
                ("target_qty_override", models.PositiveIntegerField(blank=True, null=True)),
                ("memo", models.TextField(blank=True)),
                ("contact_name", models.CharField(blank=True, max_length=128)),
                ("phone", models.CharField(blank=True, max_length=64)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="MarketplaceSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "commission_rate",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Commission as a fraction, e.g. 0.2500.",
                        max_digits=6,
                        null=True,
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "store",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="marketplace_setting",
                        to="consignInventory.store",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("on_hand_qty", models.IntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory_items",
                        to="consignInventory.product",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory_items",
                        to="consignInventory.store",
                    ),
                ),
            ],
            options={
                "ordering": ["store__name", "product__name"],
                "unique_together": {("store", "product")},
            },
        ),
        migrations.CreateModel(
            name="Settlement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("period_month", models.CharField(help_text="YYYY-MM", max_length=7)),
                ("currency", models.CharField(choices=[("KRW", "KRW")], default="KRW", max_length=3)),
                ("gross_amount", models.BigIntegerField(default=0)),
                ("commission_rate", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=6)),
                ("commission_amount", models.BigIntegerField(default=0)),
                ("net_amount", models.BigIntegerField(default=0)),
                ("rows_count", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("confirmed", "Confirmed")],
                        default="draft",
                        max_length=16,
                    ),
                ),
                ("apply_to_inventory", models.BooleanField(default=False)),
                ("source_filename", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="settlements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="settlements",
                        to="consignInventory.store",
                    ),
                ),
            ],
            options={
                "ordering": ["-period_month", "store__name"],
                "unique_together": {("owner", "store", "period_month")},
            },
        ),
        migrations.CreateModel(
            name="SettlementLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name_raw", models.CharField(max_length=255)),
                ("product_name_matched", models.CharField(blank=True, max_length=255, null=True)),
                ("sku_raw", models.CharField(blank=True, max_length=128, null=True)),
                ("qty_sold", models.PositiveIntegerField(default=0)),
                ("unit_price", models.BigIntegerField(default=0)),
                ("gross_amount", models.BigIntegerField(default=0)),
                (
                    "match_status",
                    models.CharField(
                        choices=[("matched", "Matched"), ("unmatched", "Unmatched"), ("manual", "Manual")],
                        default="matched",
                        max_length=16,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="settlement_lines",
                        to="consignInventory.product",
                    ),
                ),
                (
                    "settlement",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="consignInventory.settlement",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="settlement_lines",
                        to="consignInventory.store",
                    ),
                ),
            ],
            options={"ordering": ["settlement", "product_name_raw"]},
        ),
        migrations.CreateModel(
            name="ImportLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "source",
                    models.CharField(
                        choices=[("settlement", "Settlement CSV")],
                        default="settlement",
                        max_length=50,
                    ),
                ),
                (
                    "run_type",
                    models.CharField(
                        choices=[("dry-run", "Dry Run"), ("live", "Live")],
                        default="dry-run",
                        max_length=20,
                    ),
                ),
                ("filename", models.CharField(blank=True, max_length=255)),
                ("period_month", models.CharField(blank=True, max_length=7)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("duration_seconds", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("rows_processed", models.PositiveIntegerField(default=0)),
                ("matched_count", models.PositiveIntegerField(default=0)),
                ("unmatched_count", models.PositiveIntegerField(default=0)),
                ("ignored_count", models.PositiveIntegerField(default=0)),
                ("settlements_saved", models.PositiveIntegerField(default=0)),
                ("inventory_updates", models.PositiveIntegerField(default=0)),
                ("error_count", models.PositiveIntegerField(default=0)),
                ("summary", models.TextField(blank=True)),
                ("log_output", models.TextField(blank=True, null=True)),
                (
                    "store",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="import_logs",
                        to="consignInventory.store",
                    ),
                ),
                (
                    "uploaded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="import_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ("-created_at",)},
        ),
    ]
