"""Admin customizations for catalog, stores, settlements and imports."""
from django.contrib import admin

from .models import (
    ImportLog,
    InventoryItem,
    MarketplaceSetting,
    Product,
    Settlement,
    SettlementLine,
    Store,
)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "barcode", "category", "price", "active", "make_enabled", "created_at")
    list_filter = ("active", "make_enabled", "category")
    search_fields = ("name", "sku", "barcode")
    ordering = ["name"]


class MarketplaceSettingInline(admin.StackedInline):
    """Fraction-based commission that overrides the store percent when non-zero."""
    model = MarketplaceSetting
    extra = 0
    max_num = 1


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ("name", "commission_rate", "marketplace_rate", "contact_name", "phone")
    search_fields = ("name", "contact_name")
    inlines = [MarketplaceSettingInline]

    def marketplace_rate(self, obj):
        setting = getattr(obj, "marketplace_setting", None)
        if setting is None or setting.commission_rate is None:
            return "—"
        return setting.commission_rate

    marketplace_rate.short_description = "Marketplace rate"


@admin.register(MarketplaceSetting)
class MarketplaceSettingAdmin(admin.ModelAdmin):
    list_display = ("store", "commission_rate", "updated_at")
    search_fields = ("store__name",)


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ("store", "product", "on_hand_qty", "updated_at")
    list_filter = ("store",)
    search_fields = ("product__name", "product__barcode", "store__name")


class SettlementLineInline(admin.TabularInline):
    model = SettlementLine
    extra = 0
    fields = ("product", "product_name_raw", "qty_sold", "unit_price", "gross_amount", "match_status")
    readonly_fields = fields


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    list_display = (
        "store",
        "period_month",
        "gross_amount",
        "commission_rate",
        "commission_amount",
        "net_amount",
        "rows_count",
        "status",
        "apply_to_inventory",
        "updated_at",
    )
    list_filter = ("status", "store", "period_month")
    search_fields = ("store__name", "source_filename")
    inlines = [SettlementLineInline]


@admin.register(ImportLog)
class ImportLogAdmin(admin.ModelAdmin):
    """Show high-level stats for each import run."""
    list_display = (
        "source",
        "run_type",
        "filename",
        "store",
        "period_month",
        "created_at",
        "rows_processed",
        "unmatched_count",
        "short_summary",
    )
    list_filter = ("source", "run_type", "store")
    search_fields = ("filename", "summary", "log_output")
    readonly_fields = (
        "source",
        "run_type",
        "filename",
        "store",
        "period_month",
        "created_at",
        "started_at",
        "finished_at",
        "duration_seconds",
        "rows_processed",
        "matched_count",
        "unmatched_count",
        "ignored_count",
        "settlements_saved",
        "inventory_updates",
        "error_count",
        "summary",
        "log_output",
        "uploaded_by",
    )
    ordering = ("-created_at",)

    def short_summary(self, obj):
        if not obj.summary:
            return "—"
        preview = obj.summary.strip().splitlines()[0]
        return (preview[:75] + "…") if len(preview) > 75 else preview

    short_summary.short_description = "Summary"
