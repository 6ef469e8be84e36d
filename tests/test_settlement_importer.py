from decimal import Decimal

import pytest

from consignInventory.models import ImportLog, InventoryItem, Product, Settlement, SettlementLine
from importers import SettlementImporter
from importers._errors import CsvParseError, SettlementApplyError
from importers._preview import PreviewRow, toggle_ignored
from importers.settlement_importer import create_product_from_row
from tests.factories import InventoryItemFactory, MarketplaceSettingFactory, ProductFactory, StoreFactory

CSV_TEXT = "barcode,sold_qty,amount\n8801,2,2000\n8801,3,4500\n"


def _preview(importer, store, text=CSV_TEXT, month="2024-05"):
    _, mapping = importer.load_text(text, "may.csv")
    return importer.build_preview(text, mapping, store.name, month)


@pytest.mark.django_db
def test_end_to_end_merges_duplicate_barcodes(store, product):
    importer = SettlementImporter()
    rows = _preview(importer, store)

    [settlement] = importer.apply(rows, source_filename="may.csv")

    settlement.refresh_from_db()
    [line] = SettlementLine.objects.filter(settlement=settlement)
    assert line.qty_sold == 5
    assert line.unit_price == 1500
    assert line.gross_amount == 6500
    assert settlement.gross_amount == 6500
    assert settlement.source_filename == "may.csv"
    assert settlement.rows_count == 1


@pytest.mark.django_db
def test_commission_fallback_uses_store_percentage(store, product):
    importer = SettlementImporter()
    [settlement] = importer.apply(_preview(importer, store))

    settlement.refresh_from_db()
    assert settlement.commission_rate == Decimal("0.25")
    assert settlement.commission_amount == 1625
    assert settlement.net_amount == 4875


@pytest.mark.django_db
def test_marketplace_setting_overrides_store_percentage(store, product):
    MarketplaceSettingFactory(store=store, commission_rate=Decimal("0.1000"))
    importer = SettlementImporter()
    [settlement] = importer.apply(_preview(importer, store))

    settlement.refresh_from_db()
    assert settlement.commission_rate == Decimal("0.1")
    assert settlement.commission_amount == 650


@pytest.mark.django_db
def test_load_text_rejects_empty_csv():
    importer = SettlementImporter()
    with pytest.raises(CsvParseError):
        importer.load_text("\n\n", "empty.csv")
    assert importer.counters["errors"] == 1


@pytest.mark.django_db
def test_apply_with_error_rows_writes_nothing(store, product):
    importer = SettlementImporter()
    rows = _preview(importer, store, text="barcode,sold_qty,amount\n8801,1,1000\n9999,1,1000\n")

    with pytest.raises(SettlementApplyError):
        importer.apply(rows)

    assert Settlement.objects.count() == 0
    assert importer.counters["errors"] == 1


@pytest.mark.django_db
def test_ignored_error_rows_do_not_block_apply(store, product):
    importer = SettlementImporter()
    rows = _preview(importer, store, text="barcode,sold_qty,amount\n8801,1,1000\n9999,1,1000\n")
    toggle_ignored(rows, 2)

    [settlement] = importer.apply(rows)
    assert settlement.rows_count == 1
    assert importer.counters["ignored"] == 1


@pytest.mark.django_db
def test_create_product_from_unmatched_row(store, product):
    importer = SettlementImporter()
    rows = _preview(importer, store, text="barcode,sold_qty,amount\n7777,2,3000\n")

    created = create_product_from_row(rows, 1, name=" Linen Bag ", barcode="7777")

    assert created.active and created.make_enabled and created.price == 0
    assert created.name == "Linen Bag"
    assert rows[0].status == "ok"
    assert rows[0].match_status == "manual"

    [settlement] = importer.apply(rows)
    line = settlement.lines.get()
    assert line.product == created
    assert line.match_status == "manual"


@pytest.mark.django_db
def test_create_product_requires_name(store):
    with pytest.raises(ValueError):
        create_product_from_row([], 1, name="  ")
    assert Product.objects.count() == 0


@pytest.mark.django_db
def test_reapply_replaces_lines_and_applies_inventory_delta(store, product):
    other = ProductFactory(barcode="8802")
    InventoryItemFactory(store=store, product=product, on_hand_qty=10)
    InventoryItemFactory(store=store, product=other, on_hand_qty=10)

    first = SettlementImporter()
    first.apply(
        _preview(first, store, text="barcode,sold_qty,amount\n8801,4,4000\n8802,2,2000\n"),
        apply_to_inventory=True,
        confirm_inventory=True,
    )
    assert InventoryItem.objects.get(product=product).on_hand_qty == 6
    assert InventoryItem.objects.get(product=other).on_hand_qty == 8

    second = SettlementImporter()
    [settlement] = second.apply(
        _preview(second, store, text="barcode,sold_qty,amount\n8801,1,1000\n"),
        apply_to_inventory=True,
        confirm_inventory=True,
    )

    assert Settlement.objects.count() == 1
    assert [line.product_id for line in settlement.lines.all()] == [product.id]
    # 4 -> 1 sold gives 3 back; 8802 disappeared so its 2 come back too
    assert InventoryItem.objects.get(product=product).on_hand_qty == 9
    assert InventoryItem.objects.get(product=other).on_hand_qty == 10
    assert second.counters["inventory_updates"] == 2


@pytest.mark.django_db
def test_inventory_requires_confirmation_before_any_write(store, product):
    InventoryItemFactory(store=store, product=product, on_hand_qty=10)
    importer = SettlementImporter()

    with pytest.raises(SettlementApplyError):
        importer.apply(_preview(importer, store), apply_to_inventory=True, confirm_inventory=False)

    assert Settlement.objects.count() == 0
    assert InventoryItem.objects.get(product=product).on_hand_qty == 10


@pytest.mark.django_db
def test_earlier_groups_stay_committed_when_a_later_group_fails(store, product, monkeypatch):
    other_store = StoreFactory(name="Online Mall")
    importer = SettlementImporter()
    rows = _preview(importer, store, text="barcode,sold_qty,amount\n8801,1,1000\n")
    rows.append(
        PreviewRow.from_dict({**rows[0].to_dict(), "idx": 2, "store_id": other_store.id, "store_name": other_store.name})
    )

    from consignInventory.utils import settlements as gateway

    real_replace = gateway.replace_lines
    calls = {"n": 0}

    def flaky_replace(settlement_id, lines):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("storage offline")
        return real_replace(settlement_id, lines)

    monkeypatch.setattr(gateway, "replace_lines", flaky_replace)

    with pytest.raises(SettlementApplyError, match="storage offline"):
        importer.apply(rows)

    assert list(Settlement.objects.values_list("store_id", flat=True)) == [store.id]


@pytest.mark.django_db
def test_dry_run_logs_without_writing(store, product):
    importer = SettlementImporter(dry_run=True)
    groups = importer.apply(_preview(importer, store))

    assert Settlement.objects.count() == 0
    assert groups[0].gross_amount == 6500
    assert importer.counters["settlements_saved"] == 1
    assert "[Dry Run] Would save" in importer.get_output()


@pytest.mark.django_db
def test_unit_price_policy_is_configurable(store, product):
    importer = SettlementImporter(policy="first")
    [settlement] = importer.apply(_preview(importer, store))
    assert settlement.lines.get().unit_price == 1000


@pytest.mark.django_db
def test_write_import_log_records_counters(store, product):
    importer = SettlementImporter()
    importer.apply(_preview(importer, store))

    log = importer.write_import_log(filename="may.csv", store=store, period_month="2024-05")

    assert log.source == "settlement"
    assert log.run_type == "live"
    assert log.rows_processed == 2
    assert log.matched_count == 2
    assert log.settlements_saved == 1
    assert "Settlement Import Summary" in log.summary
    assert ImportLog.objects.count() == 1


@pytest.mark.django_db
def test_run_from_file_decodes_cp949(tmp_path, store, product):
    path = tmp_path / "cp949.csv"
    path.write_bytes("바코드,판매수량,순매출\n8801,2,2000\n".encode("cp949"))

    importer = SettlementImporter()
    [settlement] = importer.run_from_file(path, store_name=store.name, period_month="2024-05")

    assert settlement.gross_amount == 2000
    assert settlement.source_filename == "cp949.csv"


@pytest.mark.django_db
def test_gross_keeps_amount_that_does_not_divide_by_qty(store, product):
    importer = SettlementImporter()
    [settlement] = importer.apply(_preview(importer, store, text="barcode,sold_qty,amount\n8801,3,1000\n"))

    settlement.refresh_from_db()
    line = settlement.lines.get()
    assert line.unit_price == 333
    assert line.gross_amount == 1000
    assert settlement.gross_amount == 1000
    assert settlement.commission_amount == 250
    assert settlement.net_amount == 750


@pytest.mark.django_db
def test_create_product_refuses_rows_with_other_errors(store, product):
    importer = SettlementImporter()
    rows = _preview(importer, store, text="barcode,sold_qty,amount\n7777,0,500\n")

    with pytest.raises(ValueError):
        create_product_from_row(rows, 1, name="Linen Bag", barcode="7777")

    assert not Product.objects.filter(name="Linen Bag").exists()
    assert rows[0].status == "error"


@pytest.mark.django_db
def test_apply_counts_rows_without_a_preview_pass(store, product):
    rows = _preview(SettlementImporter(), store, text="barcode,sold_qty,amount\n8801,1,1000\n9999,1,500\n")
    toggle_ignored(rows, 2)

    importer = SettlementImporter()
    importer.apply(rows)
    log = importer.write_import_log(filename="may.csv", store=store, period_month="2024-05")

    assert log.rows_processed == 2
    assert log.matched_count == 1
    assert log.unmatched_count == 1
    assert log.ignored_count == 1
