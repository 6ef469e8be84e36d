from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from consignInventory.models import ImportLog, InventoryItem, Settlement
from tests.factories import InventoryItemFactory


def _write_csv(tmp_path, text, name="may.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.django_db
def test_command_saves_settlement(tmp_path, store, product):
    csv_path = _write_csv(tmp_path, "barcode,sold_qty,amount\n8801,2,2000\n8801,3,4500\n")

    out = StringIO()
    call_command("import_settlement_csv", file=str(csv_path), store=store.name, month="2024-05", stdout=out)

    settlement = Settlement.objects.get()
    assert settlement.gross_amount == 6500
    assert settlement.source_filename == "may.csv"
    assert "Done. 1 settlement(s)" in out.getvalue()
    assert ImportLog.objects.get().run_type == "live"


@pytest.mark.django_db
def test_command_respects_dry_run(tmp_path, store, product):
    csv_path = _write_csv(tmp_path, "barcode,sold_qty,amount\n8801,2,2000\n")

    out = StringIO()
    call_command(
        "import_settlement_csv",
        file=str(csv_path),
        store=store.name,
        month="2024-05",
        dry_run=True,
        stdout=out,
    )

    assert Settlement.objects.count() == 0
    assert "[Dry Run] Would save" in out.getvalue()
    assert ImportLog.objects.get().run_type == "dry-run"


@pytest.mark.django_db
def test_command_with_explicit_columns_and_inventory(tmp_path, store, product):
    InventoryItemFactory(store=store, product=product, on_hand_qty=5)
    csv_path = _write_csv(tmp_path, "ean code,pcs,net\n8801,2,2000\n")

    call_command(
        "import_settlement_csv",
        file=str(csv_path),
        store=store.name,
        month="2024-05",
        barcode_col="ean code",
        qty_col="pcs",
        amount_col="net",
        apply_inventory=True,
        stdout=StringIO(),
    )

    assert Settlement.objects.get().apply_to_inventory is True
    assert InventoryItem.objects.get(product=product).on_hand_qty == 3


@pytest.mark.django_db
def test_command_refuses_error_rows(tmp_path, store, product):
    csv_path = _write_csv(tmp_path, "barcode,sold_qty,amount\n8801,2,2000\n9999,1,500\n")

    err = StringIO()
    with pytest.raises(CommandError, match="Import failed"):
        call_command(
            "import_settlement_csv",
            file=str(csv_path),
            store=store.name,
            month="2024-05",
            stdout=StringIO(),
            stderr=err,
        )

    assert Settlement.objects.count() == 0
    assert "line 3: 9999" in err.getvalue()
    assert ImportLog.objects.get().error_count == 1


@pytest.mark.django_db
def test_command_validates_arguments(tmp_path, store):
    csv_path = _write_csv(tmp_path, "barcode,sold_qty,amount\n")

    with pytest.raises(CommandError, match="Invalid --month"):
        call_command("import_settlement_csv", file=str(csv_path), store=store.name, month="2024/05")
    with pytest.raises(CommandError, match="Store not found"):
        call_command("import_settlement_csv", file=str(csv_path), store="Nowhere", month="2024-05")
    with pytest.raises(CommandError, match="File not found"):
        call_command("import_settlement_csv", file=str(tmp_path / "missing.csv"), store=store.name, month="2024-05")


@pytest.mark.django_db
def test_command_finds_bare_names_in_csv_dir(tmp_path, settings, store, product, monkeypatch):
    settings.SETTLEMENT_CSV_DIR = str(tmp_path)
    _write_csv(tmp_path, "barcode,sold_qty,amount\n8801,1,1000\n", name="june.csv")
    monkeypatch.chdir(tmp_path.parent)

    call_command("import_settlement_csv", file="june.csv", store=store.name, month="2024-06", stdout=StringIO())

    assert Settlement.objects.get().period_month == "2024-06"
