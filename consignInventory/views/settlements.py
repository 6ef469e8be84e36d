"""
Settlement views: upload, column mapping, editable preview, apply, history.

The preview lives in the session between requests so the operator can fix
rows (match, create product, ignore) before anything is written.
"""

import codecs
import csv
import logging

from django.http import HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_POST

from consignInventory.forms import (
    ApplySettlementForm,
    ColumnMappingForm,
    CreateProductFromRowForm,
    DeleteSettlementForm,
    ManualMatchForm,
    SettlementUploadForm,
)
from consignInventory.models import Product, Settlement, Store
from consignInventory.notifications import Notifier
from consignInventory.utils import settlements as settlement_store
from importers import SettlementImporter
from importers._column_mapping import SettlementColumnMapping
from importers._csv_reader import read_upload_text
from importers._errors import SettlementImportError
from importers._preview import (
    PreviewRow,
    apply_manual_match,
    can_apply,
    preview_stats,
    toggle_ignored,
)
from importers.settlement_importer import create_product_from_row

logger = logging.getLogger(__name__)

ERROR_NO_DATA_ROWS = "CSV에 데이터가 없습니다."
UPLOAD_SESSION_KEY = "settlement_upload"
PREVIEW_SESSION_KEY = "settlement_preview"

TEMPLATE_HEADERS = ["barcode", "sold_qty", "amount"]
TEMPLATE_ROWS = [
    ["8801234567890", "1", "11000"],
    ["8801234567891", "3", "18000"],
    ["8801234567001", "4", "31600"],
]


# -----------------------------
# Session helpers
# -----------------------------
def _load_upload(request) -> dict | None:
    return request.session.get(UPLOAD_SESSION_KEY)


def _load_rows(request) -> list[PreviewRow]:
    return [PreviewRow.from_dict(data) for data in request.session.get(PREVIEW_SESSION_KEY, [])]


def _save_rows(request, rows: list[PreviewRow]) -> None:
    request.session[PREVIEW_SESSION_KEY] = [row.to_dict() for row in rows]


def _clear_preview(request) -> None:
    request.session.pop(UPLOAD_SESSION_KEY, None)
    request.session.pop(PREVIEW_SESSION_KEY, None)


def _owner(request):
    user = getattr(request, "user", None)
    return user if user is not None and user.is_authenticated else None


def _build_preview_context(request) -> dict:
    upload = _load_upload(request)
    rows = _load_rows(request)
    mapping_form = None
    if upload and not rows:
        mapping_form = ColumnMappingForm(headers=upload.get("headers", []), initial=upload.get("mapping", {}))
    return {
        "upload": upload,
        "preview_rows": rows,
        "stats": preview_stats(rows),
        "can_apply": can_apply(rows),
        "mapping_form": mapping_form,
        "apply_form": ApplySettlementForm(),
        "products": Product.objects.order_by("name"),
    }


def _respond(request, notifier: Notifier):
    """HTMX gets the preview partial plus triggers; plain posts go back to the dashboard."""
    if request.headers.get("HX-Request") == "true":
        response = render(request, "settlements/_preview.html", _build_preview_context(request))
        return notifier.attach(response)
    return redirect("settlements_dashboard")


def _run_preview(request, upload: dict, mapping: SettlementColumnMapping, notifier: Notifier) -> None:
    importer = SettlementImporter()
    rows = importer.build_preview(
        upload["csv_text"],
        mapping,
        upload["store_name"],
        upload["period_month"],
    )
    upload["mapping"] = mapping.to_dict()
    request.session[UPLOAD_SESSION_KEY] = upload
    _save_rows(request, rows)
    if not rows:
        notifier.error(f"❌ {ERROR_NO_DATA_ROWS}")
        return
    stats = preview_stats(rows)
    if stats["err"]:
        notifier.warning(f"⚠️ 미리보기: 정상 {stats['ok']}행, 오류 {stats['err']}행")
    else:
        notifier.success(f"✅ 미리보기: 정상 {stats['ok']}행")


# -----------------------------
# DASHBOARD
# -----------------------------
def settlements_dashboard_view(request):
    """Upload form, current preview and saved settlement history."""
    store_filter = request.GET.get("store") or None
    month_filter = (request.GET.get("month") or "").strip() or None
    try:
        store_id = int(store_filter) if store_filter else None
    except ValueError:
        store_id = None

    context = _build_preview_context(request)
    context.update(
        {
            "upload_form": SettlementUploadForm(),
            "settlements": settlement_store.list_headers(store_id=store_id, period_month=month_filter),
            "stores": Store.objects.order_by("name"),
            "store_filter": store_id,
            "month_filter": month_filter or "",
        }
    )
    return render(request, "settlements/dashboard.html", context)


@require_POST
def upload_settlement_view(request):
    notifier = Notifier(request)
    form = SettlementUploadForm(request.POST, request.FILES)
    if not form.is_valid():
        errors = "; ".join(str(e) for errs in form.errors.values() for e in errs)
        notifier.error(f"❌ 업로드 실패: {errors}")
        return _respond(request, notifier)

    uploaded_file = form.cleaned_data["csv_file"]
    store = form.cleaned_data["store"]
    importer = SettlementImporter()
    try:
        text = read_upload_text(uploaded_file)
        parsed, mapping = importer.load_text(text, uploaded_file.name)
    except SettlementImportError as exc:
        logger.exception("Settlement upload failed for %s", uploaded_file.name)
        _clear_preview(request)
        notifier.error(f"❌ {exc}")
        return _respond(request, notifier)

    upload = {
        "csv_text": text,
        "filename": uploaded_file.name,
        "store_id": store.pk,
        "store_name": store.name.strip(),
        "period_month": form.cleaned_data["period_month"],
        "apply_to_inventory": form.cleaned_data["apply_to_inventory"],
        "headers": parsed.headers,
        "mapping": mapping.to_dict(),
    }
    request.session[UPLOAD_SESSION_KEY] = upload
    request.session[PREVIEW_SESSION_KEY] = []

    if mapping.is_complete:
        try:
            _run_preview(request, upload, mapping, notifier)
        except SettlementImportError as exc:
            logger.exception("Settlement preview failed for %s", uploaded_file.name)
            notifier.error(f"❌ {exc}")
    else:
        notifier.warning("⚠️ 컬럼을 자동으로 찾지 못했습니다. 매핑을 선택하세요.")
    return _respond(request, notifier)


@require_POST
def settlement_mapping_view(request):
    notifier = Notifier(request)
    upload = _load_upload(request)
    if not upload:
        notifier.error("❌ 업로드된 CSV가 없습니다.")
        return _respond(request, notifier)

    form = ColumnMappingForm(request.POST, headers=upload.get("headers", []))
    mapping = SettlementColumnMapping(
        barcode=request.POST.get("barcode", ""),
        sold_qty=request.POST.get("sold_qty", ""),
        amount=request.POST.get("amount", ""),
    )
    if form.is_valid():
        mapping = SettlementColumnMapping(**form.cleaned_data)

    try:
        _run_preview(request, upload, mapping, notifier)
    except SettlementImportError as exc:
        logger.warning("Settlement mapping rejected: %s", exc)
        upload["mapping"] = mapping.to_dict()
        request.session[UPLOAD_SESSION_KEY] = upload
        notifier.error(f"❌ {exc}")
    return _respond(request, notifier)


# -----------------------------
# PREVIEW ROW ACTIONS
# -----------------------------
@require_POST
def preview_match_product_view(request):
    notifier = Notifier(request)
    rows = _load_rows(request)
    form = ManualMatchForm(request.POST)
    if not form.is_valid():
        notifier.error("❌ 제품을 선택하세요.")
        return _respond(request, notifier)

    try:
        row = apply_manual_match(rows, form.cleaned_data["idx"], form.cleaned_data["product"])
    except KeyError:
        notifier.error("❌ 미리보기 행을 찾을 수 없습니다.")
        return _respond(request, notifier)
    except ValueError as exc:
        notifier.error(f"❌ {exc}")
        return _respond(request, notifier)

    _save_rows(request, rows)
    notifier.success(f"✅ {row.barcode} → {row.product_name}")
    return _respond(request, notifier)


@require_POST
def preview_create_product_view(request):
    notifier = Notifier(request)
    rows = _load_rows(request)
    form = CreateProductFromRowForm(request.POST)
    if not form.is_valid():
        notifier.error("❌ 제품명을 입력하세요.")
        return _respond(request, notifier)

    idx = form.cleaned_data["idx"]
    if not any(row.idx == idx for row in rows):
        notifier.error("❌ 미리보기 행을 찾을 수 없습니다.")
        return _respond(request, notifier)

    try:
        product = create_product_from_row(
            rows,
            idx,
            name=form.cleaned_data["name"],
            sku=form.cleaned_data.get("sku"),
            barcode=form.cleaned_data.get("barcode"),
        )
    except ValueError as exc:
        notifier.error(f"❌ {exc}")
        return _respond(request, notifier)
    _save_rows(request, rows)
    notifier.success(f"🆕 제품 생성: {product.name}")
    return _respond(request, notifier)


@require_POST
def preview_toggle_ignore_view(request, idx):
    notifier = Notifier(request)
    rows = _load_rows(request)
    try:
        row = toggle_ignored(rows, idx)
    except KeyError:
        notifier.error("❌ 미리보기 행을 찾을 수 없습니다.")
        return _respond(request, notifier)
    _save_rows(request, rows)
    notifier.notify(f"{'🙈 무시' if row.ignored else '👀 포함'}: {row.barcode or row.idx}")
    return _respond(request, notifier)


@require_POST
def preview_reset_view(request):
    notifier = Notifier(request)
    _clear_preview(request)
    notifier.notify("미리보기를 초기화했습니다.")
    return _respond(request, notifier)


# -----------------------------
# APPLY
# -----------------------------
@require_POST
def apply_settlement_view(request):
    notifier = Notifier(request)
    upload = _load_upload(request)
    rows = _load_rows(request)
    if not upload or not rows:
        notifier.error("❌ 적용할 미리보기가 없습니다.")
        return _respond(request, notifier)

    form = ApplySettlementForm(request.POST)
    form.is_valid()
    confirm_inventory = bool(form.cleaned_data.get("confirm_inventory"))
    store = Store.objects.filter(pk=upload.get("store_id")).first()

    importer = SettlementImporter()
    try:
        saved = importer.apply(
            rows,
            apply_to_inventory=bool(upload.get("apply_to_inventory")),
            confirm_inventory=confirm_inventory,
            source_filename=upload.get("filename", ""),
            owner=_owner(request),
        )
    except SettlementImportError as exc:
        logger.exception("Settlement apply failed for %s", upload.get("filename"))
        importer.write_import_log(
            filename=upload.get("filename", ""),
            store=store,
            period_month=upload.get("period_month", ""),
            user=request.user,
        )
        notifier.error(f"❌ {exc}")
        return _respond(request, notifier)

    importer.write_import_log(
        filename=upload.get("filename", ""),
        store=store,
        period_month=upload.get("period_month", ""),
        user=request.user,
    )
    _clear_preview(request)
    updates = importer.counters["inventory_updates"]
    text = f"✅ 정산 {len(saved)}건 저장"
    if updates:
        text += f", 재고 {updates}건 반영"
    notifier.success(text, refresh=True)
    return _respond(request, notifier)


# -----------------------------
# HISTORY
# -----------------------------
def settlement_detail_view(request, pk):
    get_object_or_404(Settlement, pk=pk)
    detail = settlement_store.get_detail(pk)
    return render(
        request,
        "settlements/detail.html",
        {"detail": detail, "settlement": detail.header, "lines": detail.lines, "delete_form": DeleteSettlementForm()},
    )


@require_POST
def delete_settlement_view(request, pk):
    notifier = Notifier(request)
    form = DeleteSettlementForm(request.POST)
    form.is_valid()
    restore_inventory = bool(form.cleaned_data.get("restore_inventory"))
    try:
        restored = settlement_store.delete_settlement(pk, restore_inventory=restore_inventory)
    except SettlementImportError as exc:
        logger.exception("Settlement delete failed for %s", pk)
        notifier.error(f"❌ {exc}")
        return notifier.attach(redirect("settlements_dashboard"))

    text = "🗑️ 정산을 삭제했습니다."
    if restore_inventory:
        text += f" (재고 {restored}건 복구)"
    notifier.success(text, refresh=True)
    return notifier.attach(redirect("settlements_dashboard"))


def download_settlement_template(request):
    """CSV template with a UTF-8 BOM so spreadsheet apps keep Korean text intact."""
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = 'attachment; filename="settlement_template.csv"'
    response.write(codecs.BOM_UTF8.decode("utf-8"))
    writer = csv.writer(response)
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerows(TEMPLATE_ROWS)
    return response
