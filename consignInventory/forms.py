from __future__ import annotations

import re

from django import forms

from consignInventory.models import InventoryItem, Product, Store

PERIOD_RE = re.compile(r"^\d{4}-\d{2}$")


def _style_fields(form):
    """Bootstrap classes on every widget, flagging bound fields with errors."""
    for field_name, field in form.fields.items():
        widget = field.widget
        if isinstance(widget, forms.CheckboxInput):
            base = "form-check-input"
        elif isinstance(widget, forms.Select):
            base = "form-select"
        elif isinstance(widget, forms.HiddenInput):
            continue
        else:
            base = "form-control"
        existing = widget.attrs.get("class", "")
        widget.attrs["class"] = f"{existing} {base}".strip()
        widget.attrs.setdefault("autocomplete", "off")
        if form.is_bound and field_name in form.errors:
            widget.attrs["class"] = f"{widget.attrs['class']} is-invalid"


class SettlementUploadForm(forms.Form):
    csv_file = forms.FileField(label="정산 CSV")
    store = forms.ModelChoiceField(queryset=Store.objects.order_by("name"), label="입점처")
    period_month = forms.CharField(max_length=7, label="정산월 (YYYY-MM)")
    apply_to_inventory = forms.BooleanField(required=False, label="재고에 반영")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _style_fields(self)

    def clean_period_month(self):
        value = (self.cleaned_data.get("period_month") or "").strip()
        if not PERIOD_RE.match(value):
            raise forms.ValidationError("period 형식이 올바르지 않습니다 (YYYY-MM).")
        return value


class ColumnMappingForm(forms.Form):
    """Pick which CSV headers feed barcode / sold_qty / amount."""

    barcode = forms.ChoiceField(label="바코드")
    sold_qty = forms.ChoiceField(label="판매수량")
    amount = forms.ChoiceField(label="순매출(amount)")

    def __init__(self, *args, headers: list[str], **kwargs):
        super().__init__(*args, **kwargs)
        choices = [("", "-- 선택 --")] + [(header, header) for header in headers]
        for name in ("barcode", "sold_qty", "amount"):
            self.fields[name].choices = choices
        _style_fields(self)


class ManualMatchForm(forms.Form):
    idx = forms.IntegerField(widget=forms.HiddenInput())
    product = forms.ModelChoiceField(queryset=Product.objects.order_by("name"), label="제품")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _style_fields(self)


class CreateProductFromRowForm(forms.Form):
    """Escape hatch for rows whose barcode is not in the catalog."""

    idx = forms.IntegerField(widget=forms.HiddenInput())
    name = forms.CharField(max_length=255, label="제품명")
    sku = forms.CharField(max_length=128, required=False, label="SKU")
    barcode = forms.CharField(max_length=64, required=False, label="바코드")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _style_fields(self)

    def clean_name(self):
        name = (self.cleaned_data.get("name") or "").strip()
        if not name:
            raise forms.ValidationError("제품명을 입력하세요.")
        return name


class ApplySettlementForm(forms.Form):
    confirm_inventory = forms.BooleanField(required=False, label="재고 변경을 확인했습니다")


class DeleteSettlementForm(forms.Form):
    restore_inventory = forms.BooleanField(required=False, label="판매수량을 재고로 되돌리기")


class ProductForm(forms.ModelForm):
    class Meta:
        model = Product
        fields = ["name", "category", "sku", "barcode", "price", "active", "make_enabled"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["sku"].required = False
        self.fields["barcode"].required = False
        _style_fields(self)

    def clean_name(self):
        return (self.cleaned_data.get("name") or "").strip()

    def clean_sku(self):
        return (self.cleaned_data.get("sku") or "").strip() or None

    def clean_barcode(self):
        return (self.cleaned_data.get("barcode") or "").strip() or None


class StoreForm(forms.ModelForm):
    class Meta:
        model = Store
        fields = [
            "name",
            "commission_rate",
            "target_qty_override",
            "contact_name",
            "phone",
            "address",
            "memo",
        ]
        widgets = {"memo": forms.Textarea(attrs={"rows": 2})}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _style_fields(self)

    def clean_name(self):
        return (self.cleaned_data.get("name") or "").strip()

    def clean_commission_rate(self):
        rate = self.cleaned_data.get("commission_rate")
        if rate is not None and not (0 <= rate <= 100):
            raise forms.ValidationError("수수료율은 0~100 사이의 퍼센트로 입력하세요.")
        return rate


class StoreCommissionForm(forms.ModelForm):
    """Inline percent commission edit from the store list."""

    class Meta:
        model = Store
        fields = ["commission_rate"]

    clean_commission_rate = StoreForm.clean_commission_rate


class InventoryItemForm(forms.ModelForm):
    class Meta:
        model = InventoryItem
        fields = ["on_hand_qty"]

    def clean_on_hand_qty(self):
        qty = self.cleaned_data.get("on_hand_qty")
        if qty is None or qty < 0:
            raise forms.ValidationError("재고는 0 이상이어야 합니다.")
        return qty
