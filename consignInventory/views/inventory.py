# consignInventory/views/inventory.py
from django.shortcuts import get_object_or_404, render
from django.views.decorators.http import require_POST

from consignInventory.forms import InventoryItemForm
from consignInventory.models import InventoryItem, Product, Store
from consignInventory.notifications import Notifier
from consignInventory.utils.inventory_deltas import read_on_hand, write_on_hand


def _store_rows(store: Store):
    """Every active product with its on-hand count at ``store`` (0 when untracked)."""
    on_hand = dict(
        InventoryItem.objects.filter(store=store).values_list("product_id", "on_hand_qty")
    )
    products = Product.objects.filter(active=True).order_by("name")
    return [{"product": product, "on_hand_qty": on_hand.get(product.id, 0)} for product in products]


# -----------------------------
# DASHBOARD
# -----------------------------
def inventory_dashboard_view(request):
    """Per-store on-hand table; first store selected by default."""
    stores = Store.objects.order_by("name")
    selected = None
    store_param = request.GET.get("store")
    if store_param:
        selected = stores.filter(pk=store_param).first() if store_param.isdigit() else None
    if selected is None:
        selected = stores.first()

    rows = _store_rows(selected) if selected else []
    context = {
        "stores": stores,
        "selected_store": selected,
        "rows": rows,
        "total_on_hand": sum(row["on_hand_qty"] for row in rows),
    }
    return render(request, "inventory/dashboard.html", context)


# -----------------------------
# INLINE ACTIONS
# -----------------------------
@require_POST
def update_on_hand(request, store_id, product_id):
    """Inline update for one store/product count."""
    store = get_object_or_404(Store, pk=store_id)
    product = get_object_or_404(Product, pk=product_id)
    notifier = Notifier(refresh_event="inventory:refresh")

    form = InventoryItemForm(request.POST)
    if not form.is_valid():
        notifier.error("; ".join(form.errors.get("on_hand_qty", ["Invalid quantity."])))
        response = render(
            request,
            "inventory/_row.html",
            {"store": store, "row": {"product": product, "on_hand_qty": read_on_hand(store.id, product.id)}},
            status=400,
        )
        return notifier.attach(response)

    item = write_on_hand(store.id, product.id, form.cleaned_data["on_hand_qty"])
    notifier.success(f"✅ {product.name}: {item.on_hand_qty}")
    response = render(
        request,
        "inventory/_row.html",
        {"store": store, "row": {"product": product, "on_hand_qty": item.on_hand_qty}},
    )
    return notifier.attach(response)
