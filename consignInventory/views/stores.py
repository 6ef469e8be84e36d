from django.contrib import messages
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_POST

from consignInventory.forms import StoreCommissionForm, StoreForm
from consignInventory.models import Store


def _render_dashboard(request, form=None, status=200, editing=None):
    stores = Store.objects.select_related("marketplace_setting").order_by("name")
    return render(
        request,
        "stores/dashboard.html",
        {"stores": stores, "form": form or StoreForm(), "editing": editing},
        status=status,
    )


def stores_dashboard_view(request):
    return _render_dashboard(request)


@require_POST
def create_store_view(request):
    form = StoreForm(request.POST)
    if not form.is_valid():
        return _render_dashboard(request, form=form, status=400)
    store = form.save()
    messages.success(request, f"🆕 Created store {store.name}")
    return redirect("stores_dashboard")


@require_POST
def update_store_view(request, pk):
    """Edit store details, including the percent commission used as fallback."""
    store = get_object_or_404(Store, pk=pk)
    form = StoreForm(request.POST, instance=store)
    if not form.is_valid():
        return _render_dashboard(request, form=form, status=400, editing=store)
    form.save()
    messages.success(request, f"🔄 Updated store {store.name}")
    return redirect("stores_dashboard")


@require_POST
def update_store_commission_view(request, pk):
    store = get_object_or_404(Store, pk=pk)
    form = StoreCommissionForm(request.POST, instance=store)
    if not form.is_valid():
        for error in form.errors.get("commission_rate", []):
            messages.error(request, f"❌ {store.name}: {error}")
        return redirect("stores_dashboard")
    form.save()
    messages.success(request, f"🔄 {store.name} commission set to {store.commission_rate}%")
    return redirect("stores_dashboard")
