from django.contrib import messages
from django.db.models import Q
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from consignInventory.forms import ProductForm
from consignInventory.models import Product


def products_dashboard_view(request):
    query = (request.GET.get("q") or "").strip()
    products = Product.objects.order_by("name")
    if query:
        products = products.filter(Q(name__icontains=query) | Q(sku__icontains=query) | Q(barcode__icontains=query))
    return render(
        request,
        "products/dashboard.html",
        {"products": products, "form": ProductForm(), "search_query": query},
    )


@require_POST
def create_product_view(request):
    form = ProductForm(request.POST)
    if form.is_valid():
        product = form.save()
        messages.success(request, f"🆕 Created product {product.name}")
        return redirect("products_dashboard")

    products = Product.objects.order_by("name")
    return render(
        request,
        "products/dashboard.html",
        {"products": products, "form": form, "search_query": ""},
        status=400,
    )
