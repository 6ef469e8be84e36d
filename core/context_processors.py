# core/context_processors.py
from django.urls import NoReverseMatch, reverse

NAV_ITEMS = [
    {"name": "정산", "url_name": "settlements_dashboard"},
    {"name": "제품", "url_name": "products_dashboard"},
    {"name": "입점처", "url_name": "stores_dashboard"},
    {"name": "재고", "url_name": "inventory_dashboard"},
]


def navigation_links(request):
    """
    Visible navigation items for the signed-in user.
    Routes that can't be reversed are skipped so templates never break.
    """
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return {"nav_links": [], "nav_links_admin": []}

    admin_items = []
    if user.is_staff:
        admin_items.append({"name": "Admin", "url_name": "admin:index"})

    def build_links(items):
        links = []
        for item in items:
            try:
                url = reverse(item["url_name"])
            except NoReverseMatch:
                continue
            links.append({"name": item["name"], "url": url, "active": request.path.startswith(url)})
        return links

    return {
        "nav_links": build_links(NAV_ITEMS),
        "nav_links_admin": build_links(admin_items),
    }
