"""Global login requirement for every page outside the exempt list."""
from django.conf import settings
from django.contrib.auth.views import redirect_to_login
from django.http import HttpResponse


class LoginRequiredMiddleware:
    """Send anonymous users to LOGIN_URL; HTMX requests get an HX-Redirect instead."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.exempt_paths = {
            self._normalize(value)
            for value in getattr(settings, "LOGIN_EXEMPT_PATHS", [])
        }
        self.exempt_prefixes = tuple(
            self._normalize(prefix)
            for prefix in getattr(settings, "LOGIN_EXEMPT_PREFIXES", ())
            if prefix
        )

    def __call__(self, request):
        user = getattr(request, "user", None)
        if self._is_exempt(request.path) or (user and user.is_authenticated):
            return self.get_response(request)

        if request.headers.get("HX-Request") == "true":
            response = HttpResponse(status=401)
            response["HX-Redirect"] = settings.LOGIN_URL
            return response
        return redirect_to_login(request.get_full_path(), settings.LOGIN_URL)

    def _is_exempt(self, raw_path: str) -> bool:
        path = self._normalize(raw_path)
        return path in self.exempt_paths or path.startswith(self.exempt_prefixes)

    @staticmethod
    def _normalize(value: str) -> str:
        if not value:
            return ""
        return value if value.startswith("/") else f"/{value}"
