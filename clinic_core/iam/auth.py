# clinic_core/iam/auth.py
from __future__ import annotations

from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication

from clinic_core.iam.scope import apply_scope_from_headers


class CookieOrHeaderJWTAuthentication(JWTAuthentication):
    """
    JWT from `Authorization: Bearer <access>`, falling back to the HttpOnly
    access cookie set by the login view.

    Scope headers are checked here because the scope middleware runs before
    DRF knows who a JWT user is.
    """

    def _raw_token(self, request):
        header = self.get_header(request)
        if header is not None:
            return self.get_raw_token(header)
        return request.COOKIES.get(settings.SIMPLE_JWT.get("AUTH_COOKIE", "clinic_access")) or None

    def authenticate(self, request):
        raw_token = self._raw_token(request)
        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)
        user = self.get_user(validated_token)

        apply_scope_from_headers(request, user=user)
        return user, validated_token
