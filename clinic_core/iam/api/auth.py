# clinic_core/iam/api/auth.py
from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

from clinic_core.common.logging import get_logger, log_domain_event
from clinic_core.iam.api.serializers import DetailSerializer, LoginRequestSerializer

logger = get_logger(__name__)


def _cookie_names() -> tuple[str, str]:
    cfg = settings.SIMPLE_JWT
    return cfg.get("AUTH_COOKIE", "clinic_access"), cfg.get("AUTH_COOKIE_REFRESH", "clinic_refresh")


def _lifetime(name: str, default: timedelta) -> int:
    return int(settings.SIMPLE_JWT.get(name, default).total_seconds())


def _set_auth_cookies(response: Response, *, access: str, refresh: str) -> None:
    cfg = settings.SIMPLE_JWT
    access_name, refresh_name = _cookie_names()
    common = {
        "httponly": cfg.get("AUTH_COOKIE_HTTP_ONLY", True),
        "secure": cfg.get("AUTH_COOKIE_SECURE", False),
        "samesite": cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        "path": "/",
    }
    response.set_cookie(
        access_name,
        access,
        max_age=_lifetime("ACCESS_TOKEN_LIFETIME", timedelta(minutes=10)),
        **common,
    )
    response.set_cookie(
        refresh_name,
        refresh,
        max_age=_lifetime("REFRESH_TOKEN_LIFETIME", timedelta(days=14)),
        **common,
    )


class LoginView(APIView):
    """Username + password in, HttpOnly access/refresh cookies out."""
    permission_classes = [AllowAny]

    @extend_schema(tags=["IAM"], request=LoginRequestSerializer, responses={200: DetailSerializer})
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except (AuthenticationFailed, ValidationError):
            log_domain_event(
                logger,
                "auth.login",
                level=logging.WARNING,
                result="rejected",
                username=request.data.get("username"),
            )
            raise

        res = Response({"detail": "login ok"}, status=status.HTTP_200_OK)
        _set_auth_cookies(res, access=serializer.validated_data["access"], refresh=serializer.validated_data["refresh"])
        log_domain_event(logger, "auth.login", user_id=serializer.user.id)
        return res


class RefreshView(APIView):
    """Rotates the cookie pair from the refresh cookie."""
    permission_classes = [AllowAny]

    @extend_schema(tags=["IAM"], request=None, responses={200: DetailSerializer})
    def post(self, request):
        _, refresh_name = _cookie_names()
        refresh = request.COOKIES.get(refresh_name)

        serializer = TokenRefreshSerializer(data={"refresh": refresh})
        serializer.is_valid(raise_exception=True)

        res = Response({"detail": "refreshed"}, status=status.HTTP_200_OK)
        _set_auth_cookies(
            res,
            access=serializer.validated_data["access"],
            refresh=serializer.validated_data.get("refresh", refresh),
        )
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["IAM"], request=None, responses={200: DetailSerializer})
    def post(self, request):
        res = Response({"detail": "logged out"}, status=status.HTTP_200_OK)
        for name in _cookie_names():
            res.delete_cookie(name, path="/")
        log_domain_event(logger, "auth.logout", user_id=request.user.id)
        return res
