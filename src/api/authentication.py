"""Custom authentication backends for API."""

from django.conf import settings
from django.middleware.csrf import CsrfViewMiddleware
from rest_framework import exceptions
from rest_framework.request import Request
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError


class CookieJWTAuthentication(JWTAuthentication):
    """JWT from the ``Authorization`` header, or else from an HttpOnly cookie.

    A bad header token is a hard 401. A bad cookie token makes the request
    anonymous so ``auth/token/refresh/`` still works with a stale access
    cookie. Cookie-authenticated requests must pass the CSRF check.
    """

    def authenticate(self, request: Request):
        header = self.get_header(request)
        raw_token = self.get_raw_token(header) if header is not None else None
        if raw_token is not None:
            validated_token = self.get_validated_token(raw_token)
            return self.get_user(validated_token), validated_token

        cookie_token = request.COOKIES.get(getattr(settings, "JWT_AUTH_COOKIE", "access_token"))
        if not cookie_token:
            return None
        try:
            validated_token = self.get_validated_token(cookie_token)
        except (InvalidToken, TokenError):
            return None

        self._check_csrf(request)
        return self.get_user(validated_token), validated_token

    @staticmethod
    def _check_csrf(request: Request) -> None:
        django_request = request._request
        middleware = CsrfViewMiddleware(lambda req: None)
        middleware.process_request(django_request)
        reason = middleware.process_view(django_request, None, (), {})
        if reason:
            raise exceptions.PermissionDenied(f"CSRF Failed: {reason}")
