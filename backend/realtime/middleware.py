"""WebSocket authentication middleware for JWT access tokens."""

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

User = get_user_model()
logger = logging.getLogger(__name__)


@database_sync_to_async
def get_user_for_token(raw_token: str):
    try:
        access = AccessToken(raw_token)
    except TokenError as e:
        logger.debug("JWT auth failed: %s", e)
        return AnonymousUser()

    user = User.objects.filter(id=access.get("user_id"), is_active=True).first()
    return user or AnonymousUser()


def _token_from_headers(scope) -> str:
    for name, value in scope.get("headers", []):
        if name == b"authorization":
            parts = value.decode().split()
            if len(parts) == 2 and parts[0].lower() == "bearer":
                return parts[1]
    return ""


class JWTAuthMiddleware(BaseMiddleware):
    """
    Authenticate WebSocket connections using either:
    1. JWT in querystring (?token=...) - browsers cannot set socket headers
    2. Authorization: Bearer <token> header - other clients
    """

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get("query_string", b"").decode())
        token_list = params.get("token")
        token = token_list[0] if token_list else _token_from_headers(scope)

        if token:
            scope["user"] = await get_user_for_token(token)
        else:
            scope["user"] = AnonymousUser()

        return await super().__call__(scope, receive, send)
