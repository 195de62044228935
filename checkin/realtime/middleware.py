"""
Token authentication for WebSocket connections.

Browsers cannot set an ``Authorization`` header on a WebSocket handshake,
so clinical screens pass the DRF token they got from ``/api/auth/login``
as ``?token=<key>``.  Connections without a token fall back to the Django
session, as with :func:`channels.auth.AuthMiddlewareStack`.
"""
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework.authtoken.models import Token


@database_sync_to_async
def user_for_token(key: str):
    token = Token.objects.select_related('user').filter(key=key).first()
    if token is None or not token.user.is_active:
        return AnonymousUser()
    return token.user


class TokenAuthMiddleware(BaseMiddleware):

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get('query_string', b'').decode())
        key = (params.get('token') or [''])[0].strip()
        if key:
            scope = dict(scope, user=await user_for_token(key))
        return await super().__call__(scope, receive, send)


def TokenAuthMiddlewareStack(inner):
    return AuthMiddlewareStack(TokenAuthMiddleware(inner))
