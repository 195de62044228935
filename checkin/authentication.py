"""
Token authentication for front desk terminals and clinical staff screens.

Kept in its own module so that DRF can import it from settings without
pulling in any view code.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token auth (``Authorization: Token <key>``) limited to active accounts."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if not getattr(user, 'role', None):
            raise exceptions.AuthenticationFailed('Account has no clinic role.')
        return user, token
