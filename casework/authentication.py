"""
Token authentication for the API.

Tokens are issued upstream (login is not part of this service); this
subclass only pins the ``Authorization: Token <key>`` keyword and
refuses tokens whose account is not in the ``ativo`` status, so a
suspended or pending account cannot reach the workflows.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """Custom token authentication using the ``Token`` keyword."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if getattr(user, 'status', 'ativo') != 'ativo':
            raise exceptions.AuthenticationFailed('Conta inativa ou pendente de aprovação.')
        return user, token
