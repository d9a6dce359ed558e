"""Credential providers.

Obtaining a token is outside this library; providers only hand an existing
token to the object store and report whether one is available.
"""

from __future__ import annotations

import os
from typing import Protocol, runtime_checkable

from .exceptions import AuthError

TOKEN_ENV_VAR = "DASH_SYNC_TOKEN"
"""Environment variable holding the store access token."""


@runtime_checkable
class TokenProvider(Protocol):
    """Source of the bearer token used by remote stores."""

    def has_credentials(self) -> bool: ...

    async def get_token(self) -> str: ...


class StaticTokenProvider:
    """Provider returning a fixed token (or none)."""

    def __init__(self, token: str | None) -> None:
        self._token = token or None

    def has_credentials(self) -> bool:
        return self._token is not None

    async def get_token(self) -> str:
        if self._token is None:
            raise AuthError()
        return self._token


class EnvTokenProvider:
    """Provider reading the token from an environment variable on each call."""

    def __init__(self, env_var: str = TOKEN_ENV_VAR) -> None:
        self.env_var = env_var

    def has_credentials(self) -> bool:
        return bool(os.environ.get(self.env_var))

    async def get_token(self) -> str:
        token = os.environ.get(self.env_var)
        if not token:
            raise AuthError(f"No token in ${self.env_var}")
        return token
