from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


def static_token(token: str | None) -> TokenProvider:
    async def provider() -> str | None:
        return token

    return provider


def bearer_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class AuthSession:
    """Authentication state as seen by the engine.

    Identity issuance lives elsewhere; the session only knows whether a user
    is signed in and how to obtain a bearer credential for the current call.
    """

    def __init__(self, token_provider: TokenProvider | None = None):
        self._token_provider = token_provider

    @property
    def is_signed_in(self) -> bool:
        return self._token_provider is not None

    def sign_in(self, token_provider: TokenProvider) -> None:
        self._token_provider = token_provider
        logger.info("Signed in; remote store is now active")

    def sign_out(self) -> None:
        self._token_provider = None
        logger.info("Signed out; local store is now active")

    async def get_token(self) -> str | None:
        if self._token_provider is None:
            return None
        token = await self._token_provider()
        token = (token or "").strip()
        return token or None
