from __future__ import annotations

import httpx

from linkshelf.auth import AuthSession, TokenProvider, static_token
from linkshelf.config import Config
from linkshelf.services.coordinator import SyncCoordinator
from linkshelf.services.local_store import LocalBlob, LocalStore
from linkshelf.services.remote_store import RemoteStore
from linkshelf.services.stores import StoreResolver
from linkshelf.workspace import Workspace


def create_workspace(
    config_object=Config,
    token_provider: TokenProvider | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Workspace:
    if token_provider is None and getattr(config_object, "API_TOKEN", None):
        token_provider = static_token(config_object.API_TOKEN)

    session = AuthSession(token_provider)
    local = LocalStore(LocalBlob(config_object.LOCAL_STORE_DIR, config_object.LOCAL_STORE_KEY))
    remote = RemoteStore(
        config_object.API_BASE_URL,
        session.get_token,
        timeout=config_object.REMOTE_TIMEOUT,
        transport=transport,
    )
    resolver = StoreResolver(session, local, remote)
    coordinator = SyncCoordinator(resolver, search_threshold=config_object.SEARCH_THRESHOLD)
    return Workspace(session, resolver, coordinator, search_limit=config_object.SEARCH_LIMIT)
