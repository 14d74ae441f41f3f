"""
Repository Context

One object owning every store handle for the process:
    - local mirror (LocalStore)
    - remote service (or None in offline mode)
    - data-access layer built on top of them
    - per-client cart and admin session handles (keyed by session id)

Opened once at startup and closed at shutdown (FastAPI lifespan).

Usage:
    async with RepositoryContext.from_settings(get_settings()) as context:
        menu = await context.data.list_menu_items()

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import uuid
from typing import Optional

from fastapi.requests import HTTPConnection, Request

from app.core.config import Settings
from app.services.admin_session import AdminSession
from app.services.cart import CartStore
from app.services.data_access import DataAccessLayer, SyncPolicy
from app.services.local_store import LocalStore
from app.services.remote import build_remote_service
from app.services.remote.base import BaseRemoteService

logger = logging.getLogger(__name__)

CLIENT_ID_KEY = "client_id"


class RepositoryContext:
    """Explicitly passed session/repository context."""

    def __init__(
        self,
        settings: Settings,
        local: LocalStore,
        remote: Optional[BaseRemoteService],
        policy: Optional[SyncPolicy] = None,
    ):
        self.settings = settings
        self.local = local
        self.remote = remote
        self.data = DataAccessLayer(
            local,
            remote,
            policy=policy,
            image_bucket=settings.menu_image_bucket,
        )
        self.is_open = False

    def cart_for(self, client_id: str) -> CartStore:
        return CartStore(self.local, client_id)

    def admin_for(self, client_id: str) -> AdminSession:
        return AdminSession(
            self.local,
            password=self.settings.admin_password,
            client_id=client_id,
            lifetime_hours=self.settings.admin_session_hours,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RepositoryContext":
        """Build the context from configuration, building its own remote service."""
        local = LocalStore(settings.data_directory, lock_timeout=settings.storage_lock_timeout)
        return cls(settings, local, build_remote_service(settings))

    async def open(self) -> "RepositoryContext":
        self.local.ensure_data_dir()
        self.is_open = True

        provider = self.remote.provider_name if self.remote else "none"
        logger.info(f"Repository context opened (mode={self.data.mode}, remote={provider})")
        return self

    async def close(self) -> None:
        if not self.is_open:
            return
        if self.remote is not None:
            await self.remote.close()
        self.is_open = False
        logger.info("Repository context closed")

    async def __aenter__(self) -> "RepositoryContext":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def get_context(connection: HTTPConnection) -> RepositoryContext:
    """
    Dependency injection for FastAPI routes.
    Returns the context opened by the application lifespan.
    """
    return connection.app.state.context


def get_client_id(request: Request) -> str:
    """
    Per-browser id kept in the signed session cookie, issued on first use.
    Cart and admin session entries are keyed by it.
    """
    client_id = request.session.get(CLIENT_ID_KEY)
    if not isinstance(client_id, str) or not client_id:
        client_id = uuid.uuid4().hex
        request.session[CLIENT_ID_KEY] = client_id
        logger.debug(f"Issued client session {client_id[:8]}")
    return client_id
