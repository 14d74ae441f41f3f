"""
Supabase Remote Service Implementation

Production implementation talking to a hosted Supabase project:
    - PostgREST for table reads/writes (/rest/v1)
    - Storage API for menu images (/storage/v1)
    - Realtime websocket for change feeds (see realtime.py)

Requirements:
    - SUPABASE_URL and SUPABASE_ANON_KEY must be set
    - Tables menu_items and orders, bucket menu-images (public)

API Documentation:
    https://supabase.com/docs/guides/api

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Any, Optional

import httpx

from app.services.remote.base import (
    BaseRemoteService,
    ChangeCallback,
    RemoteServiceError,
    Subscription,
    Table,
)
from app.services.remote.realtime import RealtimeSubscription

logger = logging.getLogger(__name__)


class SupabaseRemoteService(BaseRemoteService):
    """
    Production Supabase remote service implementation.

    Every httpx error and every non-2xx answer is raised as
    RemoteServiceError so the data-access layer can fall back.

    Example:
        >>> service = SupabaseRemoteService(
        ...     url="https://abc.supabase.co",
        ...     key="eyJhbGciOi...",
        ... )
        >>> rows = await service.select(Table.MENU_ITEMS)
    """

    def __init__(
        self,
        url: Optional[str],
        key: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        heartbeat_seconds: float = 30.0,
        reconnect_seconds: float = 5.0,
    ):
        """
        Initialize the HTTP client with the project URL and key.

        Args:
            url: Project URL (https://<ref>.supabase.co)
            key: Anon or service key
            transport: Optional httpx transport (tests use MockTransport)
            heartbeat_seconds: Realtime heartbeat interval
            reconnect_seconds: Delay before reopening a dropped channel
        """
        self._url = (url or "").rstrip("/")
        self._key = key or ""
        self._heartbeat_seconds = heartbeat_seconds
        self._reconnect_seconds = reconnect_seconds
        self._subscriptions: list[RealtimeSubscription] = []

        self._client = httpx.AsyncClient(
            base_url=self._url or "http://localhost",
            headers={
                "apikey": self._key,
                "Authorization": f"Bearer {self._key}",
            },
            transport=transport,
        )

        logger.info(f"SupabaseRemoteService initialized ({self._url or 'no url'})")

    @property
    def provider_name(self) -> str:
        return "supabase"

    @property
    def is_configured(self) -> bool:
        return bool(self._url and self._key)

    @property
    def realtime_url(self) -> str:
        """wss://<ref>.supabase.co/realtime/v1/websocket?apikey=...&vsn=1.0.0"""
        ws_base = self._url.replace("https://", "wss://", 1).replace("http://", "ws://", 1)
        return f"{ws_base}/realtime/v1/websocket?apikey={self._key}&vsn=1.0.0"

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._url}/storage/v1/object/public/{bucket}/{path}"

    async def _request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, mapping every failure to RemoteServiceError."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"{method} {url}: {e.__class__.__name__}: {e}") from e

        if response.is_error:
            detail = response.text[:200]
            raise RemoteServiceError(
                f"{method} {url}: HTTP {response.status_code} {detail}",
                status_code=response.status_code,
            )

        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        """Decoded body; a 2xx answer that is not JSON counts as a remote failure."""
        try:
            return response.json()
        except ValueError as e:
            request = response.request
            raise RemoteServiceError(
                f"{request.method} {request.url.path}: non-JSON body ({e})",
                status_code=response.status_code,
            ) from e

    async def select(
        self,
        table: Table,
        order_by: str = "created_at",
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        direction = "asc" if ascending else "desc"
        response = await self._request(
            "GET",
            f"/rest/v1/{table.value}",
            params={"select": "*", "order": f"{order_by}.{direction}"},
        )
        data = self._json(response)
        if not isinstance(data, list):
            raise RemoteServiceError(f"Unexpected select payload for {table.value}")
        return data

    async def insert(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table.value}",
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        data = self._json(response)
        if isinstance(data, list):
            if not data:
                raise RemoteServiceError(f"Insert into {table.value} returned no row")
            data = data[0]
        return data

    async def update(self, table: Table, row_id: int, patch: dict[str, Any]) -> None:
        await self._request(
            "PATCH",
            f"/rest/v1/{table.value}",
            params={"id": f"eq.{row_id}"},
            json=patch,
        )

    async def delete(self, table: Table, row_id: int) -> None:
        await self._request(
            "DELETE",
            f"/rest/v1/{table.value}",
            params={"id": f"eq.{row_id}"},
        )

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
    ) -> str:
        await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=content,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        return self.public_url(bucket, path)

    async def subscribe(self, table: Table, callback: ChangeCallback) -> Subscription:
        subscription = RealtimeSubscription(
            url=self.realtime_url,
            access_token=self._key,
            table=table,
            callback=callback,
            heartbeat_seconds=self._heartbeat_seconds,
            reconnect_seconds=self._reconnect_seconds,
        )
        subscription.start()
        self._subscriptions = [s for s in self._subscriptions if not s.closed]
        self._subscriptions.append(subscription)
        return subscription

    async def health_check(self) -> bool:
        try:
            await self._request(
                "GET",
                f"/rest/v1/{Table.MENU_ITEMS.value}",
                params={"select": "id", "limit": "1"},
            )
        except RemoteServiceError as e:
            logger.error(f"Supabase connection check failed: {e}")
            return False
        return True

    async def close(self) -> None:
        for subscription in self._subscriptions:
            await subscription.unsubscribe()
        self._subscriptions.clear()
        await self._client.aclose()
        logger.info("SupabaseRemoteService closed")
