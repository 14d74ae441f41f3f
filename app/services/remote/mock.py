"""
Mock Remote Service Implementation

In-memory stand-in for the hosted backend. Used when REMOTE_BACKEND=mock to:
    - Exercise the remote-preferring code paths without a Supabase project
    - Simulate outages (failure_rate, or flip `available` off)
    - Drive change-feed subscribers from local writes

Behavior:
    - Assigns its own row ids (like a database identity column)
    - Stamps created_at server-side when missing
    - Fires {"type", "table", "record", "old_record"} events to subscribers
    - Stores uploads in memory and returns mock:// public URLs

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import copy
import inspect
import itertools
import logging
import random
from datetime import datetime, timezone
from typing import Any, Optional

from app.services.remote.base import (
    BaseRemoteService,
    ChangeCallback,
    ChangePayload,
    RemoteServiceError,
    Subscription,
    Table,
)

logger = logging.getLogger(__name__)


class MockSubscription(Subscription):
    def __init__(self, service: "MockRemoteService", table: Table, callback: ChangeCallback):
        self._service = service
        self.table = table
        self.callback = callback
        self.active = True

    async def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._service._subscribers[self.table].remove(self)
            logger.debug(f"Mock subscription on {self.table.value} closed")


class MockRemoteService(BaseRemoteService):
    """
    Mock implementation of the remote service.

    Attributes:
        failure_rate: Probability of a simulated failure per call (0.0-1.0)
        latency: Simulated response time in seconds
        available: When False every call fails, as during an outage

    Example:
        >>> service = MockRemoteService(failure_rate=0.1)
        >>> row = await service.insert(Table.ORDERS, {"customer_name": "Budi"})
        >>> print(row["id"])
        1000
    """

    FIRST_ID = 1000

    def __init__(self, failure_rate: float = 0.0, latency: float = 0.0):
        self.failure_rate = failure_rate
        self.latency = latency
        self.available = True

        self.tables: dict[Table, list[dict[str, Any]]] = {t: [] for t in Table}
        self.objects: dict[str, bytes] = {}
        self._ids = itertools.count(self.FIRST_ID)
        self._subscribers: dict[Table, list[MockSubscription]] = {t: [] for t in Table}

        logger.info(
            f"MockRemoteService initialized "
            f"(failure_rate={failure_rate:.0%}, latency={latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def is_configured(self) -> bool:
        return True

    async def _simulate_call(self, operation: str) -> None:
        """Simulate latency, then fail if the service is 'down'."""
        if self.latency:
            await asyncio.sleep(self.latency)

        if not self.available:
            raise RemoteServiceError(f"Mock remote unavailable ({operation})", status_code=503)

        if random.random() < self.failure_rate:
            logger.warning(f"Mock remote {operation} failed (simulated)")
            raise RemoteServiceError(f"Simulated failure ({operation})", status_code=500)

    async def _notify(self, table: Table, event: str, record: Any, old_record: Any) -> None:
        payload: ChangePayload = {
            "type": event,
            "table": table.value,
            "schema": "public",
            "record": copy.deepcopy(record),
            "old_record": copy.deepcopy(old_record),
            "commit_timestamp": datetime.now(timezone.utc).isoformat(),
        }
        for subscription in list(self._subscribers[table]):
            result = subscription.callback(payload)
            if inspect.isawaitable(result):
                await result

    def _find(self, table: Table, row_id: int) -> Optional[dict[str, Any]]:
        for row in self.tables[table]:
            if row.get("id") == row_id:
                return row
        return None

    def seed(self, table: Table, rows: list[dict[str, Any]]) -> None:
        """Load rows directly, bypassing failures and notifications."""
        self.tables[table] = [copy.deepcopy(row) for row in rows]

    async def select(
        self,
        table: Table,
        order_by: str = "created_at",
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        await self._simulate_call(f"select {table.value}")
        rows = sorted(
            self.tables[table],
            key=lambda row: str(row.get(order_by) or ""),
            reverse=not ascending,
        )
        return copy.deepcopy(rows)

    async def insert(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        await self._simulate_call(f"insert {table.value}")
        stored = copy.deepcopy(row)
        stored["id"] = next(self._ids)
        stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self.tables[table].append(stored)
        logger.info(f"Mock remote inserted {table.value}#{stored['id']}")

        await self._notify(table, "INSERT", stored, None)
        return copy.deepcopy(stored)

    async def update(self, table: Table, row_id: int, patch: dict[str, Any]) -> None:
        await self._simulate_call(f"update {table.value}")
        row = self._find(table, row_id)
        if row is None:
            return

        old = copy.deepcopy(row)
        row.update({k: v for k, v in patch.items() if k != "id"})
        await self._notify(table, "UPDATE", row, old)

    async def delete(self, table: Table, row_id: int) -> None:
        await self._simulate_call(f"delete {table.value}")
        row = self._find(table, row_id)
        if row is None:
            return

        self.tables[table].remove(row)
        await self._notify(table, "DELETE", None, row)

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
    ) -> str:
        await self._simulate_call(f"upload {bucket}/{path}")
        self.objects[f"{bucket}/{path}"] = content
        return f"mock://storage/{bucket}/{path}"

    async def subscribe(self, table: Table, callback: ChangeCallback) -> Subscription:
        subscription = MockSubscription(self, table, callback)
        self._subscribers[table].append(subscription)
        logger.debug(f"Mock subscription on {table.value} opened")
        return subscription

    async def health_check(self) -> bool:
        try:
            await self._simulate_call("health_check")
        except RemoteServiceError:
            return False
        return True
