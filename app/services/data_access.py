"""
Data-Access / Fallback Layer

Remote-preferring CRUD over menu items and orders, backed by a local mirror.

Routing per call:
    - read: remote first (ordered by created_at), refresh the mirror on
      success; on failure or offline mode serve the mirror, or the seed
      menu when the mirror was never initialized
    - write: local mirror first, always; then the remote service, best
      effort. No retries, no backoff, no deferred queue.

Every write reports a WriteResult:
    - SYNCED: committed locally and remotely
    - LOCAL_ONLY: committed locally; remote unconfigured or failed
    - FAILED: local commit failed; remote not attempted

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas import (
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    Order,
    OrderCreate,
    OrderStatus,
)
from app.services.connection import ConnectionProbe, ConnectionState
from app.services.images import ImageResolver
from app.services.local_store import LocalStore, LocalStoreError, MENU_KEY, ORDERS_KEY
from app.services.remote.base import (
    BaseRemoteService,
    ChangeCallback,
    NoopSubscription,
    RemoteServiceError,
    Subscription,
    Table,
    remote_ready,
)
from app.services.seed import default_menu_items

logger = logging.getLogger(__name__)

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)

MIRROR_KEYS = {
    Table.MENU_ITEMS: MENU_KEY,
    Table.ORDERS: ORDERS_KEY,
}


class WriteOutcome(str, Enum):
    SYNCED = "synced"
    LOCAL_ONLY = "local_only"
    FAILED = "failed"


@dataclass
class WriteResult(Generic[T]):
    """
    Result of a write through the data-access layer.

    Attributes:
        outcome: Which stores committed the write
        data: Record to show the caller (remote record when synced)
        error_message: Why the remote (or local) write did not happen
    """
    outcome: WriteOutcome
    data: Optional[T] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome != WriteOutcome.FAILED

    @property
    def synced(self) -> bool:
        return self.outcome == WriteOutcome.SYNCED


@dataclass(frozen=True)
class SyncPolicy:
    """
    Routing knobs. Local writes always happen first and are not optional.

    Attributes:
        prefer_remote_read: Try the remote service before the mirror on reads
        refresh_mirror_on_read: Overwrite the mirror with a successful remote read
        remote_writes: Forward writes to the remote service after the local commit
    """
    prefer_remote_read: bool = True
    refresh_mirror_on_read: bool = True
    remote_writes: bool = True


class IdGenerator:
    """
    Millisecond timestamps, bumped past the last issued id when the clock
    has not moved, so ids are unique and increasing within a process.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._last = 0

    def next_id(self) -> int:
        candidate = self._clock()
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DataAccessLayer:
    """
    Sole owner of the remote/local synchronization contract.

    Example:
        >>> data = DataAccessLayer(LocalStore("data"), build_remote_service(settings))
        >>> menu = await data.list_menu_items()
        >>> result = await data.create_order(order)
        >>> if not result.synced:
        ...     logger.warning("Order only saved locally")
    """

    def __init__(
        self,
        local: LocalStore,
        remote: Optional[BaseRemoteService],
        policy: Optional[SyncPolicy] = None,
        id_generator: Optional[IdGenerator] = None,
        image_bucket: str = "menu-images",
    ):
        self.local = local
        self.remote = remote
        self.policy = policy or SyncPolicy()
        self.ids = id_generator or IdGenerator()
        self.images = ImageResolver(remote, bucket=image_bucket)
        self.probe = ConnectionProbe(remote)

    @property
    def remote_ready(self) -> bool:
        return remote_ready(self.remote)

    @property
    def mode(self) -> str:
        return "online" if self.remote_ready else "offline"

    # =========================================================================
    # LOCAL MIRROR
    # =========================================================================

    def _read_mirror(self, table: Table) -> Optional[list[dict[str, Any]]]:
        key = MIRROR_KEYS[table]
        rows = self.local.get_item(key)
        if rows is None:
            return None
        if not isinstance(rows, list):
            raise LocalStoreError(key, "expected a JSON array")
        return rows

    def _write_mirror(self, table: Table, rows: list[dict[str, Any]]) -> None:
        self.local.set_item(MIRROR_KEYS[table], rows)

    def _mirror(self, table: Table) -> list[dict[str, Any]]:
        """Mirror rows; an uninitialized menu mirror starts from the seed set."""
        rows = self._read_mirror(table)
        if rows is None:
            return default_menu_items() if table == Table.MENU_ITEMS else []
        return rows

    def _replace_in_mirror(self, table: Table, row_id: int, record: dict[str, Any]) -> None:
        try:
            rows = self._mirror(table)
            rows = [record if row.get("id") == row_id else row for row in rows]
            self._write_mirror(table, rows)
        except LocalStoreError as e:
            logger.warning(f"Could not reconcile {table.value}#{row_id} with remote record: {e}")

    # =========================================================================
    # GENERIC ROUTING
    # =========================================================================

    async def _list(self, table: Table, model: type[ModelT], ascending: bool) -> list[ModelT]:
        if self.policy.prefer_remote_read and self.remote_ready:
            try:
                rows = await self.remote.select(table, order_by="created_at", ascending=ascending)
                records = [model.model_validate(row) for row in rows]
            except (RemoteServiceError, ValidationError) as e:
                logger.error(f"Error fetching {table.value}, using local mirror: {e}")
            else:
                if self.policy.refresh_mirror_on_read:
                    try:
                        self._write_mirror(table, [r.model_dump(mode="json") for r in records])
                    except LocalStoreError as e:
                        logger.warning(f"Could not refresh {table.value} mirror: {e}")
                return records

        records = [model.model_validate(row) for row in self._mirror(table)]
        return sorted(records, key=lambda r: r.created_at, reverse=not ascending)

    async def _push(self, action: str, call: Callable[[], Awaitable[Any]]) -> Optional[str]:
        """Best-effort remote write. Returns the error message, None on success."""
        try:
            await call()
        except RemoteServiceError as e:
            logger.error(f"Error {action}: {e}")
            return str(e)
        return None

    def _remote_writes_enabled(self) -> bool:
        return self.policy.remote_writes and self.remote_ready

    async def _create(self, table: Table, row: dict[str, Any], model: type[ModelT]) -> WriteResult[ModelT]:
        try:
            rows = self._mirror(table)
            rows.append(row)
            self._write_mirror(table, rows)
        except LocalStoreError as e:
            logger.error(f"Local commit of new {table.value} row failed: {e}")
            return WriteResult(WriteOutcome.FAILED, error_message=str(e))

        local_record = model.model_validate(row)
        logger.info(f"Saved {table.value}#{row['id']} to local mirror")

        if not self._remote_writes_enabled():
            return WriteResult(WriteOutcome.LOCAL_ONLY, local_record)

        payload = {k: v for k, v in row.items() if k != "id"}
        try:
            stored = await self.remote.insert(table, payload)
            record = model.model_validate(stored)
        except (RemoteServiceError, ValidationError) as e:
            logger.error(f"Error adding {table.value} row remotely: {e}")
            return WriteResult(WriteOutcome.LOCAL_ONLY, local_record, error_message=str(e))

        self._replace_in_mirror(table, row["id"], record.model_dump(mode="json"))
        return WriteResult(WriteOutcome.SYNCED, record)

    async def _update(
        self,
        table: Table,
        row_id: int,
        patch: dict[str, Any],
        model: type[ModelT],
    ) -> WriteResult[ModelT]:
        patch = {k: v for k, v in patch.items() if k != "id"}
        updated: Optional[dict[str, Any]] = None

        try:
            rows = self._mirror(table)
            for row in rows:
                if row.get("id") == row_id:
                    row.update(patch)
                    updated = row
            self._write_mirror(table, rows)
        except LocalStoreError as e:
            logger.error(f"Local update of {table.value}#{row_id} failed: {e}")
            return WriteResult(WriteOutcome.FAILED, error_message=str(e))

        if updated is None:
            logger.warning(f"{table.value}#{row_id} not in local mirror")
        record = model.model_validate(updated) if updated is not None else None

        if not self._remote_writes_enabled():
            return WriteResult(WriteOutcome.LOCAL_ONLY, record)

        error = await self._push(
            f"updating {table.value}#{row_id}",
            lambda: self.remote.update(table, row_id, patch),
        )
        outcome = WriteOutcome.LOCAL_ONLY if error else WriteOutcome.SYNCED
        return WriteResult(outcome, record, error_message=error)

    async def _delete(self, table: Table, row_id: int) -> WriteResult[None]:
        try:
            rows = self._mirror(table)
            self._write_mirror(table, [row for row in rows if row.get("id") != row_id])
        except LocalStoreError as e:
            logger.error(f"Local delete of {table.value}#{row_id} failed: {e}")
            return WriteResult(WriteOutcome.FAILED, error_message=str(e))

        logger.info(f"Removed {table.value}#{row_id} from local mirror")

        if not self._remote_writes_enabled():
            return WriteResult(WriteOutcome.LOCAL_ONLY)

        error = await self._push(
            f"deleting {table.value}#{row_id}",
            lambda: self.remote.delete(table, row_id),
        )
        outcome = WriteOutcome.LOCAL_ONLY if error else WriteOutcome.SYNCED
        return WriteResult(outcome, error_message=error)

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    async def list_menu_items(self) -> list[MenuItem]:
        return await self._list(Table.MENU_ITEMS, MenuItem, ascending=True)

    async def create_menu_item(self, item: MenuItemCreate) -> WriteResult[MenuItem]:
        row = {
            "id": self.ids.next_id(),
            **item.model_dump(mode="json"),
            "created_at": _now_iso(),
        }
        return await self._create(Table.MENU_ITEMS, row, MenuItem)

    async def update_menu_item(self, item_id: int, patch: MenuItemUpdate) -> WriteResult[MenuItem]:
        return await self._update(Table.MENU_ITEMS, item_id, patch.to_patch(), MenuItem)

    async def delete_menu_item(self, item_id: int) -> WriteResult[None]:
        return await self._delete(Table.MENU_ITEMS, item_id)

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def list_orders(self) -> list[Order]:
        return await self._list(Table.ORDERS, Order, ascending=False)

    async def list_pending_orders(self) -> list[Order]:
        orders = await self.list_orders()
        return [order for order in orders if order.status == OrderStatus.PENDING]

    async def create_order(self, order: OrderCreate) -> WriteResult[Order]:
        row = {
            "id": self.ids.next_id(),
            **order.model_dump(mode="json"),
            "status": OrderStatus.PENDING.value,
            "created_at": _now_iso(),
        }
        return await self._create(Table.ORDERS, row, Order)

    async def delete_order(self, order_id: int) -> WriteResult[None]:
        """Completing an order removes it; completed orders are not retained."""
        return await self._delete(Table.ORDERS, order_id)

    # =========================================================================
    # IMAGES / CHANGE FEED / HEALTH
    # =========================================================================

    async def upload_image(
        self,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        return await self.images.resolve(filename, content, content_type)

    async def subscribe(self, table: Table, callback: ChangeCallback) -> Subscription:
        if not self.remote_ready:
            logger.warning(f"Remote not configured, real-time updates for {table.value} disabled")
            return NoopSubscription()

        try:
            return await self.remote.subscribe(table, callback)
        except RemoteServiceError as e:
            logger.error(f"Error setting up real-time subscription on {table.value}: {e}")
            return NoopSubscription()

    async def subscribe_to_menu_items(self, callback: ChangeCallback) -> Subscription:
        return await self.subscribe(Table.MENU_ITEMS, callback)

    async def subscribe_to_orders(self, callback: ChangeCallback) -> Subscription:
        return await self.subscribe(Table.ORDERS, callback)

    async def check_connection(self) -> ConnectionState:
        return await self.probe.check()
