"""
Remote Service Abstract Base Class

Defines the interface contract for the hosted database/storage backend.
Both MockRemoteService and SupabaseRemoteService implement these methods.

Use Cases:
    - Table reads and writes (menu_items, orders)
    - Menu image uploads to object storage
    - Change-feed subscriptions per table
    - Connectivity probe

Implementations raise RemoteServiceError for every transport or service
failure; callers decide whether to fall back.

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union


class Table(str, Enum):
    """Remote tables consumed by the application."""
    MENU_ITEMS = "menu_items"
    ORDERS = "orders"


ChangePayload = dict[str, Any]
ChangeCallback = Callable[[ChangePayload], Union[None, Awaitable[None]]]


class RemoteServiceError(Exception):
    """
    Remote call failed.

    Attributes:
        status_code: HTTP status when the service answered, None for
            transport errors
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class Subscription(ABC):
    """Handle returned by subscribe()."""

    @abstractmethod
    async def unsubscribe(self) -> None:
        pass


class NoopSubscription(Subscription):
    """Returned when there is no change source to observe."""

    async def unsubscribe(self) -> None:
        return None


class BaseRemoteService(ABC):
    """
    Abstract base class for remote persistence services.

    Example:
        >>> service = build_remote_service(settings)
        >>> if service is not None:
        ...     rows = await service.select(Table.MENU_ITEMS)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the remote provider.

        Returns:
            str: Provider name (e.g., "mock", "supabase")
        """
        pass

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when both an endpoint and a credential are present."""
        pass

    @abstractmethod
    async def select(
        self,
        table: Table,
        order_by: str = "created_at",
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        """
        Fetch every row of a table.

        Args:
            table: Table to read
            order_by: Column to sort on
            ascending: Sort direction

        Returns:
            list of row dicts
        """
        pass

    @abstractmethod
    async def insert(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one row.

        Returns:
            The stored row as the service normalized it (id assigned remotely)
        """
        pass

    @abstractmethod
    async def update(self, table: Table, row_id: int, patch: dict[str, Any]) -> None:
        """Apply a partial update to the row with the given id."""
        pass

    @abstractmethod
    async def delete(self, table: Table, row_id: int) -> None:
        """Delete the row with the given id."""
        pass

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
    ) -> str:
        """
        Upload a file to object storage.

        Returns:
            str: Public URL of the stored object
        """
        pass

    @abstractmethod
    async def subscribe(self, table: Table, callback: ChangeCallback) -> Subscription:
        """
        Invoke callback once per insert/update/delete reported for table.

        The payload is passed through untransformed.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Issue a lightweight read.

        Returns:
            bool: True if the service answered
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None


def remote_ready(remote: Optional[BaseRemoteService]) -> bool:
    """Configuration check performed before every remote call."""
    return remote is not None and remote.is_configured
