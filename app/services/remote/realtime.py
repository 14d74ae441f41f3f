"""
Realtime Change-Feed Channel

Minimal Phoenix-protocol client for the Supabase realtime websocket.
One websocket per subscription, joined to topic realtime:<table>_changes
with a postgres_changes filter on every event of that table.

Frames (vsn 1.0.0, JSON objects):
    -> {"topic", "event": "phx_join", "payload": {"config": ...}, "ref"}
    -> {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref"}
    <- {"topic", "event": "postgres_changes", "payload": {"data": {...}}}
    -> {"topic", "event": "phx_leave", "payload": {}, "ref"}

Consumers are expected to re-list on every event; no ordering is
promised beyond what the websocket delivers.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import inspect
import itertools
import json
import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import WebSocketException

from app.services.remote.base import ChangeCallback, Subscription, Table

logger = logging.getLogger(__name__)


def join_message(topic: str, table: Table, access_token: str, ref: str) -> dict[str, Any]:
    return {
        "topic": topic,
        "event": "phx_join",
        "payload": {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {"event": "*", "schema": "public", "table": table.value},
                ],
            },
            "access_token": access_token,
        },
        "ref": ref,
        "join_ref": ref,
    }


def extract_change(message: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Change payload of a postgres_changes frame, None for anything else."""
    if message.get("event") != "postgres_changes":
        return None
    payload = message.get("payload") or {}
    return payload.get("data", payload)


class RealtimeSubscription(Subscription):
    """Background task owning one realtime websocket."""

    def __init__(
        self,
        url: str,
        access_token: str,
        table: Table,
        callback: ChangeCallback,
        heartbeat_seconds: float = 30.0,
        reconnect_seconds: float = 5.0,
    ):
        self.url = url
        self.access_token = access_token
        self.table = table
        self.callback = callback
        self.topic = f"realtime:{table.value}_changes"
        self.heartbeat_seconds = heartbeat_seconds
        self.reconnect_seconds = reconnect_seconds

        self._refs = itertools.count(1)
        self._task: Optional[asyncio.Task] = None
        self._websocket: Any = None
        self._closing = False

    @property
    def closed(self) -> bool:
        return self._closing

    def start(self) -> None:
        """Schedule the channel on the running event loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=self.topic)
            logger.info(f"Realtime channel {self.topic} starting")

    def _next_ref(self) -> str:
        return str(next(self._refs))

    async def _dispatch(self, change: dict[str, Any]) -> None:
        try:
            result = self.callback(change)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception(f"Change callback for {self.topic} failed: {e}")

    async def _heartbeat(self, websocket: Any) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            await websocket.send(json.dumps({
                "topic": "phoenix",
                "event": "heartbeat",
                "payload": {},
                "ref": self._next_ref(),
            }))

    async def _listen(self) -> None:
        async with websockets.connect(self.url) as websocket:
            self._websocket = websocket
            await websocket.send(json.dumps(
                join_message(self.topic, self.table, self.access_token, self._next_ref())
            ))
            logger.info(f"Realtime channel {self.topic} joined")

            heartbeat = asyncio.create_task(self._heartbeat(websocket))
            try:
                async for raw in websocket:
                    try:
                        message = json.loads(raw)
                    except json.JSONDecodeError:
                        logger.warning(f"Ignoring malformed realtime frame on {self.topic}")
                        continue

                    change = extract_change(message)
                    if change is not None:
                        logger.debug(f"Change on {self.table.value}: {change.get('type')}")
                        await self._dispatch(change)
                    elif message.get("event") == "phx_error":
                        logger.error(f"Realtime channel {self.topic} error: {message.get('payload')}")
            finally:
                heartbeat.cancel()
                self._websocket = None

    async def _run(self) -> None:
        while not self._closing:
            try:
                await self._listen()
            except asyncio.CancelledError:
                raise
            except (OSError, WebSocketException) as e:
                logger.error(f"Realtime channel {self.topic} dropped: {e}")

            if self._closing:
                break
            await asyncio.sleep(self.reconnect_seconds)

    async def unsubscribe(self) -> None:
        if self._closing:
            return
        self._closing = True

        websocket = self._websocket
        if websocket is not None:
            try:
                await websocket.send(json.dumps({
                    "topic": self.topic,
                    "event": "phx_leave",
                    "payload": {},
                    "ref": self._next_ref(),
                }))
                await websocket.close()
            except (OSError, WebSocketException) as e:
                logger.debug(f"Leaving {self.topic} failed: {e}")

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(f"Realtime channel {self.topic} closed")
