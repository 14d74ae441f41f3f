"""Realtime channel against a local websocket server speaking the Phoenix frames."""

import asyncio
import json

import websockets

from app.services.remote.base import Table
from app.services.remote.realtime import RealtimeSubscription
from app.services.remote.supabase import SupabaseRemoteService


async def eventually(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached in time"
        await asyncio.sleep(0.01)


class FakeRealtimeServer:
    """
    Records every frame it receives. After each phx_join it pushes one
    postgres_changes frame; the first connection is then dropped.
    """

    def __init__(self, drop_first: bool = True):
        self.frames: list[dict] = []
        self.connections = 0
        self.drop_first = drop_first

    def events(self, name: str) -> list[dict]:
        return [frame for frame in self.frames if frame["event"] == name]

    async def handler(self, websocket) -> None:
        self.connections += 1
        connection = self.connections
        async for raw in websocket:
            frame = json.loads(raw)
            self.frames.append(frame)
            if frame["event"] != "phx_join":
                continue
            await websocket.send(json.dumps({
                "topic": frame["topic"],
                "event": "postgres_changes",
                "payload": {"data": {
                    "type": "INSERT",
                    "table": "orders",
                    "record": {"id": connection},
                }},
                "ref": None,
            }))
            if self.drop_first and connection == 1:
                await websocket.close()
                return


def test_channel_joins_dispatches_reconnects_and_leaves():
    server = FakeRealtimeServer()
    changes = []

    async def scenario():
        async with websockets.serve(server.handler, "127.0.0.1", 0) as ws_server:
            port = ws_server.sockets[0].getsockname()[1]
            subscription = RealtimeSubscription(
                url=f"ws://127.0.0.1:{port}/realtime/v1/websocket",
                access_token="anon-key",
                table=Table.ORDERS,
                callback=changes.append,
                heartbeat_seconds=0.05,
                reconnect_seconds=0.05,
            )
            subscription.start()

            await eventually(lambda: len(changes) >= 2)
            await eventually(lambda: server.events("heartbeat"))
            await subscription.unsubscribe()
            await eventually(lambda: server.events("phx_leave"))
            assert subscription.closed

    asyncio.run(scenario())

    joins = server.events("phx_join")
    assert server.connections >= 2
    assert len(joins) >= 2
    assert joins[0]["topic"] == "realtime:orders_changes"
    assert joins[0]["payload"]["config"]["postgres_changes"][0]["table"] == "orders"
    assert joins[0]["payload"]["access_token"] == "anon-key"
    assert [change["record"]["id"] for change in changes[:2]] == [1, 2]
    assert server.events("heartbeat")[0]["topic"] == "phoenix"
    assert server.events("phx_leave")[0]["topic"] == "realtime:orders_changes"


def test_async_callback_errors_do_not_close_channel():
    server = FakeRealtimeServer(drop_first=False)
    seen = []

    async def flaky(change):
        seen.append(change["type"])
        raise RuntimeError("consumer bug")

    async def scenario():
        async with websockets.serve(server.handler, "127.0.0.1", 0) as ws_server:
            port = ws_server.sockets[0].getsockname()[1]
            subscription = RealtimeSubscription(
                url=f"ws://127.0.0.1:{port}",
                access_token="anon-key",
                table=Table.MENU_ITEMS,
                callback=flaky,
                heartbeat_seconds=0.05,
                reconnect_seconds=0.05,
            )
            subscription.start()
            await eventually(lambda: seen)
            await eventually(lambda: server.events("heartbeat"))
            await subscription.unsubscribe()

    asyncio.run(scenario())

    assert seen == ["INSERT"]
    assert server.connections == 1


def test_closed_subscriptions_are_released():
    server = FakeRealtimeServer(drop_first=False)

    async def scenario():
        async with websockets.serve(server.handler, "127.0.0.1", 0) as ws_server:
            port = ws_server.sockets[0].getsockname()[1]
            service = SupabaseRemoteService(
                f"http://127.0.0.1:{port}",
                "anon-key",
                heartbeat_seconds=0.05,
                reconnect_seconds=0.05,
            )
            first = await service.subscribe(Table.ORDERS, lambda change: None)
            await first.unsubscribe()
            second = await service.subscribe(Table.MENU_ITEMS, lambda change: None)

            tracked = list(service._subscriptions)
            await service.close()
            return tracked, second

    tracked, second = asyncio.run(scenario())

    assert tracked == [second]
    assert second.closed
