"""Remote-preferring routing against the in-memory remote service."""

import asyncio

from app.schemas import MenuItemCreate, MenuItemUpdate, OrderCreate, OrderItem
from app.services.connection import ConnectionState
from app.services.data_access import DataAccessLayer, SyncPolicy, WriteOutcome
from app.services.local_store import MENU_KEY, ORDERS_KEY
from app.services.remote.base import NoopSubscription, Table
from app.services.remote.mock import MockRemoteService

REMOTE_MENU = [
    {"id": 11, "name": "Rendang", "price": 35000, "category": "Makanan Utama",
     "image_url": None, "created_at": "2024-05-01T08:00:00+00:00"},
    {"id": 12, "name": "Es Cendol", "price": 9000, "category": "Dessert",
     "image_url": None, "created_at": "2024-05-01T09:00:00+00:00"},
]


def dine_in_order(name="Ani"):
    return OrderCreate(
        customer_name=name,
        type="dine-in",
        table_number="5",
        items=[OrderItem(name="Ayam Bakar", quantity=1, price=30000)],
    )


def test_mode_is_online(online_data):
    assert online_data.mode == "online"


def test_list_prefers_remote_and_refreshes_mirror(online_data, mock_remote, local_store):
    mock_remote.seed(Table.MENU_ITEMS, list(reversed(REMOTE_MENU)))

    menu = asyncio.run(online_data.list_menu_items())

    assert [item.id for item in menu] == [11, 12]
    assert [row["id"] for row in local_store.get_item(MENU_KEY)] == [11, 12]


def test_empty_remote_result_empties_mirror(online_data, local_store):
    local_store.set_item(MENU_KEY, REMOTE_MENU)

    assert asyncio.run(online_data.list_menu_items()) == []
    assert local_store.get_item(MENU_KEY) == []


def test_remote_outage_serves_mirror(online_data, mock_remote, local_store):
    local_store.set_item(MENU_KEY, REMOTE_MENU)
    mock_remote.available = False

    menu = asyncio.run(online_data.list_menu_items())

    assert [item.name for item in menu] == ["Rendang", "Es Cendol"]


def test_remote_outage_on_first_run_serves_seed(online_data, mock_remote):
    mock_remote.available = False

    menu = asyncio.run(online_data.list_menu_items())

    assert len(menu) == 6
    assert menu[0].name == "Nasi Goreng Spesial"


def test_malformed_remote_rows_fall_back_to_mirror(online_data, mock_remote, local_store):
    mock_remote.seed(Table.MENU_ITEMS, [{"id": 1, "name": "Broken"}])
    local_store.set_item(MENU_KEY, REMOTE_MENU)

    menu = asyncio.run(online_data.list_menu_items())

    assert [item.id for item in menu] == [11, 12]
    assert len(local_store.get_item(MENU_KEY)) == 2


def test_create_synced_adopts_remote_record(online_data, mock_remote, local_store):
    item = MenuItemCreate(name="Soto Betawi", price=28000, category="Makanan Utama")

    result = asyncio.run(online_data.create_menu_item(item))

    assert result.outcome == WriteOutcome.SYNCED
    assert result.synced
    assert result.data.id == MockRemoteService.FIRST_ID
    assert mock_remote.tables[Table.MENU_ITEMS][0]["name"] == "Soto Betawi"
    mirror_ids = [row["id"] for row in local_store.get_item(MENU_KEY)]
    assert MockRemoteService.FIRST_ID in mirror_ids
    assert len(mirror_ids) == 7


def test_create_during_outage_is_local_only(online_data, mock_remote, local_store):
    mock_remote.available = False

    result = asyncio.run(online_data.create_order(dine_in_order()))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    assert result.success
    assert "unavailable" in result.error_message
    assert local_store.get_item(ORDERS_KEY)[0]["customer_name"] == "Ani"
    assert mock_remote.tables[Table.ORDERS] == []


def test_pending_order_visible_while_remote_down(online_data, mock_remote):
    mock_remote.available = False
    asyncio.run(online_data.create_order(dine_in_order("Budi")))

    pending = asyncio.run(online_data.list_pending_orders())

    assert [order.customer_name for order in pending] == ["Budi"]


def test_update_reaches_both_stores(online_data, mock_remote, local_store):
    mock_remote.seed(Table.MENU_ITEMS, REMOTE_MENU)
    asyncio.run(online_data.list_menu_items())

    result = asyncio.run(online_data.update_menu_item(11, MenuItemUpdate(price=36000)))

    assert result.outcome == WriteOutcome.SYNCED
    assert result.data.price == 36000
    assert mock_remote.tables[Table.MENU_ITEMS][0]["price"] == 36000
    assert local_store.get_item(MENU_KEY)[0]["price"] == 36000


def test_update_during_outage_keeps_local_change(online_data, mock_remote, local_store):
    mock_remote.seed(Table.MENU_ITEMS, REMOTE_MENU)
    asyncio.run(online_data.list_menu_items())
    mock_remote.available = False

    result = asyncio.run(online_data.update_menu_item(12, MenuItemUpdate(name="Cendol Durian")))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    assert result.data.name == "Cendol Durian"
    assert mock_remote.tables[Table.MENU_ITEMS][1]["name"] == "Es Cendol"


def test_delete_order_during_outage(online_data, mock_remote, local_store):
    created = asyncio.run(online_data.create_order(dine_in_order()))
    mock_remote.available = False

    result = asyncio.run(online_data.delete_order(created.data.id))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    assert local_store.get_item(ORDERS_KEY) == []
    assert asyncio.run(online_data.list_pending_orders()) == []


def test_remote_writes_disabled_by_policy(local_store, mock_remote):
    data = DataAccessLayer(local_store, mock_remote, policy=SyncPolicy(remote_writes=False))

    result = asyncio.run(data.create_order(dine_in_order()))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    assert result.error_message is None
    assert mock_remote.tables[Table.ORDERS] == []


def test_local_reads_when_policy_skips_remote(local_store, mock_remote):
    mock_remote.seed(Table.MENU_ITEMS, REMOTE_MENU)
    data = DataAccessLayer(local_store, mock_remote, policy=SyncPolicy(prefer_remote_read=False))

    menu = asyncio.run(data.list_menu_items())

    assert len(menu) == 6


def test_subscription_receives_each_change(online_data):
    events = []

    async def scenario():
        subscription = await online_data.subscribe_to_orders(events.append)
        created = await online_data.create_order(dine_in_order())
        await online_data.delete_order(created.data.id)
        await subscription.unsubscribe()
        await online_data.create_order(dine_in_order("Sari"))

    asyncio.run(scenario())

    assert [event["type"] for event in events] == ["INSERT", "DELETE"]
    assert events[0]["record"]["customer_name"] == "Ani"


def test_async_subscription_callback(online_data):
    events = []

    async def on_change(payload):
        events.append(payload["table"])

    async def scenario():
        await online_data.subscribe_to_menu_items(on_change)
        await online_data.create_menu_item(
            MenuItemCreate(name="Teh Tarik", price=8000, category="Minuman")
        )

    asyncio.run(scenario())

    assert events == ["menu_items"]


def test_subscribe_without_remote_is_noop(offline_data):
    subscription = asyncio.run(offline_data.subscribe(Table.MENU_ITEMS, lambda payload: None))

    assert isinstance(subscription, NoopSubscription)


def test_connection_probe_states(online_data, mock_remote, offline_data):
    assert online_data.probe.state == ConnectionState.UNKNOWN

    assert asyncio.run(online_data.check_connection()) == ConnectionState.REACHABLE
    mock_remote.available = False
    assert asyncio.run(online_data.check_connection()) == ConnectionState.UNREACHABLE
    assert online_data.probe.checked_at is not None

    assert asyncio.run(offline_data.check_connection()) == ConnectionState.UNREACHABLE
