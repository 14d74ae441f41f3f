"""Offline mode: no remote configured, everything served by the local mirror."""

import asyncio

from app.schemas import MenuItemCreate, MenuItemUpdate, OrderCreate, OrderItem
from app.services.data_access import DataAccessLayer, IdGenerator, WriteOutcome
from app.services.local_store import MENU_KEY, ORDERS_KEY, LocalStore


def takeaway_order(name="Budi", quantity=2, price=5000):
    return OrderCreate(
        customer_name=name,
        type="takeaway",
        address="Jl. Mawar 1",
        phone_number="08123456789",
        items=[OrderItem(name="Es Teh Manis", quantity=quantity, price=price)],
    )


def test_mode_is_offline(offline_data):
    assert not offline_data.remote_ready
    assert offline_data.mode == "offline"


def test_first_run_lists_seed_menu(offline_data):
    menu = asyncio.run(offline_data.list_menu_items())

    assert len(menu) == 6
    first = menu[0]
    assert (first.id, first.name, first.price, first.category) == (1, "Nasi Goreng Spesial", 25000, "Makanan Utama")


def test_listing_does_not_write_mirror(offline_data, local_store):
    asyncio.run(offline_data.list_menu_items())

    assert local_store.get_item(MENU_KEY) is None


def test_initialized_mirror_is_served_as_is(offline_data, local_store):
    local_store.set_item(MENU_KEY, [{
        "id": 42, "name": "Soto Ayam", "price": 18000,
        "category": "Makanan Utama", "image_url": None,
        "created_at": "2024-05-01T10:00:00+00:00",
    }])

    menu = asyncio.run(offline_data.list_menu_items())

    assert [item.id for item in menu] == [42]


def test_empty_mirror_does_not_fall_back_to_seed(offline_data, local_store):
    local_store.set_item(MENU_KEY, [])

    assert asyncio.run(offline_data.list_menu_items()) == []


def test_create_menu_item_is_local_only(offline_data, local_store, clock):
    item = MenuItemCreate(name="Soto Ayam", price=18000, category="Makanan Utama")

    result = asyncio.run(offline_data.create_menu_item(item))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    assert result.success and not result.synced
    assert result.data.id == clock.now
    stored = local_store.get_item(MENU_KEY)
    assert len(stored) == 7
    assert stored[-1]["name"] == "Soto Ayam"


def test_ids_unique_when_clock_stands_still(offline_data):
    async def create_three():
        results = []
        for name in ("Soto", "Bakso", "Rawon"):
            item = MenuItemCreate(name=name, price=15000, category="Makanan Utama")
            results.append(await offline_data.create_menu_item(item))
        return results

    ids = [result.data.id for result in asyncio.run(create_three())]

    assert len(set(ids)) == 3
    assert ids == sorted(ids)


def test_id_generator_never_goes_backwards():
    ticks = iter([5000, 4000, 6000])
    ids = IdGenerator(lambda: next(ticks))

    assert [ids.next_id(), ids.next_id(), ids.next_id()] == [5000, 5001, 6000]


def test_update_merges_patch(offline_data):
    result = asyncio.run(offline_data.update_menu_item(2, MenuItemUpdate(price=32000)))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    assert result.data.name == "Ayam Bakar"
    assert result.data.price == 32000
    menu = asyncio.run(offline_data.list_menu_items())
    assert next(item for item in menu if item.id == 2).price == 32000


def test_update_unknown_id_changes_nothing(offline_data):
    result = asyncio.run(offline_data.update_menu_item(999, MenuItemUpdate(price=1)))

    assert result.success
    assert result.data is None
    assert all(item.price != 1 for item in asyncio.run(offline_data.list_menu_items()))


def test_deleted_item_never_listed_again(offline_data):
    asyncio.run(offline_data.delete_menu_item(1))

    menu = asyncio.run(offline_data.list_menu_items())
    assert 1 not in [item.id for item in menu]
    assert len(menu) == 5


def test_deleting_every_seed_item_leaves_empty_menu(offline_data):
    async def delete_all():
        for item in await offline_data.list_menu_items():
            await offline_data.delete_menu_item(item.id)
        return await offline_data.list_menu_items()

    assert asyncio.run(delete_all()) == []


def test_takeaway_order_shows_as_pending(offline_data):
    result = asyncio.run(offline_data.create_order(takeaway_order()))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    pending = asyncio.run(offline_data.list_pending_orders())
    assert len(pending) == 1
    order = pending[0]
    assert order.customer_name == "Budi"
    assert order.total == 10000
    assert order.status.value == "pending"
    assert order.table_number is None


def test_order_total_unaffected_by_later_price_change(offline_data):
    asyncio.run(offline_data.create_order(takeaway_order()))
    asyncio.run(offline_data.update_menu_item(4, MenuItemUpdate(price=7000)))

    order = asyncio.run(offline_data.list_orders())[0]
    assert order.items[0].price == 5000
    assert order.total == 10000


def test_completed_order_leaves_queue(offline_data, local_store):
    first = asyncio.run(offline_data.create_order(takeaway_order("Budi")))
    asyncio.run(offline_data.create_order(takeaway_order("Sari")))

    result = asyncio.run(offline_data.delete_order(first.data.id))

    assert result.outcome == WriteOutcome.LOCAL_ONLY
    names = [order.customer_name for order in asyncio.run(offline_data.list_pending_orders())]
    assert names == ["Sari"]
    assert len(local_store.get_item(ORDERS_KEY)) == 1


def test_orders_start_empty(offline_data):
    assert asyncio.run(offline_data.list_orders()) == []


def test_local_failure_reports_failed(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    data = DataAccessLayer(LocalStore(blocker / "data"), None)

    result = asyncio.run(data.create_order(takeaway_order()))

    assert result.outcome == WriteOutcome.FAILED
    assert not result.success
    assert result.data is None
    assert result.error_message


def test_subscription_is_noop_offline(offline_data):
    events = []

    async def subscribe():
        subscription = await offline_data.subscribe_to_orders(events.append)
        await offline_data.create_order(takeaway_order())
        await subscription.unsubscribe()

    asyncio.run(subscribe())
    assert events == []


def test_mirror_orders_listed_newest_first(offline_data, local_store):
    base = {
        "type": "dine-in", "table_number": "2", "status": "pending",
        "items": [{"name": "Es Campur", "quantity": 1, "price": 12000}], "total": 12000,
    }
    local_store.set_item(ORDERS_KEY, [
        {**base, "id": 1, "customer_name": "Ani", "created_at": "2024-05-01T09:00:00+00:00"},
        {**base, "id": 2, "customer_name": "Sari", "created_at": "2024-05-01T11:00:00+00:00"},
        {**base, "id": 3, "customer_name": "Budi", "created_at": "2024-05-01T10:00:00+00:00"},
    ])

    orders = asyncio.run(offline_data.list_orders())

    assert [order.customer_name for order in orders] == ["Sari", "Budi", "Ani"]
