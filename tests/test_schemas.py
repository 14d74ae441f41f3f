import pytest
from pydantic import ValidationError

from app.schemas import MenuItemCreate, MenuItemUpdate, OrderCreate, OrderItem, OrderType


def items(*pairs):
    return [OrderItem(name=name, quantity=qty, price=price) for name, qty, price in pairs]


def test_dine_in_requires_table_number():
    with pytest.raises(ValidationError, match="Table number is required"):
        OrderCreate(customer_name="Ani", type="dine-in", items=items(("Es Teh Manis", 1, 5000)))


def test_takeaway_requires_address_and_phone():
    with pytest.raises(ValidationError, match="Address and phone number"):
        OrderCreate(
            customer_name="Budi",
            type="takeaway",
            address="Jl. Mawar 1",
            items=items(("Es Teh Manis", 1, 5000)),
        )


def test_fulfillment_fields_are_exclusive():
    order = OrderCreate(
        customer_name="  Ani ",
        type="dine-in",
        table_number="7",
        address="Jl. Mawar 1",
        phone_number="0812",
        items=items(("Ayam Bakar", 1, 30000)),
    )

    assert order.customer_name == "Ani"
    assert order.type == OrderType.DINE_IN
    assert order.address is None
    assert order.phone_number is None


def test_total_is_computed_from_items():
    order = OrderCreate(
        customer_name="Budi",
        type="takeaway",
        address="Jl. Mawar 1",
        phone_number="08123456789",
        items=items(("Es Teh Manis", 2, 5000), ("Jus Jeruk", 1, 8000)),
    )

    assert order.total == 18000
    assert order.table_number is None


def test_mismatched_total_rejected():
    with pytest.raises(ValidationError, match="does not match"):
        OrderCreate(
            customer_name="Budi",
            type="dine-in",
            table_number="3",
            items=items(("Es Teh Manis", 2, 5000)),
            total=9000,
        )


def test_blank_customer_name_rejected():
    with pytest.raises(ValidationError):
        OrderCreate(customer_name="   ", type="dine-in", table_number="1", items=items(("Es Campur", 1, 12000)))


def test_menu_item_category_must_be_known():
    with pytest.raises(ValidationError):
        MenuItemCreate(name="Kopi", price=7000, category="Snack")


def test_menu_item_update_patch_only_has_set_fields():
    patch = MenuItemUpdate(price=27000)

    assert patch.to_patch() == {"price": 27000}
