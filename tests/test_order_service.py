from urllib.parse import unquote

import pytest

from conftest import seed_product, selection, variation_stock
from tienda.core.errors import ValidationError
from tienda.db.store import CARTS, ORDERS
from tienda.models.order import OrderStatus, PaymentMethod, ShippingAddress
from tienda.services import order_service
from tienda.services.cart_service import add_to_cart, get_cart
from tienda.services.order_service import (
    apply_order_stock,
    can_transition,
    create_order,
    delete_order,
    format_order_summary,
    get_all_orders,
    get_order,
    get_orders_by_status,
    get_user_orders,
    place_whatsapp_order,
    update_order_status,
)
from tienda.services.product_service import update_product
from tienda.models.product import ProductUpdate

ADDRESS = ShippingAddress(street="Av. Siempre Viva 742", city="Córdoba", state="Córdoba", zipCode="5000")


async def two_line_cart(store, user_id="u1"):
    await add_to_cart(store, user_id, selection(color="red", price=1000), 2)
    return await add_to_cart(store, user_id, selection(product_id="p2", color="black", size=40, price=1500), 1)


async def test_create_order_from_cart(store):
    cart = await two_line_cart(store)

    order = await create_order(store, "u1", cart, ADDRESS, "cliente@example.com", "Cliente")

    assert order.status == OrderStatus.PENDIENTE
    assert len(order.items) == 2
    assert order.total == 3500
    assert order.createdAt == order.updatedAt
    assert order.paymentMethod == PaymentMethod.MERCADOPAGO
    stored = await get_order(store, order.id)
    assert stored.items == order.items
    assert stored.userEmail == "cliente@example.com"


async def test_create_order_does_not_touch_cart_or_stock(store):
    seed_product(store, "p1")
    cart = await two_line_cart(store)

    await create_order(store, "u1", cart, ADDRESS)

    assert await get_cart(store, "u1") is not None
    assert variation_stock(store, "p1", "red") == 5


async def test_create_order_requires_items(store):
    with pytest.raises(ValidationError):
        await create_order(store, "u1", None, ADDRESS)


async def test_order_items_are_frozen_copies(store):
    seed_product(store, "p1")
    order = await create_order(store, "u1", await two_line_cart(store), ADDRESS)

    await update_product(store, "p1", ProductUpdate(name="Nuevo nombre", price=9999))

    stored = await get_order(store, order.id)
    assert stored.items[0].price == 1000
    assert stored.items[0].name == "Zapatilla Urbana"


async def test_status_update_only_touches_status_and_timestamp(store):
    order = await create_order(store, "u1", await two_line_cart(store), ADDRESS)

    assert await update_order_status(store, order.id, OrderStatus.ACEPTADO) is True

    stored = await get_order(store, order.id)
    assert stored.status == OrderStatus.ACEPTADO
    assert stored.items == order.items
    assert stored.total == order.total
    assert stored.userId == order.userId
    assert stored.updatedAt >= order.updatedAt


async def test_status_update_on_missing_order_returns_false(store):
    assert await update_order_status(store, "nope", OrderStatus.ENVIADO) is False


async def test_status_update_write_failure_returns_false(store, monkeypatch):
    async def broken_update(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(store, "update", broken_update)
    assert await update_order_status(store, "o1", OrderStatus.ENVIADO) is False


async def test_queries(store):
    first = await create_order(store, "u1", await two_line_cart(store, "u1"), ADDRESS)
    second = await create_order(store, "u2", await two_line_cart(store, "u2"), ADDRESS)
    await update_order_status(store, second.id, OrderStatus.ACEPTADO)

    assert [o.id for o in await get_user_orders(store, "u1")] == [first.id]
    assert [o.id for o in await get_orders_by_status(store, OrderStatus.ACEPTADO)] == [second.id]
    assert {o.id for o in await get_all_orders(store)} == {first.id, second.id}


async def test_delete_order(store):
    order = await create_order(store, "u1", await two_line_cart(store), ADDRESS)

    assert await delete_order(store, order.id) is True
    assert await get_order(store, order.id) is None
    assert await delete_order(store, order.id) is False


@pytest.mark.parametrize(
    "current,new,allowed",
    [
        (OrderStatus.PENDIENTE, OrderStatus.ACEPTADO, True),
        (OrderStatus.PENDIENTE, OrderStatus.RECHAZADO, True),
        (OrderStatus.ACEPTADO, OrderStatus.ENVIADO, True),
        (OrderStatus.ACEPTADO, OrderStatus.ACEPTADO, True),
        (OrderStatus.PENDIENTE, OrderStatus.ENVIADO, False),
        (OrderStatus.ACEPTADO, OrderStatus.PENDIENTE, False),
        (OrderStatus.RECHAZADO, OrderStatus.ACEPTADO, False),
        (OrderStatus.ENVIADO, OrderStatus.ACEPTADO, False),
    ],
)
def test_state_machine(current, new, allowed):
    assert can_transition(current, new) is allowed


async def test_apply_order_stock_runs_once_per_line(store):
    seed_product(store, "p1")
    order = await create_order(store, "u1", await two_line_cart(store), ADDRESS)

    assert await apply_order_stock(store, order, "pay-1") == 2
    assert await apply_order_stock(store, order, "pay-1") == 0
    assert await apply_order_stock(store, order, "pay-2") == 0

    assert variation_stock(store, "p1", "red") == 3
    assert store.raw(ORDERS, order.id)["stockApplied"] == {"0": "pay-1", "1": "pay-1"}


async def test_apply_order_stock_releases_claim_on_failure(store, monkeypatch):
    seed_product(store, "p1")
    order = await create_order(store, "u1", await two_line_cart(store), ADDRESS)

    async def failing_decrement(*args, **kwargs):
        raise RuntimeError("write failed")

    monkeypatch.setattr(order_service, "decrement_variation_stock", failing_decrement)
    with pytest.raises(RuntimeError):
        await apply_order_stock(store, order, "pay-1")
    assert store.raw(ORDERS, order.id)["stockApplied"]["0"] is None

    monkeypatch.undo()
    assert await apply_order_stock(store, order, "pay-1") == 2
    assert variation_stock(store, "p1", "red") == 3


async def test_stock_never_goes_negative(store):
    seed_product(store, "p1", variations=[{"color": "red", "tallesDisponibles": [42], "images": [], "stock": 1}])
    await add_to_cart(store, "u1", selection(), 4)
    order = await create_order(store, "u1", await get_cart(store, "u1"), ADDRESS)

    await apply_order_stock(store, order, "pay-1")

    assert variation_stock(store, "p1", "red") == 0


def test_order_summary_lists_lines_and_total():
    from tienda.models.order import Order, OrderItem
    from datetime import datetime, timezone

    now = datetime.now(timezone.utc)
    order = Order(
        id="o1",
        userId="u1",
        items=[OrderItem(productId="p1", quantity=2, price=1000, name="Zapatilla", selectedColor="red", selectedSize=42)],
        total=2000,
        shippingAddress=ADDRESS,
        createdAt=now,
        updatedAt=now,
        userName="Ana",
        userEmail="ana@example.com",
    )
    summary = format_order_summary(order)

    assert "Nuevo pedido #o1" in summary
    assert "Cliente: Ana (ana@example.com)" in summary
    assert "- 2 x Zapatilla (Color: red, Talle: 42): $2000.00" in summary
    assert "Total: $2000.00" in summary
    assert "CP 5000" in summary


async def test_whatsapp_order_applies_stock_and_clears_cart(store, monkeypatch):
    monkeypatch.setattr(order_service.settings, "admin_whatsapp_number", "+54 9 351 555-0000")
    seed_product(store, "p1")
    await add_to_cart(store, "u1", selection(), 2)

    result = await place_whatsapp_order(store, "u1", ADDRESS, "c@example.com", "Cliente")

    assert result.order.paymentMethod == PaymentMethod.WHATSAPP
    assert result.order.status == OrderStatus.PENDIENTE
    assert variation_stock(store, "p1", "red") == 3
    assert store.raw(CARTS, "u1") is None
    assert result.whatsappUrl.startswith("https://wa.me/5493515550000?text=")
    assert unquote(result.whatsappUrl.split("text=", 1)[1]) == result.summary


async def test_whatsapp_order_without_admin_number_has_no_link(store, monkeypatch):
    monkeypatch.setattr(order_service.settings, "admin_whatsapp_number", None)
    await add_to_cart(store, "u1", selection(), 1)

    result = await place_whatsapp_order(store, "u1", ADDRESS)

    assert result.whatsappUrl is None


async def test_whatsapp_order_with_empty_cart_fails(store):
    with pytest.raises(ValidationError):
        await place_whatsapp_order(store, "u1", ADDRESS)
