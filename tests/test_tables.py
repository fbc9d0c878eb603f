from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from pos_service.application.schemas import OrderCreate, OrderItemIn, OrderStatusUpdate
from pos_service.domain.status import OrderStatus, PaymentMethod
from pos_service.domain.tables import derive_tables


def pending(order_id, table_number):
    return SimpleNamespace(
        id=order_id,
        token_number=order_id,
        table_number=table_number,
        total=Decimal("10.00"),
        item_count=2,
        created_at=datetime(2025, 3, 14, 6, 30),
    )


def test_one_entry_per_table():
    tables = derive_tables(12, [pending(1, 4)])
    assert [t.number for t in tables] == list(range(1, 13))
    assert tables[3].status == "occupied"
    assert tables[3].order.id == 1
    assert tables[3].order.item_count == 2
    assert all(t.status == "available" and t.order is None for t in tables if t.number != 4)


def test_take_away_and_out_of_range_orders_ignored():
    tables = derive_tables(3, [pending(1, None), pending(2, 0), pending(3, 7)])
    assert len(tables) == 3
    assert all(t.status == "available" for t in tables)


def test_tables_follow_order_lifecycle(service, menu):
    order = service.create(OrderCreate(items=[OrderItemIn(menu_item_id=menu["Dal Makhani"], quantity=1)], table_number=4))
    service.create(OrderCreate(items=[OrderItemIn(menu_item_id=menu["Butter Naan"], quantity=2)]))

    tables = service.tables()
    assert len(tables) == 12
    assert [t.number for t in tables if t.status == "occupied"] == [4]
    assert tables[3].order.token_number == order.token_number

    service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.PAID, payment_method=PaymentMethod.CASH))
    assert all(t.status == "available" for t in service.tables())
