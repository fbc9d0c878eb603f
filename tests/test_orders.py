from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from pos_service.application.schemas import OrderCreate, OrderItemIn, OrderItemsAdd, OrderStatusUpdate
from pos_service.application.service import OrderService
from pos_service.domain.models import MenuItem, Order
from pos_service.domain.restaurant import RestaurantSettings
from pos_service.domain.status import OrderStatus, PaymentMethod
from pos_service.errors import ConflictError, NotFoundError, ValidationError


def item(menu_item_id, quantity, **extra):
    return OrderItemIn(menu_item_id=menu_item_id, quantity=quantity, **extra)


def test_checkout_ignores_client_prices_and_totals(service, menu):
    order = service.create(OrderCreate(
        items=[item(menu["Paneer Tikka"], 3, name="Free Food", price=0.01)],
        total=0.03,
    ))
    assert order.status == "PENDING"
    assert order.items[0].name == "Paneer Tikka"
    assert order.items[0].price == Decimal("19.99")
    assert order.total == Decimal("59.97")


def test_checkout_with_tax(db, menu, clock):
    taxed = RestaurantSettings(tax_enabled=True, tax_rate=Decimal("0.05"))
    order = OrderService(db, taxed, clock=clock).create(OrderCreate(items=[item(menu["Paneer Tikka"], 3)]))
    assert (order.subtotal, order.tax, order.total) == (Decimal("59.97"), Decimal("3.00"), Decimal("62.97"))


def test_duplicate_lines_in_one_checkout_are_merged(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Butter Naan"], 2), item(menu["Butter Naan"], 3)]))
    assert len(order.items) == 1
    assert order.items[0].quantity == 5
    assert order.total == Decimal("15.00")


def test_unknown_menu_item_rejects_whole_order(service, db, menu):
    with pytest.raises(ValidationError) as exc:
        service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1), item(999, 1)]))
    assert exc.value.details["unknownIds"] == [999]
    assert db.query(Order).count() == 0


def test_empty_order_rejected(service, menu):
    with pytest.raises(ValidationError):
        service.create(OrderCreate(items=[]))


@pytest.mark.parametrize("table_number", [-1, 13])
def test_table_number_out_of_range(service, menu, table_number):
    with pytest.raises(ValidationError):
        service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)], table_number=table_number))


def test_table_zero_is_take_away(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)], table_number=0))
    assert order.table_number is None


def test_occupied_table_conflicts(service, menu):
    service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)], table_number=5))
    with pytest.raises(ConflictError):
        service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)], table_number=5))


def test_table_reusable_after_settlement(service, menu):
    first = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)], table_number=5))
    service.cancel(first.id)
    second = service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)], table_number=5))
    assert second.table_number == 5


def test_tokens_restart_each_business_day(service, menu, clock):
    tokens = [service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)])).token_number for _ in range(3)]
    assert tokens == [1, 2, 3]

    clock.advance(days=1)
    assert service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)])).token_number == 1


def test_business_day_follows_restaurant_timezone(service, menu, clock):
    # 19:00 UTC on the 14th is already the 15th in Asia/Kolkata
    clock.now = datetime(2025, 3, 14, 6, 30)
    assert service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)])).token_number == 1
    clock.now = datetime(2025, 3, 14, 19, 0)
    assert service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)])).token_number == 1


def test_rejected_order_does_not_consume_a_token(service, menu):
    service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)], table_number=1))
    with pytest.raises(ConflictError):
        service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)], table_number=1))
    assert service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)])).token_number == 2


def test_concurrent_table_claim_becomes_conflict(service, menu, monkeypatch):
    service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)], table_number=7))
    # The other till's order lands after this request checked the table
    monkeypatch.setattr(service, "_ensure_table_free", lambda table_number: None)

    with pytest.raises(ConflictError) as exc:
        service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)], table_number=7))
    assert exc.value.details == {"tableNumber": 7}
    assert len(service.list_by_status(OrderStatus.PENDING)) == 1


def test_other_integrity_errors_are_not_table_conflicts(service, menu, monkeypatch):
    def colliding_token(now, tz_name):
        raise IntegrityError(
            "INSERT INTO daily_counters (day, seq) VALUES (?, ?)",
            {},
            Exception("UNIQUE constraint failed: daily_counters.day"),
        )

    monkeypatch.setattr(service.sequencer, "next_token", colliding_token)
    with pytest.raises(IntegrityError):
        service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)], table_number=3))


def test_add_items_merges_and_reprices(service, db, menu):
    order = service.create(OrderCreate(items=[item(menu["Paneer Tikka"], 1)]))

    # Price change after the first round is applied to the whole line on re-add
    db.get(MenuItem, menu["Paneer Tikka"]).price = Decimal("21.00")
    db.commit()

    service.add_items(order.id, OrderItemsAdd(items=[item(menu["Paneer Tikka"], 1), item(menu["Mango Lassi"], 2)]))
    assert [(l.name, l.quantity, l.price) for l in order.items] == [
        ("Paneer Tikka", 2, Decimal("21.00")),
        ("Mango Lassi", 2, Decimal("4.25")),
    ]
    assert order.total == Decimal("50.50")


def test_add_items_requires_pending_order(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Paneer Tikka"], 1)]))
    service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.PAID, payment_method=PaymentMethod.CASH))
    with pytest.raises(ValidationError) as exc:
        service.add_items(order.id, OrderItemsAdd(items=[item(menu["Paneer Tikka"], 1)]))
    assert exc.value.message == "Can only add items to an active order"


def test_add_items_to_missing_order(service, menu):
    with pytest.raises(NotFoundError):
        service.add_items(404, OrderItemsAdd(items=[item(menu["Paneer Tikka"], 1)]))


def test_add_items_with_unknown_id_changes_nothing(service, db, menu):
    order = service.create(OrderCreate(items=[item(menu["Paneer Tikka"], 2)]))
    service.mark_printed(order.id)

    with pytest.raises(ValidationError) as exc:
        service.add_items(order.id, OrderItemsAdd(items=[item(menu["Paneer Tikka"], 1), item(999, 1)]))
    assert exc.value.details["unknownIds"] == [999]

    db.expire_all()
    reloaded = service.require(order.id)
    assert [(l.menu_item_id, l.quantity, l.printed_quantity) for l in reloaded.items] == [
        (menu["Paneer Tikka"], 2, 2),
    ]
    assert reloaded.total == Decimal("39.98")


def test_paid_without_method_then_cancel_rejected(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)]))
    service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.PAID))

    with pytest.raises(ValidationError):
        service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.CANCELLED))
    assert service.require(order.id).status == "PAID"


def test_paid_rejects_unpaid_method(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)]))
    with pytest.raises(ValidationError):
        service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.PAID, payment_method=PaymentMethod.UNPAID))
    assert service.require(order.id).status == "PENDING"


def test_unpaid_requires_customer_name(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)]))
    with pytest.raises(ValidationError):
        service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.UNPAID, customer_name="   "))

    updated = service.update_status(order.id, OrderStatusUpdate(
        status=OrderStatus.UNPAID,
        customer_name="  Asha  ",
        customer_phone="98765 43210",
    ))
    assert updated.status == "UNPAID"
    assert updated.payment_method == "UNPAID"
    assert updated.customer_name == "Asha"


def test_unpaid_dues_collected_later(service, menu, notifier):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 2)]))
    service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.UNPAID, customer_name="Asha"))
    service.update_status(order.id, OrderStatusUpdate(
        status=OrderStatus.PAID,
        payment_method=PaymentMethod.CASH,
        customer_phone="9876543210",
    ))
    assert order.payment_method == "CASH"
    assert notifier.calls == [("Asha", "9876543210", Decimal("25.00"))]


def test_notifier_failure_does_not_undo_payment(db, menu, settings, clock, failing_notifier):
    service = OrderService(db, settings, notifier=failing_notifier, clock=clock)
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)]))
    paid = service.update_status(order.id, OrderStatusUpdate(status=OrderStatus.PAID, payment_method=PaymentMethod.CASH))
    assert paid.status == "PAID"
    db.expire_all()
    assert service.require(order.id).status == "PAID"


def test_cancel_keeps_order_but_frees_table(service, menu):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)], table_number=2))
    cancelled = service.cancel(order.id)
    assert cancelled.status == "CANCELLED"
    assert cancelled.payment_method is None
    assert service.require(order.id).items


def test_delete_removes_order_and_lines(service, db, menu):
    order = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 1)]))
    service.delete(order.id)
    assert service.get(order.id) is None
    with pytest.raises(NotFoundError):
        service.delete(order.id)


def test_listing_and_pagination(service, menu, clock):
    for _ in range(3):
        service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)]))
        clock.advance(minutes=5)

    page = service.list_page(page=1, limit=2)
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert [o.token_number for o in page["orders"]] == [3, 2]
    assert len(service.list_by_status(OrderStatus.PENDING)) == 3
    assert service.list_by_status(OrderStatus.PAID) == []


def test_date_range(service, menu, clock):
    start = clock.now
    service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)]))
    clock.advance(days=2)
    service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)]))

    assert len(service.list_by_date_range(start, start + timedelta(hours=1))) == 1
    with pytest.raises(ValidationError):
        service.list_by_date_range(start + timedelta(days=1), start)


def test_dashboard(service, menu, clock):
    cash = service.create(OrderCreate(items=[item(menu["Dal Makhani"], 2)]))
    online = service.create(OrderCreate(items=[item(menu["Mango Lassi"], 1)]))
    dues = service.create(OrderCreate(items=[item(menu["Butter Naan"], 1)]))
    service.create(OrderCreate(items=[item(menu["Paneer Tikka"], 1)], table_number=1))

    service.update_status(cash.id, OrderStatusUpdate(status=OrderStatus.PAID, payment_method=PaymentMethod.CASH))
    service.update_status(online.id, OrderStatusUpdate(status=OrderStatus.PAID, payment_method=PaymentMethod.ONLINE))
    service.update_status(dues.id, OrderStatusUpdate(status=OrderStatus.UNPAID, customer_name="Ravi"))

    stats = service.dashboard()
    assert stats["today_revenue"] == Decimal("29.25")
    assert stats["cash_revenue"] == Decimal("25.00")
    assert stats["online_revenue"] == Decimal("4.25")
    assert stats["today_orders"] == 4
    assert stats["pending_orders"] == 1
    assert stats["unpaid_dues"] == Decimal("3.00")
    assert len(stats["recent_orders"]) == 4

    clock.advance(days=1)
    tomorrow = service.dashboard()
    assert tomorrow["today_orders"] == 0
    assert tomorrow["unpaid_dues"] == Decimal("3.00")
