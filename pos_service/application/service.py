from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from pos_service.domain.models import Order, OrderItem
from pos_service.domain.pricing import ZERO, compute_totals, round2
from pos_service.domain.restaurant import RestaurantSettings, start_of_day, utcnow
from pos_service.domain.status import OrderStatus, PaymentMethod, validate_transition
from pos_service.domain.tables import TableInfo, derive_tables
from pos_service.domain.tickets import KitchenTicket, build_kitchen_ticket, render_bill, render_kitchen_ticket
from pos_service.errors import ConflictError, NotFoundError, ValidationError
from pos_core.logging_config import get_logger
from .catalog import CatalogPrice, MenuCatalog, clean_text
from .notifications import PaidOrderNotifier
from .schemas import OrderCreate, OrderItemIn, OrderItemsAdd, OrderStatusUpdate
from .sequencer import TokenSequencer

logger = get_logger(__name__)

RECENT_ORDERS = 10

# PostgreSQL reports the index name, SQLite the indexed column
TABLE_GUARD_MARKERS = ("uq_orders_pending_table", "orders.table_number")


def _violates_table_guard(error: IntegrityError) -> bool:
    message = str(error.orig)
    return any(marker in message for marker in TABLE_GUARD_MARKERS)


class OrderService:
    """
    Order lifecycle: checkout, adding items, settlement, cancellation and
    kitchen printing.

    Every mutation re-reads menu prices from the catalog, validates before
    writing and commits once, so other requests see either the whole change
    or none of it.
    """

    def __init__(
        self,
        db: Session,
        settings: RestaurantSettings,
        notifier: Optional[PaidOrderNotifier] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings
        self.notifier = notifier
        self.clock = clock
        self.catalog = MenuCatalog(db)
        self.sequencer = TokenSequencer(db)

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _query(self):
        return select(Order).options(selectinload(Order.items))

    def list_page(self, page: int = 1, limit: int = 20) -> dict:
        total = self.db.scalar(select(func.count(Order.id)))
        orders = self.db.scalars(
            self._query()
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return {
            "orders": list(orders),
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": (total + limit - 1) // limit,
        }

    def list_by_status(self, status: OrderStatus):
        return list(self.db.scalars(
            self._query().where(Order.status == status.value).order_by(Order.created_at.desc(), Order.id.desc())
        ))

    def list_by_date_range(self, start: datetime, end: datetime):
        if start > end:
            raise ValidationError(
                "Range start must not be after its end",
                {"from": start.isoformat(), "to": end.isoformat()},
            )
        return list(self.db.scalars(
            self._query()
            .where(Order.created_at >= start, Order.created_at <= end)
            .order_by(Order.created_at.desc(), Order.id.desc())
        ))

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.scalars(self._query().where(Order.id == order_id)).first()

    def require(self, order_id: int, for_update: bool = False) -> Order:
        stmt = self._query().where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update(of=Order)
        order = self.db.scalars(stmt).first()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    # Pricing helpers

    def _resolve_items(self, items: list[OrderItemIn]) -> list[tuple[OrderItemIn, CatalogPrice]]:
        """Pair every requested line with its catalog entry; any unknown id rejects the request."""
        if not items:
            raise ValidationError("At least one item is required", {"field": "items"})
        requested = {item.menu_item_id for item in items}
        prices = self.catalog.lookup_prices(requested)
        missing = sorted(requested - prices.keys())
        if missing:
            raise ValidationError(
                f"Unknown menu item id(s): {', '.join(str(i) for i in missing)}",
                {"field": "menuItemId", "unknownIds": missing},
            )
        return [(item, prices[item.menu_item_id]) for item in items]

    @staticmethod
    def _merge_line(order: Order, catalog: CatalogPrice, menu_item_id: int, quantity: int) -> None:
        for line in order.items:
            if line.menu_item_id == menu_item_id:
                # The whole line moves to the current catalog price; printed_quantity is untouched
                line.quantity += quantity
                line.price = catalog.price
                line.name = catalog.name
                return
        order.items.append(OrderItem(
            menu_item_id=menu_item_id,
            name=catalog.name,
            price=catalog.price,
            quantity=quantity,
            printed_quantity=0,
        ))

    def _reprice(self, order: Order) -> None:
        totals = compute_totals(order.items, self.settings.tax_enabled, self.settings.tax_rate)
        order.subtotal = totals.subtotal
        order.tax = totals.tax
        order.total = totals.total

    def _validate_table(self, table_number: Optional[int]) -> Optional[int]:
        if not table_number:
            return None
        if table_number < 0 or table_number > self.settings.table_count:
            raise ValidationError(
                f"Table number must be between 1 and {self.settings.table_count}",
                {"field": "tableNumber", "min": 1, "max": self.settings.table_count, "received": table_number},
            )
        return table_number

    def _ensure_table_free(self, table_number: int) -> None:
        occupied_by = self.db.scalar(
            select(Order.id).where(Order.table_number == table_number, Order.status == OrderStatus.PENDING.value)
        )
        if occupied_by is not None:
            raise ConflictError(
                f"Table {table_number} already has an open order",
                {"tableNumber": table_number, "orderId": occupied_by},
            )

    # Lifecycle

    def create(self, data: OrderCreate) -> Order:
        table_number = self._validate_table(data.table_number)
        now = self.clock()

        try:
            with self._transaction():
                resolved = self._resolve_items(data.items)
                if table_number is not None:
                    self._ensure_table_free(table_number)
                order = Order(
                    token_number=self.sequencer.next_token(now, self.settings.timezone),
                    table_number=table_number,
                    status=OrderStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                )
                for item, catalog in resolved:
                    self._merge_line(order, catalog, item.menu_item_id, item.quantity)
                self._reprice(order)
                self.db.add(order)
                self.db.flush()
        except IntegrityError as e:
            # A concurrent checkout claimed the table between the check and the insert
            if table_number is None or not _violates_table_guard(e):
                raise
            raise ConflictError(
                f"Table {table_number} already has an open order",
                {"tableNumber": table_number},
            )

        logger.info(
            f"Order {order.id} created",
            extra={'extra_fields': {
                'order_id': order.id,
                'token_number': order.token_number,
                'table_number': order.table_number,
                'total': order.total,
            }}
        )
        return order

    def add_items(self, order_id: int, data: OrderItemsAdd) -> Order:
        with self._transaction():
            order = self.require(order_id, for_update=True)
            if order.status != OrderStatus.PENDING.value:
                raise ValidationError(
                    "Can only add items to an active order",
                    {"orderId": order_id, "currentStatus": order.status},
                )
            for item, catalog in self._resolve_items(data.items):
                self._merge_line(order, catalog, item.menu_item_id, item.quantity)
            self._reprice(order)
            order.updated_at = self.clock()

        logger.info(
            f"Items added to order {order_id}",
            extra={'extra_fields': {
                'order_id': order_id,
                'added': {item.menu_item_id: item.quantity for item in data.items},
                'total': order.total,
            }}
        )
        return order

    def update_status(self, order_id: int, data: OrderStatusUpdate) -> Order:
        new_status = data.status
        customer_name = clean_text(data.customer_name)
        customer_phone = clean_text(data.customer_phone)

        with self._transaction():
            order = self.require(order_id, for_update=True)
            previous_status = order.status
            validate_transition(previous_status, new_status)

            payment_method = data.payment_method
            if new_status == OrderStatus.UNPAID:
                if not customer_name:
                    raise ValidationError(
                        "Customer name is required to settle an order as unpaid",
                        {"field": "customerName"},
                    )
                if payment_method not in (None, PaymentMethod.UNPAID):
                    raise ValidationError(
                        "An unpaid order must use payment method UNPAID",
                        {"field": "paymentMethod", "received": payment_method.value},
                    )
                payment_method = PaymentMethod.UNPAID
            elif new_status == OrderStatus.PAID and payment_method == PaymentMethod.UNPAID:
                raise ValidationError(
                    "A paid order needs payment method CASH or ONLINE",
                    {"field": "paymentMethod", "allowed": [PaymentMethod.CASH.value, PaymentMethod.ONLINE.value]},
                )
            elif new_status == OrderStatus.CANCELLED:
                payment_method = None

            order.status = new_status.value
            if payment_method is not None:
                order.payment_method = payment_method.value
            if customer_name:
                order.customer_name = customer_name
            if customer_phone:
                order.customer_phone = customer_phone
            order.updated_at = self.clock()

        logger.info(
            f"Order {order_id} moved from {previous_status} to {order.status}",
            extra={'extra_fields': {
                'order_id': order_id,
                'from_status': previous_status,
                'to_status': order.status,
                'payment_method': order.payment_method,
            }}
        )

        if order.status == OrderStatus.PAID.value:
            self._notify_paid(order)
        return order

    def cancel(self, order_id: int) -> Order:
        return self.update_status(order_id, OrderStatusUpdate(status=OrderStatus.CANCELLED))

    def delete(self, order_id: int) -> None:
        with self._transaction():
            order = self.require(order_id, for_update=True)
            self.db.delete(order)
        logger.info(f"Order {order_id} deleted", extra={'extra_fields': {'order_id': order_id}})

    def _notify_paid(self, order: Order) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify_paid(order.customer_name, order.customer_phone, order.total)
        except Exception:
            # The order is paid whether or not the CRM heard about it
            logger.warning(
                f"Could not dispatch paid notification for order {order.id}",
                exc_info=True,
                extra={'extra_fields': {'order_id': order.id}},
            )

    # Kitchen

    def mark_printed(self, order_id: int) -> Order:
        with self._transaction():
            order = self.require(order_id, for_update=True)
            for line in order.items:
                line.printed_quantity = line.quantity
        logger.info(f"KOT printed for order {order_id}", extra={'extra_fields': {'order_id': order_id}})
        return order

    def kitchen_ticket(self, order_id: int) -> tuple[KitchenTicket, str]:
        ticket = build_kitchen_ticket(self.require(order_id))
        return ticket, render_kitchen_ticket(ticket, self.settings)

    def bill(self, order_id: int) -> str:
        return render_bill(self.require(order_id), self.settings)

    # Read models

    def tables(self) -> list[TableInfo]:
        pending = self.db.scalars(
            self._query().where(Order.status == OrderStatus.PENDING.value, Order.table_number > 0)
        ).all()
        return derive_tables(self.settings.table_count, pending)

    def dashboard(self) -> dict:
        today = start_of_day(self.clock(), self.settings.timezone)

        def revenue(method: Optional[PaymentMethod] = None):
            condition = Order.status == OrderStatus.PAID.value
            if method is not None:
                condition = and_(condition, Order.payment_method == method.value)
            return func.coalesce(func.sum(case((condition, Order.total), else_=0)), 0)

        row = self.db.execute(
            select(
                revenue(),
                revenue(PaymentMethod.CASH),
                revenue(PaymentMethod.ONLINE),
                func.count(Order.id),
                func.coalesce(func.sum(case((Order.status == OrderStatus.PENDING.value, 1), else_=0)), 0),
            ).where(Order.created_at >= today)
        ).one()
        unpaid_dues = self.db.scalar(
            select(func.coalesce(func.sum(Order.total), 0)).where(Order.status == OrderStatus.UNPAID.value)
        )
        recent = self.db.scalars(
            self._query().order_by(Order.created_at.desc(), Order.id.desc()).limit(RECENT_ORDERS)
        ).all()

        return {
            "today_revenue": round2(row[0] or ZERO),
            "cash_revenue": round2(row[1] or ZERO),
            "online_revenue": round2(row[2] or ZERO),
            "today_orders": row[3] or 0,
            "pending_orders": int(row[4] or 0),
            "unpaid_dues": round2(unpaid_dues or ZERO),
            "recent_orders": list(recent),
        }
