"""
Kitchen tickets (KOT) and customer bills.

A kitchen ticket only lists what the kitchen has not seen yet: for every
line, the quantity added since the last print. Printing is recorded
separately by marking the order's lines as printed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pos_service.domain.models import Order
from pos_service.domain.restaurant import RestaurantSettings, local_time

TICKET_WIDTH = 32
NO_NEW_ITEMS = "No new items"


@dataclass(frozen=True)
class TicketLine:
    menu_item_id: int
    name: str
    quantity: int


@dataclass(frozen=True)
class KitchenTicket:
    order_id: int
    token_number: int
    table_number: Optional[int]
    created_at: datetime
    lines: List[TicketLine] = field(default_factory=list)

    @property
    def has_new_items(self) -> bool:
        return bool(self.lines)


def build_kitchen_ticket(order: Order) -> KitchenTicket:
    lines = [
        TicketLine(menu_item_id=item.menu_item_id, name=item.name, quantity=item.unprinted_quantity)
        for item in order.items
        if item.unprinted_quantity > 0
    ]
    return KitchenTicket(
        order_id=order.id,
        token_number=order.token_number,
        table_number=order.table_number,
        created_at=order.created_at,
        lines=lines,
    )


def _header(order_token: int, order_id: int, table_number: Optional[int], when: datetime) -> List[str]:
    return [
        f"TOKEN #{order_token}".center(TICKET_WIDTH),
        f"Order #{order_id}",
        f"Table {table_number}" if table_number else "Take-away",
        when.strftime("%d %b %Y %I:%M %p"),
        "=" * TICKET_WIDTH,
    ]


def render_kitchen_ticket(ticket: KitchenTicket, settings: RestaurantSettings) -> str:
    lines = [settings.restaurant_name.center(TICKET_WIDTH), "KITCHEN TICKET".center(TICKET_WIDTH)]
    lines += _header(
        ticket.token_number,
        ticket.order_id,
        ticket.table_number,
        local_time(ticket.created_at, settings.timezone),
    )
    if not ticket.has_new_items:
        lines.append(NO_NEW_ITEMS.center(TICKET_WIDTH))
    for line in ticket.lines:
        lines.append(f"{line.quantity}x {line.name.upper()}")
    lines.append("=" * TICKET_WIDTH)
    return "\n".join(lines)


def _money_row(label: str, amount: Decimal, settings: RestaurantSettings) -> str:
    value = settings.format_amount(amount)
    return f"{label}{value.rjust(TICKET_WIDTH - len(label))}"


def render_bill(order: Order, settings: RestaurantSettings) -> str:
    """Customer receipt with the prices snapshotted on the order."""
    lines = [settings.restaurant_name.center(TICKET_WIDTH)]
    for extra in (settings.restaurant_address, settings.restaurant_phone):
        if extra:
            lines.append(extra.center(TICKET_WIDTH))
    lines += _header(
        order.token_number,
        order.id,
        order.table_number,
        local_time(order.created_at, settings.timezone),
    )
    for item in order.items:
        lines.append(item.name)
        lines.append(_money_row(f"  {item.quantity} x {item.price:.2f}", item.price * item.quantity, settings))
    lines.append("-" * TICKET_WIDTH)
    lines.append(_money_row("Subtotal", order.subtotal, settings))
    if order.tax:
        lines.append(_money_row(settings.tax_label, order.tax, settings))
    lines.append(_money_row("TOTAL", order.total, settings))
    if order.payment_method:
        lines.append(f"Paid by {order.payment_method}" if order.status == "PAID" else f"Status {order.status}")
    if settings.restaurant_tagline:
        lines.append("")
        lines.append(settings.restaurant_tagline.center(TICKET_WIDTH))
    return "\n".join(lines)
