"""Table occupancy, derived from the open orders on every read."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from pos_service.domain.models import Order


@dataclass(frozen=True)
class TableOrder:
    id: int
    token_number: int
    total: Decimal
    item_count: int
    created_at: datetime


@dataclass(frozen=True)
class TableInfo:
    number: int
    status: str
    order: Optional[TableOrder]


def derive_tables(table_count: int, pending_orders: Iterable[Order]) -> List[TableInfo]:
    """
    One entry per table 1..table_count.

    Take-away orders (no table number) and orders for tables beyond the
    configured count are ignored.
    """
    occupying = {}
    for order in pending_orders:
        if order.table_number and order.table_number > 0:
            occupying[order.table_number] = TableOrder(
                id=order.id,
                token_number=order.token_number,
                total=order.total,
                item_count=order.item_count,
                created_at=order.created_at,
            )

    return [
        TableInfo(
            number=number,
            status="occupied" if number in occupying else "available",
            order=occupying.get(number),
        )
        for number in range(1, table_count + 1)
    ]
