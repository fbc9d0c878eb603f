from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response

from pos_service.api.deps import get_order_service
from pos_service.application.service import OrderService
from pos_service.application.schemas import (
    BillRead,
    DashboardStats,
    KitchenTicketRead,
    OrderCreate,
    OrderItemsAdd,
    OrderPage,
    OrderRead,
    OrderStatusUpdate,
    TableRead,
)
from pos_service.domain.status import OrderStatus

router = APIRouter(prefix="/orders", tags=["orders"])
tables_router = APIRouter(tags=["tables"])

NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate"}


@router.get("/", response_model=OrderPage)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=1000),
    service: OrderService = Depends(get_order_service),
):
    """Newest orders first."""
    return service.list_page(page, limit)


@router.get("/status/{status}", response_model=list[OrderRead])
def list_orders_by_status(status: OrderStatus, service: OrderService = Depends(get_order_service)):
    return service.list_by_status(status)


@router.get("/range", response_model=list[OrderRead])
def list_orders_in_range(
    start: datetime = Query(..., alias="from"),
    end: datetime = Query(..., alias="to"),
    service: OrderService = Depends(get_order_service),
):
    return service.list_by_date_range(start, end)


@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: int, service: OrderService = Depends(get_order_service)):
    return service.require(order_id)


@router.post("/", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, service: OrderService = Depends(get_order_service)):
    """Checkout: prices are always taken from the menu, never from the payload."""
    return service.create(payload)


@router.post("/{order_id}/items", response_model=OrderRead)
def add_order_items(order_id: int, payload: OrderItemsAdd, service: OrderService = Depends(get_order_service)):
    return service.add_items(order_id, payload)


@router.put("/{order_id}", response_model=OrderRead)
def update_order_status(order_id: int, payload: OrderStatusUpdate, service: OrderService = Depends(get_order_service)):
    return service.update_status(order_id, payload)


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(order_id: int, service: OrderService = Depends(get_order_service)):
    return service.cancel(order_id)


@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: int, service: OrderService = Depends(get_order_service)):
    service.delete(order_id)
    return Response(status_code=204)


@router.get("/{order_id}/kot", response_model=KitchenTicketRead)
def get_kitchen_ticket(order_id: int, service: OrderService = Depends(get_order_service)):
    """Lines not yet sent to the kitchen."""
    ticket, text = service.kitchen_ticket(order_id)
    return {**asdict(ticket), "has_new_items": ticket.has_new_items, "text": text}


@router.put("/{order_id}/kot", response_model=OrderRead)
def mark_kitchen_ticket_printed(order_id: int, service: OrderService = Depends(get_order_service)):
    return service.mark_printed(order_id)


@router.get("/{order_id}/bill", response_model=BillRead)
def get_bill(order_id: int, service: OrderService = Depends(get_order_service)):
    return BillRead(order_id=order_id, text=service.bill(order_id))


@tables_router.get("/tables", response_model=list[TableRead])
def list_tables(response: Response, service: OrderService = Depends(get_order_service)):
    # Occupancy must always be fresh
    response.headers.update(NO_STORE)
    return service.tables()


@tables_router.get("/dashboard", response_model=DashboardStats)
def dashboard(service: OrderService = Depends(get_order_service)):
    return service.dashboard()
