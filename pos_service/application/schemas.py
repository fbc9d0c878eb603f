from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

from pos_service.domain.status import OrderStatus, PaymentMethod


class CamelModel(BaseModel):
    # The till and kitchen screens speak camelCase JSON
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Orders

class OrderItemIn(CamelModel):
    menu_item_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    # Accepted for compatibility with cart payloads; always replaced by catalog values
    name: Optional[str] = None
    price: Optional[float] = None


class OrderCreate(CamelModel):
    items: list[OrderItemIn]
    # None or 0 means take-away
    table_number: Optional[int] = None
    # Client-computed total, ignored
    total: Optional[float] = None


class OrderItemsAdd(CamelModel):
    items: list[OrderItemIn]


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = Field(default=None, max_length=100)
    customer_phone: Optional[str] = Field(default=None, max_length=20)


class OrderItemRead(CamelModel):
    id: int
    menu_item_id: int
    name: str
    quantity: int
    price: float
    printed_quantity: int


class OrderRead(CamelModel):
    id: int
    token_number: int
    table_number: Optional[int] = None
    status: str
    payment_method: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    subtotal: float
    tax: float
    total: float
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemRead]


class OrderPage(CamelModel):
    orders: list[OrderRead]
    total: int
    page: int
    limit: int
    total_pages: int


# Tables and kitchen

class TableOrderRead(CamelModel):
    id: int
    token_number: int
    total: float
    item_count: int
    created_at: datetime


class TableRead(CamelModel):
    number: int
    status: str
    order: Optional[TableOrderRead] = None


class TicketLineRead(CamelModel):
    menu_item_id: int
    name: str
    quantity: int


class KitchenTicketRead(CamelModel):
    order_id: int
    token_number: int
    table_number: Optional[int] = None
    created_at: datetime
    has_new_items: bool
    lines: list[TicketLineRead]
    text: str


class BillRead(CamelModel):
    order_id: int
    text: str


class DashboardStats(CamelModel):
    today_revenue: float
    cash_revenue: float
    online_revenue: float
    today_orders: int
    pending_orders: int
    unpaid_dues: float
    recent_orders: list[OrderRead]


# Menu catalog

class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)


class CategoryRead(CamelModel):
    id: int
    name: str
    item_count: int = 0


class CategoryRef(CamelModel):
    id: int
    name: str


class MenuItemCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    price: float = Field(gt=0)
    category_id: int


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[float] = Field(default=None, gt=0)
    category_id: Optional[int] = None


class MenuItemRead(CamelModel):
    id: int
    name: str
    price: float
    category: CategoryRef


# Settings and customers

class SettingsRead(CamelModel):
    restaurant_name: str
    restaurant_address: str
    restaurant_phone: str
    restaurant_tagline: str
    currency_symbol: str
    currency_code: str
    currency_locale: str
    tax_enabled: bool
    tax_rate: float
    tax_label: str
    table_count: int
    timezone: str


class SettingsUpdate(CamelModel):
    restaurant_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    restaurant_address: Optional[str] = Field(default=None, max_length=200)
    restaurant_phone: Optional[str] = Field(default=None, max_length=200)
    restaurant_tagline: Optional[str] = Field(default=None, max_length=200)
    currency_symbol: Optional[str] = Field(default=None, min_length=1, max_length=5)
    currency_code: Optional[str] = None
    currency_locale: Optional[str] = Field(default=None, min_length=2, max_length=10)
    tax_enabled: Optional[bool] = None
    tax_rate: Optional[float] = None
    tax_label: Optional[str] = Field(default=None, min_length=1, max_length=20)
    table_count: Optional[int] = None
    timezone: Optional[str] = None


class CustomerRead(CamelModel):
    phone: str
    name: str
    total_orders: int
    total_spent: float
    last_visit: datetime
