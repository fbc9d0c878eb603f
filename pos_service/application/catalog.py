import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pos_service.domain.models import Category, MenuItem
from pos_service.domain.pricing import round2
from pos_service.errors import ConflictError, NotFoundError, ValidationError
from pos_core.logging_config import get_logger
from .schemas import CategoryCreate, MenuItemCreate, MenuItemUpdate

logger = get_logger(__name__)

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def clean_text(value: Optional[str]) -> str:
    """Strip control characters and surrounding whitespace."""
    if value is None:
        return ""
    return CONTROL_CHARS.sub("", value).strip()


@dataclass(frozen=True)
class CatalogPrice:
    name: str
    price: Decimal


class MenuCatalog:
    """Authoritative menu names and prices, plus category and item maintenance."""

    def __init__(self, db: Session):
        self.db = db

    def lookup_price(self, menu_item_id: int) -> Optional[CatalogPrice]:
        item = self.db.get(MenuItem, menu_item_id)
        if item is None:
            return None
        return CatalogPrice(name=item.name, price=round2(item.price))

    def lookup_prices(self, menu_item_ids: Iterable[int]) -> dict:
        ids = set(menu_item_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(MenuItem.id, MenuItem.name, MenuItem.price).where(MenuItem.id.in_(ids))
        ).all()
        return {row.id: CatalogPrice(name=row.name, price=round2(row.price)) for row in rows}

    # Categories

    def list_categories(self) -> list[dict]:
        rows = self.db.execute(
            select(Category.id, Category.name, func.count(MenuItem.id).label("item_count"))
            .outerjoin(MenuItem, MenuItem.category_id == Category.id)
            .group_by(Category.id, Category.name)
            .order_by(Category.id)
        ).all()
        return [{"id": r.id, "name": r.name, "item_count": r.item_count} for r in rows]

    def create_category(self, data: CategoryCreate) -> dict:
        name = self._required_name(data.name, "Category name", 100)
        self._ensure_category_name_free(name)
        category = Category(name=name)
        self.db.add(category)
        self.db.commit()
        logger.info(f"Category created: {name}", extra={'extra_fields': {'category_id': category.id}})
        return {"id": category.id, "name": category.name, "item_count": 0}

    def rename_category(self, category_id: int, data: CategoryCreate) -> dict:
        category = self._require_category(category_id)
        name = self._required_name(data.name, "Category name", 100)
        if name != category.name:
            self._ensure_category_name_free(name)
            category.name = name
            self.db.commit()
        item_count = self.db.scalar(select(func.count(MenuItem.id)).where(MenuItem.category_id == category_id))
        return {"id": category.id, "name": category.name, "item_count": item_count}

    def delete_category(self, category_id: int) -> None:
        category = self._require_category(category_id)
        item_count = self.db.scalar(select(func.count(MenuItem.id)).where(MenuItem.category_id == category_id))
        if item_count:
            raise ConflictError(
                f"Category '{category.name}' still has {item_count} menu item(s)",
                {"categoryId": category_id, "itemCount": item_count},
            )
        self.db.delete(category)
        self.db.commit()

    # Menu items

    def list_items(self) -> list[MenuItem]:
        return list(self.db.scalars(
            select(MenuItem)
            .options(selectinload(MenuItem.category))
            .order_by(MenuItem.category_id, MenuItem.name)
        ))

    def get_item(self, menu_item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, menu_item_id)
        if item is None:
            raise NotFoundError("Menu item", menu_item_id)
        return item

    def create_item(self, data: MenuItemCreate) -> MenuItem:
        category = self.db.get(Category, data.category_id)
        if category is None:
            raise ValidationError(
                f"Unknown category id: {data.category_id}",
                {"field": "categoryId", "received": data.category_id},
            )
        item = MenuItem(
            name=self._required_name(data.name, "Menu item name", 200),
            price=round2(data.price),
            category=category,
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(
            f"Menu item created: {item.name}",
            extra={'extra_fields': {'menu_item_id': item.id, 'price': item.price}}
        )
        return item

    def update_item(self, menu_item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = self.get_item(menu_item_id)
        if data.name is not None:
            item.name = self._required_name(data.name, "Menu item name", 200)
        if data.price is not None:
            # Existing orders keep the price they were billed at
            item.price = round2(data.price)
        if data.category_id is not None:
            if self.db.get(Category, data.category_id) is None:
                raise ValidationError(
                    f"Unknown category id: {data.category_id}",
                    {"field": "categoryId", "received": data.category_id},
                )
            item.category_id = data.category_id
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, menu_item_id: int) -> None:
        item = self.get_item(menu_item_id)
        self.db.delete(item)
        self.db.commit()

    def _require_category(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def _ensure_category_name_free(self, name: str) -> None:
        exists = self.db.scalar(select(Category.id).where(func.lower(Category.name) == name.lower()))
        if exists is not None:
            raise ConflictError(f"Category '{name}' already exists", {"field": "name"})

    @staticmethod
    def _required_name(value: str, field: str, max_length: int) -> str:
        name = clean_text(value)
        if not name:
            raise ValidationError(f"{field} must be at least 1 character(s)", {"field": field, "min": 1})
        if len(name) > max_length:
            raise ValidationError(f"{field} must be at most {max_length} characters", {"field": field, "max": max_length})
        return name
