from decimal import Decimal

import pytest

from pos_service.application.catalog import MenuCatalog, clean_text
from pos_service.application.schemas import CategoryCreate, MenuItemCreate, MenuItemUpdate, OrderCreate, OrderItemIn
from pos_service.errors import ConflictError, NotFoundError, ValidationError


def test_lookup_prices_only_returns_known_items(db, menu):
    prices = MenuCatalog(db).lookup_prices([menu["Paneer Tikka"], 999])
    assert set(prices) == {menu["Paneer Tikka"]}
    assert prices[menu["Paneer Tikka"]].price == Decimal("19.99")
    assert MenuCatalog(db).lookup_price(999) is None


def test_categories_with_item_counts(db, menu):
    categories = MenuCatalog(db).list_categories()
    assert [(c["name"], c["item_count"]) for c in categories] == [("Mains", 3), ("Drinks", 1)]


def test_duplicate_category_name_is_case_insensitive(db, menu):
    catalog = MenuCatalog(db)
    with pytest.raises(ConflictError):
        catalog.create_category(CategoryCreate(name="mains"))
    created = catalog.create_category(CategoryCreate(name="  Desserts\x07 "))
    assert created["name"] == "Desserts"


def test_category_with_items_cannot_be_deleted(db, menu):
    catalog = MenuCatalog(db)
    mains = next(c for c in catalog.list_categories() if c["name"] == "Mains")
    with pytest.raises(ConflictError):
        catalog.delete_category(mains["id"])

    empty = catalog.create_category(CategoryCreate(name="Specials"))
    catalog.delete_category(empty["id"])
    with pytest.raises(NotFoundError):
        catalog.delete_category(empty["id"])


def test_rename_category(db, menu):
    catalog = MenuCatalog(db)
    drinks = next(c for c in catalog.list_categories() if c["name"] == "Drinks")
    renamed = catalog.rename_category(drinks["id"], CategoryCreate(name="Beverages"))
    assert renamed == {"id": drinks["id"], "name": "Beverages", "item_count": 1}


def test_create_and_update_menu_item(db, menu):
    catalog = MenuCatalog(db)
    drinks = next(c for c in catalog.list_categories() if c["name"] == "Drinks")

    item = catalog.create_item(MenuItemCreate(name="Masala Chai", price=2.505, category_id=drinks["id"]))
    assert item.price == Decimal("2.51")
    assert item.category.name == "Drinks"

    updated = catalog.update_item(item.id, MenuItemUpdate(price=3))
    assert updated.price == Decimal("3.00")
    assert updated.name == "Masala Chai"


def test_menu_item_needs_known_category(db, menu):
    with pytest.raises(ValidationError):
        MenuCatalog(db).create_item(MenuItemCreate(name="Ghost", price=1, category_id=999))


def test_blank_menu_item_name_rejected(db, menu):
    with pytest.raises(ValidationError):
        MenuCatalog(db).update_item(menu["Butter Naan"], MenuItemUpdate(name="\x00\x01"))


def test_price_change_does_not_touch_existing_orders(db, menu, service):
    order = service.create(OrderCreate(items=[OrderItemIn(menu_item_id=menu["Mango Lassi"], quantity=2)]))
    MenuCatalog(db).update_item(menu["Mango Lassi"], MenuItemUpdate(price=5))

    db.expire_all()
    reloaded = service.require(order.id)
    assert reloaded.items[0].price == Decimal("4.25")
    assert reloaded.total == Decimal("8.50")


def test_get_missing_item(db, menu):
    with pytest.raises(NotFoundError) as exc:
        MenuCatalog(db).get_item(999)
    assert exc.value.message == "Menu item #999 not found"


def test_clean_text():
    assert clean_text(None) == ""
    assert clean_text(" Ta\x1fble\n ") == "Table"
