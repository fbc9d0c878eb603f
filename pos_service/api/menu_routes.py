from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from pos_service.application.catalog import MenuCatalog
from pos_service.application.schemas import (
    CategoryCreate,
    CategoryRead,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
)
from pos_service.infrastructure.db import get_db

categories_router = APIRouter(prefix="/categories", tags=["menu"])
menu_router = APIRouter(prefix="/menu", tags=["menu"])


@categories_router.get("/", response_model=list[CategoryRead])
def list_categories(db: Session = Depends(get_db)):
    return MenuCatalog(db).list_categories()


@categories_router.post("/", response_model=CategoryRead, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return MenuCatalog(db).create_category(payload)


@categories_router.put("/{category_id}", response_model=CategoryRead)
def rename_category(category_id: int, payload: CategoryCreate, db: Session = Depends(get_db)):
    return MenuCatalog(db).rename_category(category_id, payload)


@categories_router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    MenuCatalog(db).delete_category(category_id)
    return Response(status_code=204)


@menu_router.get("/", response_model=list[MenuItemRead])
def list_menu_items(db: Session = Depends(get_db)):
    return MenuCatalog(db).list_items()


@menu_router.get("/{menu_item_id}", response_model=MenuItemRead)
def get_menu_item(menu_item_id: int, db: Session = Depends(get_db)):
    return MenuCatalog(db).get_item(menu_item_id)


@menu_router.post("/", response_model=MenuItemRead, status_code=201)
def create_menu_item(payload: MenuItemCreate, db: Session = Depends(get_db)):
    return MenuCatalog(db).create_item(payload)


@menu_router.put("/{menu_item_id}", response_model=MenuItemRead)
def update_menu_item(menu_item_id: int, payload: MenuItemUpdate, db: Session = Depends(get_db)):
    return MenuCatalog(db).update_item(menu_item_id, payload)


@menu_router.delete("/{menu_item_id}", status_code=204)
def delete_menu_item(menu_item_id: int, db: Session = Depends(get_db)):
    MenuCatalog(db).delete_item(menu_item_id)
    return Response(status_code=204)
