from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pos_service.api.deps import get_restaurant_settings
from pos_service.application.customers import CustomerService
from pos_service.application.schemas import CustomerRead, SettingsRead, SettingsUpdate
from pos_service.application.settings_service import SettingsService
from pos_service.domain.restaurant import RestaurantSettings
from pos_service.infrastructure.db import get_db

settings_router = APIRouter(prefix="/settings", tags=["settings"])
customers_router = APIRouter(prefix="/customers", tags=["customers"])


@settings_router.get("/", response_model=SettingsRead)
def read_settings(settings: RestaurantSettings = Depends(get_restaurant_settings)):
    return settings


@settings_router.put("/", response_model=SettingsRead)
def update_settings(payload: SettingsUpdate, db: Session = Depends(get_db)):
    return SettingsService(db).update(payload)


@customers_router.get("/", response_model=list[CustomerRead])
def list_customers(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
):
    """Customers who paid, most recent visit first."""
    return CustomerService(db).list(skip=skip, limit=limit)
