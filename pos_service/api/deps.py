from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from pos_service.application.notifications import (
    BackgroundNotifier,
    HttpCustomerNotifier,
    LedgerNotifier,
    PaidOrderNotifier,
)
from pos_service.application.service import OrderService
from pos_service.application.settings_service import SettingsService
from pos_service.core_settings import get_settings
from pos_service.domain.restaurant import RestaurantSettings
from pos_service.infrastructure.db import SessionLocal, get_db


@lru_cache
def get_notifier() -> PaidOrderNotifier:
    settings = get_settings()
    if settings.CUSTOMERS_SERVICE_URL:
        delegate = HttpCustomerNotifier(settings.CUSTOMERS_SERVICE_URL)
    else:
        delegate = LedgerNotifier(SessionLocal)
    return BackgroundNotifier(delegate, max_workers=settings.NOTIFIER_WORKERS)


def get_restaurant_settings(db: Session = Depends(get_db)) -> RestaurantSettings:
    """Settings snapshot for the current request."""
    return SettingsService(db).get()


def get_order_service(
    db: Session = Depends(get_db),
    settings: RestaurantSettings = Depends(get_restaurant_settings),
    notifier: PaidOrderNotifier = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, settings, notifier)
