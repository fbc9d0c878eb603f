from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pydantic
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos_service.domain.models import Setting
from pos_service.domain.restaurant import RestaurantSettings
from pos_service.errors import ValidationError
from pos_core.logging_config import get_logger
from .schemas import SettingsUpdate

logger = get_logger(__name__)

KNOWN_CURRENCY_CODES = {
    "INR", "USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "CNY", "SEK", "NZD",
    "MXN", "SGD", "HKD", "NOK", "KRW", "TRY", "RUB", "BRL", "ZAR", "TWD", "DKK",
    "PLN", "THB", "IDR", "MYR", "PHP", "AED", "SAR", "BDT", "PKR", "LKR", "NPR",
}

DEFAULT_SETTINGS = RestaurantSettings()


def _serialize(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SettingsService:
    """Key/value settings rows, read as one RestaurantSettings snapshot."""

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> RestaurantSettings:
        stored = {row.key: row.value for row in self.db.scalars(select(Setting))}
        known = {k: v for k, v in stored.items() if k in RestaurantSettings.model_fields}
        return RestaurantSettings(**known)

    def seed_defaults(self) -> bool:
        if self.db.scalar(select(func.count()).select_from(Setting)):
            return False
        for key, value in DEFAULT_SETTINGS.model_dump().items():
            self.db.add(Setting(key=key, value=_serialize(value)))
        self.db.commit()
        logger.info("Default restaurant settings seeded")
        return True

    def update(self, data: SettingsUpdate) -> RestaurantSettings:
        changes = data.model_dump(exclude_none=True)

        if "currency_code" in changes:
            code = changes["currency_code"].upper()
            if code not in KNOWN_CURRENCY_CODES:
                raise ValidationError(f"Invalid currency code: {changes['currency_code']}", {"field": "currencyCode"})
            changes["currency_code"] = code
        if "tax_rate" in changes and not 0 <= changes["tax_rate"] <= 1:
            raise ValidationError(
                "Tax rate must be between 0 and 1",
                {"field": "taxRate", "min": 0, "max": 1, "received": changes["tax_rate"]},
            )
        if "tax_rate" in changes:
            changes["tax_rate"] = Decimal(str(changes["tax_rate"]))
        if "table_count" in changes and not 1 <= changes["table_count"] <= 100:
            raise ValidationError(
                "Table count must be between 1 and 100",
                {"field": "tableCount", "min": 1, "max": 100, "received": changes["table_count"]},
            )
        if "timezone" in changes:
            try:
                ZoneInfo(changes["timezone"])
            except (ZoneInfoNotFoundError, ValueError):
                raise ValidationError(f"Unknown timezone: {changes['timezone']}", {"field": "timezone"})

        try:
            updated = self.get().model_copy(update=changes)
            updated = RestaurantSettings(**updated.model_dump())
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid settings", {"errors": e.errors(include_url=False)})

        for key in changes:
            self.db.merge(Setting(key=key, value=_serialize(getattr(updated, key))))
        self.db.commit()
        logger.info("Restaurant settings updated", extra={'extra_fields': {'keys': sorted(changes)}})
        return updated
