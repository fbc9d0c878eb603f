"""Restaurant configuration snapshot and business-day helpers."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field


class RestaurantSettings(BaseModel):
    """
    Immutable per-request view of the restaurant settings.

    Pricing and table derivation receive this value explicitly; they never
    look settings up themselves.
    """

    model_config = ConfigDict(frozen=True)

    restaurant_name: str = "Restaurant"
    restaurant_address: str = ""
    restaurant_phone: str = ""
    restaurant_tagline: str = ""
    currency_symbol: str = "₹"
    currency_code: str = "INR"
    currency_locale: str = "en-IN"
    tax_enabled: bool = False
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    tax_label: str = "GST"
    table_count: int = Field(default=12, ge=1, le=100)
    timezone: str = "Asia/Kolkata"

    def format_amount(self, amount: Decimal) -> str:
        return f"{self.currency_symbol}{amount:,.2f}"


def as_utc(moment: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def local_time(moment: datetime, tz_name: str) -> datetime:
    return as_utc(moment).astimezone(ZoneInfo(tz_name))


def business_day(moment: datetime, tz_name: str) -> date:
    return local_time(moment, tz_name).date()


def start_of_day(moment: datetime, tz_name: str) -> datetime:
    """Local midnight of moment's business day, as naive UTC for querying."""
    tz = ZoneInfo(tz_name)
    midnight = datetime.combine(business_day(moment, tz_name), time.min, tzinfo=tz)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
