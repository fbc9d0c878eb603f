import re
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_service.domain.models import Customer
from pos_service.domain.pricing import round2
from pos_service.domain.restaurant import utcnow


def normalize_phone(phone: Optional[str]) -> str:
    return re.sub(r"[^0-9+]", "", phone or "")


class CustomerService:
    """Ledger of paying customers, keyed by phone number."""

    def __init__(self, db: Session):
        self.db = db

    def list(self, skip: int = 0, limit: Optional[int] = None):
        stmt = select(Customer).order_by(Customer.last_visit.desc(), Customer.phone).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt))

    def upsert_visit(
        self,
        name: Optional[str],
        phone: Optional[str],
        amount: Decimal,
        now: Optional[datetime] = None,
    ) -> Optional[Customer]:
        """Record one paid visit; visits without a usable phone number are skipped."""
        clean_phone = normalize_phone(phone)
        if not clean_phone:
            return None

        customer = self.db.get(Customer, clean_phone, with_for_update=True)
        if customer is None:
            customer = Customer(phone=clean_phone, name=name or "Guest", total_orders=0, total_spent=Decimal("0.00"))
            self.db.add(customer)
        if name:
            customer.name = name
        customer.last_visit = now or utcnow()
        customer.total_orders += 1
        customer.total_spent = round2(customer.total_spent + round2(amount))
        self.db.commit()
        return customer
