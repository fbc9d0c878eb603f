"""
Outbound "order paid" notifications for the customer CRM.

The order service emits one notification after a PAID transition has been
committed and never waits for it. Delivery runs on a small thread pool and
failures end up in the log, not in the caller's response.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from typing import Callable, Optional

import httpx
from sqlalchemy.orm import Session

from pos_core.logging_config import get_logger
from .customers import CustomerService

logger = get_logger(__name__)


class PaidOrderNotifier(ABC):
    @abstractmethod
    def notify_paid(self, customer_name: Optional[str], customer_phone: Optional[str], amount: Decimal) -> None:
        """Report one paid order for the customer ledger."""


class LedgerNotifier(PaidOrderNotifier):
    """Records the visit in the local customers table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def notify_paid(self, customer_name, customer_phone, amount):
        db = self.session_factory()
        try:
            CustomerService(db).upsert_visit(customer_name, customer_phone, amount)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class HttpCustomerNotifier(PaidOrderNotifier):
    """Posts the visit to an external customers service."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def notify_paid(self, customer_name, customer_phone, amount):
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(
                f"{self.base_url}/customers/visits",
                json={"name": customer_name, "phone": customer_phone, "amount": str(amount)},
            )
            response.raise_for_status()


class BackgroundNotifier(PaidOrderNotifier):
    """Fire-and-forget wrapper: hands delivery to a thread pool and logs failures."""

    def __init__(self, delegate: PaidOrderNotifier, max_workers: int = 2):
        self.delegate = delegate
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="crm-notify")

    def notify_paid(self, customer_name, customer_phone, amount) -> Future:
        return self.executor.submit(self._deliver, customer_name, customer_phone, amount)

    def _deliver(self, customer_name, customer_phone, amount):
        try:
            self.delegate.notify_paid(customer_name, customer_phone, amount)
        except Exception:
            logger.warning(
                "Customer notification failed",
                exc_info=True,
                extra={'extra_fields': {'customer_phone': customer_phone, 'amount': amount}},
            )

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
