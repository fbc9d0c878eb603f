from enum import Enum

from pos_service.errors import ValidationError


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    UNPAID = "UNPAID"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    ONLINE = "ONLINE"
    UNPAID = "UNPAID"


# UNPAID orders sit in the dues ledger until collected (PAID) or written off (CANCELLED)
VALID_TRANSITIONS = {
    OrderStatus.PENDING: (OrderStatus.PAID, OrderStatus.UNPAID, OrderStatus.CANCELLED),
    OrderStatus.UNPAID: (OrderStatus.PAID, OrderStatus.CANCELLED),
    OrderStatus.PAID: (),
    OrderStatus.CANCELLED: (),
}


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else status


def allowed_transitions(current: str) -> tuple:
    try:
        return VALID_TRANSITIONS[OrderStatus(current)]
    except ValueError:
        raise ValidationError(f"Unknown current order status: {current}", {"currentStatus": current})


def validate_transition(current: str, new: str) -> None:
    current, new = _value(current), _value(new)
    allowed = allowed_transitions(current)
    if new not in allowed:
        allowed_names = [s.value for s in allowed]
        raise ValidationError(
            f"Cannot transition from {current} to {new}. "
            f"Allowed: {', '.join(allowed_names) if allowed_names else 'none (terminal state)'}",
            {"currentStatus": current, "newStatus": new, "allowed": allowed_names},
        )
