"""
Order status lifecycle

    pending    -> processing | cancelled
    processing -> shipped    | cancelled
    shipped    -> delivered  | cancelled
    delivered, cancelled are terminal
"""
from datetime import datetime
from typing import Optional

from marketplace.exceptions import InvalidTransition
from marketplace.models.enums import OrderStatus
from marketplace.models.order import Order

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

# States from which the buyer may cancel on their own
BUYER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def apply_transition(
    order: Order,
    target: OrderStatus,
    now: datetime,
    tracking_number: Optional[str] = None,
    note: Optional[str] = None,
) -> Order:
    """
    Move ``order`` to ``target`` and append the history entry.

    All checks run before the order is touched, so a rejected transition
    leaves it exactly as it was.

    Raises:
        InvalidTransition: If ``target`` is not reachable from the current
            status, or a tracking number is given for a target other than
            shipped
    """
    current = order.current_status
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot change order {order.id} from '{current.value}' to '{target.value}'"
        )
    if tracking_number is not None and target != OrderStatus.SHIPPED:
        raise InvalidTransition("A tracking number can only be attached when shipping an order")

    if tracking_number is not None:
        order.tracking_number = tracking_number
    order.record_status(target, now, note)
    return order
