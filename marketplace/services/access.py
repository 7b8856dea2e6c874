"""
Access Guard - buyer and seller perspectives on an order
"""
import logging
from enum import Enum

from marketplace.exceptions import Forbidden
from marketplace.models.enums import OrderStatus
from marketplace.models.order import Order
from marketplace.catalog import SellerDirectory
from marketplace.services.state_machine import BUYER_CANCELLABLE, can_transition

logger = logging.getLogger(__name__)


class Perspective(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"


class AccessGuard:
    """
    Decides what a caller may do with an order.

    A missing order is reported as not found by the caller of the guard;
    the guard itself only ever answers for orders that exist, and answers
    Forbidden rather than hiding them.
    """

    def __init__(self, sellers: SellerDirectory):
        self.sellers = sellers

    def is_buyer(self, order: Order, caller_id: str) -> bool:
        return order.buyer_id == caller_id

    def is_seller(self, order: Order, caller_id: str) -> bool:
        return self.sellers.is_owned_by(order.seller_id, caller_id)

    def authorize_read(self, order: Order, caller_id: str) -> Perspective:
        if self.is_buyer(order, caller_id):
            return Perspective.BUYER
        if self.is_seller(order, caller_id):
            return Perspective.SELLER
        logger.warning("User %s denied access to order %s", caller_id, order.id)
        raise Forbidden("You do not have access to this order")

    def authorize_transition(self, order: Order, caller_id: str, target: OrderStatus) -> Perspective:
        """Sellers drive the lifecycle; a buyer may only cancel"""
        if self.is_seller(order, caller_id):
            return Perspective.SELLER
        if self.is_buyer(order, caller_id) and target == OrderStatus.CANCELLED:
            self.authorize_cancellation(order, caller_id)
            return Perspective.BUYER
        logger.warning("User %s denied status change of order %s", caller_id, order.id)
        raise Forbidden("Only the seller can update the status of this order")

    def authorize_cancellation(self, order: Order, caller_id: str) -> None:
        """
        Buyer cancellation window is pending/processing.

        Outside the window a cancellation the state machine would still allow
        is Forbidden for the buyer; from a terminal state it is left to the
        state machine to reject as an invalid transition.
        """
        if not self.is_buyer(order, caller_id):
            logger.warning("User %s denied cancellation of order %s", caller_id, order.id)
            raise Forbidden("Only the buyer can cancel this order")

        status = order.current_status
        if status in BUYER_CANCELLABLE:
            return
        if can_transition(status, OrderStatus.CANCELLED):
            raise Forbidden(f"Orders that are already {status.value} can no longer be cancelled by the buyer")
