"""
RabbitMQ Event Publisher
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

import pika

from marketplace.config import settings
from marketplace.models.order import Order
from marketplace.schemas.order import OrderEvent

logger = logging.getLogger(__name__)


def order_created_payload(order: Order) -> Dict:
    return {
        'order_id': order.id,
        'checkout_id': order.checkout_id,
        'buyer_id': order.buyer_id,
        'seller_id': order.seller_id,
        'items': [
            {
                'product_id': item.product_id,
                'name': item.name,
                'price': str(item.price),
                'quantity': item.quantity
            }
            for item in order.items
        ],
        'subtotal': str(order.subtotal),
        'tax': str(order.tax),
        'shipping_cost': str(order.shipping_cost),
        'total': str(order.total),
        'status': order.status,
        'payment_method': order.payment_method,
        'payment_status': order.payment_status
    }


def order_status_changed_payload(order: Order, old_status: str) -> Dict:
    latest = order.status_history[-1]
    return {
        'order_id': order.id,
        'buyer_id': order.buyer_id,
        'seller_id': order.seller_id,
        'old_status': old_status,
        'new_status': order.status,
        'tracking_number': order.tracking_number,
        'note': latest.note,
        'changed_at': latest.timestamp.isoformat()
    }


class EventPublisher:
    """Publisher for sending order events to RabbitMQ"""

    def __init__(self, enabled: Optional[bool] = None):
        self.rabbitmq_url = settings.RABBITMQ_URL
        self.exchange = settings.RABBITMQ_EXCHANGE
        self.enabled = settings.EVENTS_ENABLED if enabled is None else enabled

    def publish_order_created(self, order: Order) -> bool:
        """Publish OrderCreated for a newly placed order"""
        return self._publish(
            "OrderCreated",
            settings.RABBITMQ_ROUTING_KEY,
            order_created_payload(order),
            mandatory=True
        )

    def publish_order_status_changed(self, order: Order, old_status: str) -> bool:
        """Publish OrderStatusChanged after a transition"""
        return self._publish(
            "OrderStatusChanged",
            settings.RABBITMQ_STATUS_ROUTING_KEY,
            order_status_changed_payload(order, old_status)
        )

    def _publish(self, event_type: str, routing_key: str, data: Dict, mandatory: bool = False) -> bool:
        """
        Publish one event envelope

        Returns:
            True if the broker confirmed the message, False otherwise
        """
        if not self.enabled:
            logger.debug("Event publishing disabled, dropping %s", event_type)
            return False

        event = OrderEvent(
            event_type=event_type,
            event_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=settings.SERVICE_NAME,
            data=data
        )

        try:
            connection = pika.BlockingConnection(
                pika.URLParameters(self.rabbitmq_url)
            )
            try:
                channel = connection.channel()

                channel.exchange_declare(
                    exchange=self.exchange,
                    exchange_type='topic',
                    durable=True
                )

                # Enable publisher confirms
                channel.confirm_delivery()

                channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=routing_key,
                    body=event.model_dump_json(),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Persistent message
                        content_type='application/json',
                        correlation_id=event.event_id
                    ),
                    mandatory=mandatory
                )
            finally:
                connection.close()

        except pika.exceptions.UnroutableError:
            logger.warning("Event %s (%s) could not be routed to any queue", event_type, event.event_id)
            return False
        except pika.exceptions.AMQPError as e:
            logger.warning("Error publishing %s event: %s", event_type, e)
            return False

        logger.info("Event published: %s (ID: %s)", event_type, event.event_id)
        return True
