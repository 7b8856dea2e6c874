"""
Event publishers
"""
from marketplace.publishers.event_publisher import EventPublisher

__all__ = ["EventPublisher"]
