"""
Order subsystem errors

Every error carries the HTTP status it maps to; a single exception handler in
``marketplace.main`` turns them into responses.
"""
from fastapi import status


class OrderError(Exception):
    """Base exception for order placement and fulfillment errors"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(OrderError):
    """Referenced product or order does not exist"""
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(OrderError):
    """Caller has no buyer or seller relationship allowing the operation"""
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(OrderError):
    """Requested status change is not legal from the current state"""
    status_code = status.HTTP_409_CONFLICT


class InsufficientStock(OrderError):
    """Requested quantity exceeds available inventory"""
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, product_id: str = None):
        super().__init__(message)
        self.product_id = product_id
