"""
Services package
"""
from marketplace.services.order_service import OrderService
from marketplace.services.catalog_client import CatalogServiceClient
from marketplace.services.reconciliation import Reconciler

__all__ = ["OrderService", "CatalogServiceClient", "Reconciler"]
