"""
HTTP Client for the Catalog Service with retry logic
"""
import logging
from typing import List, Optional, Sequence

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from marketplace.config import settings
from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.schemas.catalog import ProductSnapshot, SellerRecord
from marketplace.catalog import Catalog, SellerDirectory

logger = logging.getLogger(__name__)


class CatalogServiceError(Exception):
    """Base exception for Catalog Service errors"""
    pass


class CatalogServiceUnavailableError(CatalogServiceError):
    """Catalog Service is unavailable"""
    pass


class CatalogServiceClient(Catalog, SellerDirectory):
    """Client for the remote catalog and seller directory"""

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url or settings.CATALOG_SERVICE_URL
        self.timeout = settings.HTTP_TIMEOUT
        self.transport = transport

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True
    )
    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            return client.request(method, path, **kwargs)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send a request, retrying timeouts and connection errors

        Raises:
            CatalogServiceUnavailableError: If retries are exhausted
        """
        try:
            return self._send(method, path, **kwargs)
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.error("Error calling Catalog Service: %s", e)
            raise CatalogServiceUnavailableError(f"Catalog Service unavailable: {e}")

    @staticmethod
    def _unexpected(response: httpx.Response) -> CatalogServiceError:
        return CatalogServiceError(f"Unexpected status code: {response.status_code}")

    def resolve_products(self, product_ids: Sequence[str]) -> List[ProductSnapshot]:
        """Batch lookup; the catalog omits IDs it does not know"""
        if not product_ids:
            return []
        response = self._request("GET", "/products/batch", params={"ids": list(product_ids)})
        if response.status_code != 200:
            raise self._unexpected(response)
        return [ProductSnapshot.model_validate(p) for p in response.json()]

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        response = self._request("PATCH", f"/products/{product_id}/stock", json={"quantity": -quantity})
        if response.status_code == 200:
            return
        if response.status_code == 404:
            raise NotFound(f"Product {product_id} not found")
        if response.status_code == 409:
            raise InsufficientStock(
                f"Insufficient stock for product {product_id}, requested: {quantity}",
                product_id=product_id
            )
        raise self._unexpected(response)

    def restock(self, product_id: str, quantity: int) -> None:
        response = self._request("PATCH", f"/products/{product_id}/stock", json={"quantity": quantity})
        if response.status_code == 404:
            raise NotFound(f"Product {product_id} not found")
        if response.status_code != 200:
            raise self._unexpected(response)

    def resolve_seller_by_product(self, product_id: str) -> Optional[str]:
        response = self._request("GET", f"/products/{product_id}")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise self._unexpected(response)
        return response.json().get("seller_id")

    def is_owned_by(self, seller_id: str, caller_id: str) -> bool:
        response = self._request("GET", f"/sellers/{seller_id}")
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            raise self._unexpected(response)
        return response.json().get("user_id") == caller_id

    def find_seller_by_owner(self, caller_id: str) -> Optional[SellerRecord]:
        response = self._request("GET", "/sellers", params={"user_id": caller_id})
        if response.status_code != 200:
            raise self._unexpected(response)
        sellers = response.json()
        if not sellers:
            return None
        return SellerRecord.model_validate(sellers[0])

    def ping(self) -> bool:
        """Whether the catalog service answers its health check"""
        try:
            with httpx.Client(base_url=self.base_url, timeout=2.0, transport=self.transport) as client:
                return client.get("/health").status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Catalog Service health check failed: %s", e)
            return False
