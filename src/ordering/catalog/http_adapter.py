"""HTTP adapter for the product catalog service.

Speaks the catalog's REST API:

    GET  {base}/api/v1/products/{id}           -> {isSuccess, response: {id, name, unitPrice, amount}}
    POST {base}/api/v1/products/{id}/purchase  <- {"amount": quantity}

Snapshot lookups are idempotent and retried with backoff on transport errors
and 5xx answers. Stock decrements are not idempotent and are never retried.
"""

import time
from collections.abc import Callable

import httpx
import structlog

from ordering.catalog.port import CatalogGateway, ProductSnapshot
from ordering.errors import ProductLookupFailed, ProductNotFound, StockDecrementFailed
from ordering.utils.retry import retry_with_backoff

logger = structlog.get_logger(__name__)


class _CatalogServerError(Exception):
    pass


class HttpCatalogGateway(CatalogGateway):
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        lookup_attempts: int = 3,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.lookup_attempts = lookup_attempts
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def _get_product(self, product_id: str) -> httpx.Response:
        response = self._client.get(f"/api/v1/products/{product_id}")
        if response.status_code >= 500:
            raise _CatalogServerError(f"Catalog answered {response.status_code}")
        return response

    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        try:
            response = retry_with_backoff(
                lambda: self._get_product(product_id),
                attempts=self.lookup_attempts,
                retry_on=(httpx.TransportError, _CatalogServerError),
                sleep=self._sleep,
                description="catalog.fetch_snapshot",
            )
        except (httpx.HTTPError, _CatalogServerError) as exc:
            logger.error("Product lookup failed", product_id=product_id, error=str(exc))
            raise ProductLookupFailed(product_id, str(exc)) from exc

        if response.status_code == 404:
            raise ProductNotFound(product_id)
        if response.status_code != 200:
            raise ProductLookupFailed(product_id, f"Catalog answered {response.status_code}")

        try:
            body = response.json()
            if not body.get("isSuccess", True) or not body.get("response"):
                raise ValueError("Catalog response carries no product")
            product = body["response"]
            return ProductSnapshot(
                id=str(product.get("id") or product_id),
                name=str(product["name"]),
                unit_price=float(product["unitPrice"]),
                available_stock=int(product["amount"]),
            )
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.error("Malformed product response", product_id=product_id, error=str(exc))
            raise ProductLookupFailed(product_id, f"Malformed catalog response: {exc}") from exc

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        try:
            response = self._client.post(f"/api/v1/products/{product_id}/purchase", json={"amount": quantity})
        except httpx.HTTPError as exc:
            raise StockDecrementFailed(product_id, str(exc)) from exc

        if not response.is_success:
            raise StockDecrementFailed(product_id, f"Catalog answered {response.status_code}")
