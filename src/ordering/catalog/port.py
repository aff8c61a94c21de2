"""Catalog gateway port (abstract interface).

The product catalog is owned by another service. Ordering only needs two
things from it: a point-in-time snapshot of a product (name, price, stock)
and a way to decrement stock once an order is committed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductSnapshot:
    """Product details as reported by the catalog at lookup time."""

    id: str
    name: str
    unit_price: float
    available_stock: int


class CatalogGateway(ABC):
    """Abstract catalog gateway interface."""

    @abstractmethod
    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        """Look up a product.

        Raises ProductNotFound for unknown ids and ProductLookupFailed when the
        catalog is unreachable or answers with something unusable.
        """
        ...

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """Reduce available stock by ``quantity``. Raises StockDecrementFailed."""
        ...
