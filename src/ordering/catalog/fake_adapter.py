"""In-memory catalog for development and testing.

Products are registered with ``add_product``; lookups and decrements can be
made to fail per product so partial-failure paths are reproducible.
"""

from ordering.catalog.port import CatalogGateway, ProductSnapshot
from ordering.errors import ProductLookupFailed, ProductNotFound, StockDecrementFailed


class FakeCatalogGateway(CatalogGateway):
    """Configurable fake catalog gateway."""

    def __init__(self) -> None:
        self.products: dict[str, ProductSnapshot] = {}
        self.failing_lookups: set[str] = set()
        self.failing_decrements: set[str] = set()
        self.calls: list[dict] = []

    def add_product(self, product_id: str, name: str, unit_price: float, stock: int) -> ProductSnapshot:
        snapshot = ProductSnapshot(id=product_id, name=name, unit_price=unit_price, available_stock=stock)
        self.products[product_id] = snapshot
        return snapshot

    def stock_of(self, product_id: str) -> int:
        return self.products[product_id].available_stock

    def fail_lookup(self, product_id: str) -> None:
        self.failing_lookups.add(product_id)

    def fail_decrement(self, product_id: str) -> None:
        self.failing_decrements.add(product_id)

    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        self.calls.append({"method": "fetch_snapshot", "product_id": product_id})

        if product_id in self.failing_lookups:
            raise ProductLookupFailed(product_id, "Catalog unavailable")
        if product_id not in self.products:
            raise ProductNotFound(product_id)
        return self.products[product_id]

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        self.calls.append({"method": "decrement_stock", "product_id": product_id, "quantity": quantity})

        if product_id in self.failing_decrements:
            raise StockDecrementFailed(product_id, "Catalog unavailable")
        snapshot = self.products.get(product_id)
        if snapshot is None:
            raise StockDecrementFailed(product_id, "Unknown product")
        if snapshot.available_stock < quantity:
            raise StockDecrementFailed(product_id, "Insufficient stock")

        self.products[product_id] = ProductSnapshot(
            id=snapshot.id,
            name=snapshot.name,
            unit_price=snapshot.unit_price,
            available_stock=snapshot.available_stock - quantity,
        )
