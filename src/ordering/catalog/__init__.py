"""Catalog gateway factory.

Provides get_catalog() / set_catalog() to swap implementations:
- HttpCatalogGateway when CATALOG_BASE_URL is configured
- FakeCatalogGateway for development and testing
"""

from ordering.catalog.fake_adapter import FakeCatalogGateway
from ordering.catalog.http_adapter import HttpCatalogGateway
from ordering.catalog.port import CatalogGateway
from ordering.config import get_settings

_current_catalog: CatalogGateway | None = None


def get_catalog() -> CatalogGateway:
    """Return the current catalog gateway, building it from settings on first use."""
    global _current_catalog
    if _current_catalog is None:
        settings = get_settings()
        if settings.catalog_base_url:
            _current_catalog = HttpCatalogGateway(
                settings.catalog_base_url,
                timeout_seconds=settings.catalog_timeout_seconds,
                lookup_attempts=settings.catalog_lookup_attempts,
            )
        else:
            _current_catalog = FakeCatalogGateway()
    return _current_catalog


def set_catalog(catalog: CatalogGateway) -> None:
    """Override the active catalog gateway (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to the settings-derived default."""
    global _current_catalog
    _current_catalog = None
