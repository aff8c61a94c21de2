"""Ordering bounded context — Order placement and payment reconciliation.

Handles order creation from a priced cart (validated against catalog
snapshots), post-commit stock decrement, and payment-intent reconciliation
that drives the order status through a single state machine.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
