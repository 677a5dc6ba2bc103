"""Ordering bounded context — Carts, Orders and Payments for the marketplace.

Handles the single-restaurant cart (with menu bundles), checkout into a priced
order, the order status state machine, and payment reconciliation against the
mobile-money gateway. Catalogue data owned by other services is mirrored here
as read-only projections.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

configure_logging()

ordering = Domain(name="ordering")

logger = get_logger(__name__)
