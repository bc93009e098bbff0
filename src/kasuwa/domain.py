"""Kasuwa marketplace domain.

A single bounded context holding the catalogue, carts, orders, payments
and reviews, so that checkout, cancellation and refunds can change several
aggregates inside one unit of work.
"""

import structlog
from protean.domain import Domain

kasuwa = Domain(name="kasuwa")

logger = structlog.get_logger(__name__)
