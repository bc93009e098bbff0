"""Catalogue lookups used by carts and checkout."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from kasuwa.catalogue.product import Product


def load_product(product_id) -> Product | None:
    """The product, or None when it no longer exists."""
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        return None
