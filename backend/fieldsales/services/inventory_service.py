# Overview: Service-layer operations for inventory; owns every movement of Product.quantity.

"""
Inventory Ledger Invariants (authoritative)

Stock model:
- Product.quantity is the available (unpicked) count and may never go negative
  (enforced by a CHECK constraint as well as by the conditional UPDATE below).
- A pick debits stock exactly once, at Sale creation.
- A return credits stock exactly once, on the picked -> returned transition.
- For every product:
    initial quantity == current quantity + sum(quantity of sales not returned)
  (product edits from the catalogue screens reset the baseline).

Concurrency:
- reserve() is a single conditional UPDATE:
      UPDATE products SET quantity = quantity - :qty
       WHERE id = :id AND owner_admin_id = :owner AND quantity >= :qty
  so two concurrent picks can never both pass the stock check.
- release() is a single relative UPDATE (quantity = quantity + :qty).
- Neither commits by default: callers run them in the same transaction as
  the Sale write, so a failure after the debit rolls the debit back too.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..errors import InsufficientStockError, NotFoundError
from ..models import Product
from ..validation import parse_quantity
from .concurrency import conditional_update


def _reload(product_id: int) -> Product | None:
    # populate_existing refreshes any copy already in the identity map
    return (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .populate_existing()
        .first()
    )


def reserve(product_id: int, qty, owner_admin_id: int, *, commit: bool = False) -> Product:
    """
    Atomically debit qty units of a product owned by owner_admin_id.

    Raises:
        ValidationError: qty is not a positive integer
        NotFoundError: product missing or owned by another admin
        InsufficientStockError: fewer than qty units available
    """
    qty = parse_quantity(qty)

    reserved = conditional_update(
        update(Product)
        .where(
            Product.id == product_id,
            Product.owner_admin_id == owner_admin_id,
            Product.quantity >= qty,
        )
        .values(quantity=Product.quantity - qty)
    )

    if not reserved:
        product = _reload(product_id)
        if product is None or product.owner_admin_id != owner_admin_id:
            raise NotFoundError("Product not found")
        raise InsufficientStockError(
            f"Only {product.quantity} item(s) available in stock",
            details={"available": product.quantity, "requested": qty},
        )

    product = _reload(product_id)
    current_app.logger.debug(
        "Reserved %s unit(s) of product %s; %s left", qty, product_id, product.quantity
    )

    if commit:
        db.session.commit()
    return product


def release(product_id: int, qty, *, commit: bool = False) -> Product:
    """
    Atomically credit qty units back to a product.

    Callers guard against double credit (only the picked -> returned
    transition releases stock).
    """
    qty = parse_quantity(qty)

    released = conditional_update(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + qty)
    )
    if not released:
        raise NotFoundError("Product not found")

    product = _reload(product_id)
    current_app.logger.debug(
        "Released %s unit(s) of product %s; %s available", qty, product_id, product.quantity
    )

    if commit:
        db.session.commit()
    return product
