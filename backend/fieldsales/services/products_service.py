# backend/fieldsales/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are scoped to the caller's owning admin.
- owner_admin_id is resolved server-side on create and never changes
- reads, updates and deletes filter on owner_admin_id, so a product of
  another tenant is indistinguishable from a missing one (404)

Stock edits made here overwrite Product.quantity directly (catalogue
corrections). Picks and returns go through inventory_service only.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import current_app

from ..extensions import db
from ..errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from ..models import Product, Sale
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from . import hierarchy_service
from .hierarchy_service import Principal

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "brand", "description", "color", "category",
        "price_cents", "quantity", "image",
    },
    required_on_create={"name", "price_cents", "quantity"},
    aliases={"imageUrl": "image"},
)


def _price_to_cents(payload: dict) -> dict:
    """
    Accept either price_cents (integer) or price (decimal currency units).

    Decimal parsing keeps the conversion exact; fractions of a cent are rejected.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if "price" not in payload or "price_cents" in payload:
        return payload

    data = dict(payload)
    raw = data.pop("price")
    if raw is None or isinstance(raw, bool):
        raise ValidationError("price must be a number")
    try:
        cents = Decimal(str(raw).strip()) * 100
    except InvalidOperation:
        raise ValidationError("price must be a number")
    if not cents.is_finite():
        raise ValidationError("price must be a number")
    if cents != cents.to_integral_value():
        raise ValidationError("price cannot have more than two decimal places")
    data["price_cents"] = int(cents)
    return data


def _scoped_product(principal: Principal, product_id: int) -> Product:
    owner_id = hierarchy_service.require_owner_admin(principal)
    product = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.owner_admin_id == owner_id)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(principal: Principal, *, category: str | None = None) -> list[Product]:
    """Products of the caller's tenant, newest first."""
    owner_id = hierarchy_service.require_owner_admin(principal)
    query = db.session.query(Product).filter(Product.owner_admin_id == owner_id)
    if category:
        query = query.filter(Product.category == category.strip())
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def list_featured(principal: Principal) -> list[Product]:
    owner_id = hierarchy_service.require_owner_admin(principal)
    return (
        db.session.query(Product)
        .filter(Product.owner_admin_id == owner_id, Product.is_featured.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def get_product(principal: Principal, product_id: int) -> Product:
    return _scoped_product(principal, product_id)


def create_product(principal: Principal, payload: dict) -> Product:
    """
    Create a product in the caller's tenant (admin or manager).

    Raises ValidationError for bad fields and AccessDeniedError for roles
    outside the hierarchy. A client-supplied owner_admin_id is ignored.
    """
    if not (principal.is_admin or principal.is_manager):
        raise AccessDeniedError("Access denied")

    patch = validate_payload(
        model=Product,
        payload=_price_to_cents(payload),
        policy=PRODUCT_POLICY,
        partial=False,
    )
    enforce_rules_product(patch)

    owner_id = hierarchy_service.require_owner_admin(principal)

    product = Product(owner_admin_id=owner_id, is_featured=False)
    for key, value in patch.items():
        setattr(product, key, value)

    db.session.add(product)
    db.session.commit()
    current_app.logger.info("Product %s created for admin %s", product.id, owner_id)
    return product


def update_product(principal: Principal, product_id: int, payload: dict) -> Product:
    """Sparse update; omitted fields keep their value."""
    if not (principal.is_admin or principal.is_manager):
        raise AccessDeniedError("Access denied")

    patch = validate_payload(
        model=Product,
        payload=_price_to_cents(payload),
        policy=PRODUCT_POLICY,
        partial=True,
    )
    enforce_rules_product(patch)

    product = _scoped_product(principal, product_id)
    for key, value in patch.items():
        setattr(product, key, value)

    db.session.commit()
    return product


def delete_product(principal: Principal, product_id: int) -> None:
    """
    Delete a product of the caller's tenant.

    Products referenced by sales are kept (ConflictError); sales hold a
    required product reference.
    """
    if not (principal.is_admin or principal.is_manager):
        raise AccessDeniedError("Access denied")

    product = _scoped_product(principal, product_id)

    in_use = db.session.query(Sale.id).filter(Sale.product_id == product.id).first()
    if in_use:
        raise ConflictError("Product has sales records and cannot be deleted")

    db.session.delete(product)
    db.session.commit()
    current_app.logger.info("Product %s deleted by user %s", product_id, principal.id)


def toggle_featured(principal: Principal, product_id: int) -> Product:
    """Flip is_featured (admin only)."""
    if not principal.is_admin:
        raise AccessDeniedError("Only admins can feature products")

    product = _scoped_product(principal, product_id)
    product.is_featured = not product.is_featured
    db.session.commit()
    return product
