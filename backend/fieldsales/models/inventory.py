from __future__ import annotations

from ..extensions import db
from fieldsales.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data and available stock.

    MULTI-TENANT: owner_admin_id is the tenant partition key. It is resolved
    server-side when the product is created and never changes afterwards.

    STOCK: quantity is the available (unpicked) count. It is only moved by
    inventory_service.reserve / release (conditional UPDATE statements) or by
    an explicit product update from the catalogue screens.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_owner_name", "owner_admin_id", "name"),
        db.Index("ix_products_owner_featured", "owner_admin_id", "is_featured"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    color = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(128), nullable=True, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Durable URL returned by the upload collaborator; opaque to us
    image = db.Column(db.String(1024), nullable=True)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity} owner_admin_id={self.owner_admin_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_admin_id": self.owner_admin_id,
            "name": self.name,
            "brand": self.brand,
            "description": self.description,
            "color": self.color,
            "category": self.category,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "image": self.image,
            "is_featured": self.is_featured,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
