from __future__ import annotations

from ..extensions import db
from fieldsales.time_utils import to_utc_z


PRODUCT_STATUS_PICKED = "picked"
PRODUCT_STATUS_SOLD = "sold"
PRODUCT_STATUS_RETURNED = "returned"
PRODUCT_STATUSES = (PRODUCT_STATUS_PICKED, PRODUCT_STATUS_SOLD, PRODUCT_STATUS_RETURNED)

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_CONFIRMED = "confirmed"
PAYMENT_STATUS_CANCELLED = "cancelled"
PAYMENT_STATUSES = (
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_CONFIRMED,
    PAYMENT_STATUS_CANCELLED,
)


class Sale(db.Model):
    """
    A quantity of one product picked by an agent, manager or admin.

    STATE: (product_status, payment_status).
    - product_status: picked -> sold | returned; sold and returned are terminal
    - payment_status: pending -> paid -> confirmed, or pending -> cancelled

    MULTI-TENANT: owner_admin_id is computed once at creation from the
    caller's hierarchy and never recomputed.

    INVARIANT: total_price_cents == unit_price_cents * quantity at every
    persisted state (see sales_service._set_quantity).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        db.Index("ix_sales_owner_created", "owner_admin_id", "created_at"),
        db.Index("ix_sales_owner_product_status", "owner_admin_id", "product_status"),
        db.Index("ix_sales_owner_payment_status", "owner_admin_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True, index=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)
    owner_admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(255), nullable=False, default="N/A")
    customer_phone = db.Column(db.String(64), nullable=True)
    customer_address = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    product_status = db.Column(db.String(16), nullable=False, default=PRODUCT_STATUS_PICKED)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PENDING)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Payment confirmation chain: agent/manager records "paid", admin confirms
    payment_confirmed_by_manager = db.Column(db.Boolean, nullable=False, default=False)
    payment_confirmed_by_admin = db.Column(db.Boolean, nullable=False, default=False)
    payment_confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))
    agent = db.relationship("Agent", backref=db.backref("sales", lazy=True))
    manager = db.relationship("Manager", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        product = self.product
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {
                "id": product.id,
                "name": product.name,
                "brand": product.brand,
                "price_cents": product.price_cents,
            } if product is not None else None,
            "agent_id": self.agent_id,
            "agent": {"id": self.agent.id, "name": self.agent.name, "email": self.agent.email} if self.agent else None,
            "manager_id": self.manager_id,
            "manager": {"id": self.manager.id, "name": self.manager.name, "email": self.manager.email} if self.manager else None,
            "owner_admin_id": self.owner_admin_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "notes": self.notes,
            "product_status": self.product_status,
            "payment_status": self.payment_status,
            "sold_at": to_utc_z(self.sold_at) if self.sold_at else None,
            "payment_confirmed_by_manager": self.payment_confirmed_by_manager,
            "payment_confirmed_by_admin": self.payment_confirmed_by_admin,
            "payment_confirmed_at": to_utc_z(self.payment_confirmed_at) if self.payment_confirmed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
