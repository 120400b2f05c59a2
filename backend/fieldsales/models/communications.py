from __future__ import annotations

from ..extensions import db
from fieldsales.time_utils import to_utc_z


TYPE_PAYMENT_RECEIVED = "payment_received"
TYPE_PAYMENT_CONFIRMED = "payment_confirmed"
TYPE_PRODUCT_SOLD = "product_sold"
TYPE_PRODUCT_RETURNED = "product_returned"
TYPE_PRODUCT_PICKED = "product_picked"
TYPE_NEW_AGENT = "new_agent"
TYPE_NEW_MANAGER = "new_manager"
TYPE_NEW_WORKER = "new_worker"
TYPE_SALES_MADE = "sales_made"
TYPE_ALERT = "alert"
NOTIFICATION_TYPES = {
    TYPE_PAYMENT_RECEIVED,
    TYPE_PAYMENT_CONFIRMED,
    TYPE_PRODUCT_SOLD,
    TYPE_PRODUCT_RETURNED,
    TYPE_PRODUCT_PICKED,
    TYPE_NEW_AGENT,
    TYPE_NEW_MANAGER,
    TYPE_NEW_WORKER,
    TYPE_SALES_MADE,
    TYPE_ALERT,
}

RECIPIENT_ROLES = {"admin", "manager", "agent"}
REFERENCE_MODELS = {"Sales", "Product", "Agent", "Manager", "Worker"}
PRIORITIES = {"low", "normal", "high"}


class Notification(db.Model):
    """
    Append-only inbox entry for one user.

    Written by notification_service as a side effect of business events;
    never read back by business logic. Only is_read changes after insert.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
        db.Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    recipient_role = db.Column(db.String(16), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    # Polymorphic pointer to the triggering entity
    reference_model = db.Column(db.String(16), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    priority = db.Column(db.String(8), nullable=False, default="normal")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "recipient_role": self.recipient_role,
            "sender_id": self.sender_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "reference": {
                "model": self.reference_model,
                "id": self.reference_id,
            } if self.reference_model else None,
            "is_read": self.is_read,
            "priority": self.priority,
            "created_at": to_utc_z(self.created_at),
        }
