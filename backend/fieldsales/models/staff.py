from __future__ import annotations

from ..extensions import db
from fieldsales.time_utils import to_utc_z


def _ref(obj) -> dict | None:
    if obj is None:
        return None
    return {"id": obj.id, "name": obj.name, "email": obj.email}


class Manager(db.Model):
    """
    Manager profile, paired with a `manager` User by email.

    admin_id is the owning admin (tenant root). It is set once at creation
    and never reassigned.
    """
    __tablename__ = "managers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(512), nullable=True)
    government_id = db.Column(db.String(128), nullable=True)
    profile_picture = db.Column(db.String(1024), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    admin = db.relationship("User", foreign_keys=[admin_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "government_id": self.government_id,
            "profile_picture": self.profile_picture,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Agent(db.Model):
    """
    Field agent profile, paired with an `agent` User by email.

    HIERARCHY: manager_id is nullable (null = unassigned). owner_admin_id
    carries the tenant root directly so scope resolution does not depend on
    the manager link surviving. Reassignment is only allowed to managers of
    the same admin, so owner_admin_id never changes after creation.

    total_sales / total_revenue_cents are cumulative counters bumped with
    atomic UPDATEs by the sale engine.
    """
    __tablename__ = "agents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)
    owner_admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    government_id = db.Column(db.String(128), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=True)
    address = db.Column(db.String(512), nullable=True)
    profile_picture = db.Column(db.String(1024), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)

    # Performance metrics
    total_sales = db.Column(db.Integer, nullable=False, default=0)
    total_revenue_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    manager = db.relationship("Manager", backref=db.backref("agents", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "manager_id": self.manager_id,
            "manager": _ref(self.manager),
            "owner_admin_id": self.owner_admin_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "government_id": self.government_id,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "address": self.address,
            "profile_picture": self.profile_picture,
            "is_active": self.is_active,
            "is_featured": self.is_featured,
            "total_sales": self.total_sales,
            "total_revenue_cents": self.total_revenue_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Worker(db.Model):
    """Staff member without a login. Same hierarchy columns as Agent."""
    __tablename__ = "workers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)
    owner_admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(512), nullable=False)
    department = db.Column(db.String(64), nullable=False, default="general")
    position = db.Column(db.String(64), nullable=False, default="worker")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    manager = db.relationship("Manager", backref=db.backref("workers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "manager_id": self.manager_id,
            "manager": _ref(self.manager),
            "owner_admin_id": self.owner_admin_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "department": self.department,
            "position": self.position,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
