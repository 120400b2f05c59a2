from __future__ import annotations

from ..extensions import db
from fieldsales.time_utils import to_utc_z


ROLE_USER = "user"
ROLE_MANAGER = "manager"
ROLE_AGENT = "agent"
ROLE_ADMIN = "admin"
VALID_ROLES = (ROLE_USER, ROLE_MANAGER, ROLE_AGENT, ROLE_ADMIN)


class User(db.Model):
    """
    Login accounts.

    HIERARCHY: role decides which profile table (Manager, Agent) the account
    is paired with; the pairing key is the email address. created_by_admin_id
    points at the admin who provisioned the account and is null for
    self-registered users and bootstrap admins.

    Workers never get a User row.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Stored lowercase and trimmed; unique across the whole system
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)

    created_by_admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    profile_picture = db.Column(db.String(1024), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_admin = db.relationship("User", remote_side=[id], foreign_keys=[created_by_admin_id])

    @property
    def normalized_role(self) -> str:
        return (self.role or "").strip().lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.normalized_role,
            "created_by_admin_id": self.created_by_admin_id,
            "profile_picture": self.profile_picture,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Opaque bearer session tokens.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts (see Config)
    - Revocable on logout, password change or account removal
    - Sessions carry identity only; hierarchy scope is resolved per request
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Session metadata
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Revocation support
    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    # Client information (for security monitoring)
    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
