from __future__ import annotations

from ..extensions import db
from pricebook.time_utils import to_utc_z, utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Exactly one role per account, chosen at signup. There is no elevation
    path: nothing in the application writes User.role after insert.

    Status is derived from banned_until:
    - banned_until in the future -> "inactive"
    - NULL or in the past        -> "active"
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Stored lower-cased; unique across the installation
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    banned_until = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def is_banned(self, now=None) -> bool:
        if self.banned_until is None:
            return False
        return self.banned_until > (now or utcnow())

    @property
    def status(self) -> str:
        return STATUS_INACTIVE if self.is_banned() else STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "status": self.status,
            "banned_until": to_utc_z(self.banned_until),
            "joined_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    Secure session token management.

    WHY: The client keeps only an opaque bearer token; identity is resolved
    server-side on every request.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts from config
    - Revocable on logout, ban, or suspicious activity
    - role is snapshotted at creation (roles are never elevated anyway)
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at),
        }
