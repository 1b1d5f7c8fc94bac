from __future__ import annotations

from ..extensions import db
from ..enums import CodedEnum, Role
from ..time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Account that owns clients, companies and invoices.

    Usernames are stored lower-cased so the unique constraint is effectively
    case-insensitive. The role is set at creation (public registration is
    always CUSTOMER) and has no self-service update path.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(CodedEnum(Role), nullable=False, default=Role.CUSTOMER)
    username = db.Column(db.String(64), nullable=False, index=True)

    # Bcrypt hash, never serialized
    hashed_password = db.Column(db.String(255), nullable=False)

    profile_name = db.Column(db.String(128), nullable=False, default="")
    profile_image = db.Column(db.String(255), nullable=False, default="")

    last_sign_in_at = db.Column(db.DateTime(timezone=True), nullable=True)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    emails = db.relationship(
        "Email",
        backref=db.backref("user", lazy=True),
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Email.id",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    @property
    def primary_email(self) -> "Email | None":
        for email in self.emails:
            if email.is_primary:
                return email
        return self.emails[0] if self.emails else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "username": self.username,
            "profile_name": self.profile_name,
            "profile_image": self.profile_image,
            "emails": [e.to_dict() for e in self.emails],
            "last_sign_in_at": to_utc_z(self.last_sign_in_at) if self.last_sign_in_at else None,
            "joined_at": to_utc_z(self.joined_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Email(db.Model):
    """
    Email address attached to a user, with its verification state.

    verified only ever moves False -> True. Regenerating the token replaces
    verification_token and token_generated_at and leaves verified alone.
    """
    __tablename__ = "emails"
    __table_args__ = (
        db.UniqueConstraint("verification_token", name="uq_emails_token"),
        db.Index("ix_emails_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    verification_token = db.Column(db.String(128), nullable=False)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    token_generated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        # verification_token is a secret and is only ever sent by email
        return {
            "id": self.id,
            "address": self.address,
            "verified": self.verified,
            "is_primary": self.is_primary,
        }
