from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Client(db.Model):
    """
    A customer of the owning user; the party an invoice is billed to.

    Strictly owned: every query, update and delete filters on user_id.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    company_name = db.Column(db.String(255), nullable=False, default="")
    address_1 = db.Column(db.String(255), nullable=False, default="")
    address_2 = db.Column(db.String(255), nullable=False, default="")
    city = db.Column(db.String(128), nullable=False, default="")
    state = db.Column(db.String(128), nullable=False, default="")
    zip_code = db.Column(db.String(32), nullable=False, default="")
    country = db.Column(db.String(128), nullable=False, default="")
    website = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "company_name": self.company_name,
            "address_1": self.address_1,
            "address_2": self.address_2,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "website": self.website,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Company(db.Model):
    """The owning user's own business entity that issues invoices."""
    __tablename__ = "companies"
    __table_args__ = (
        db.Index("ix_companies_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    address_1 = db.Column(db.String(255), nullable=False, default="")
    address_2 = db.Column(db.String(255), nullable=False, default="")
    city = db.Column(db.String(128), nullable=False, default="")
    state = db.Column(db.String(128), nullable=False, default="")
    zip_code = db.Column(db.String(32), nullable=False, default="")
    country = db.Column(db.String(128), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "address_1": self.address_1,
            "address_2": self.address_2,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
