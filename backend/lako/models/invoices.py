from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..enums import BillingReason, CodedEnum, InvoiceStatus
from ..time_utils import to_utc_z, utcnow


# Item unit price and quantity carry at most 2 decimal places, so a line
# total has at most 4 and the invoice columns hold every sum exactly.
ITEM_MONEY = db.Numeric(12, 2)
ITEM_QUANTITY = db.Numeric(12, 2)
INVOICE_MONEY = db.Numeric(18, 4)

# Largest value INVOICE_MONEY stores
MAX_INVOICE_AMOUNT = Decimal("99999999999999.9999")


def money_str(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return format(value, "f")


class Invoice(db.Model):
    """
    Invoice header. Owned by user_id; billed to client_id from company_id.

    INVARIANT: amount == sum(item.amount * item.quantity) over its items.
    Every path that touches items recalculates amount in the same
    transaction (see invoice_service.recalculate_amount).

    invoice_number is unique per (user_id, client_id). Auto-generated numbers
    embed the creation year ("2026/001"), which makes them unique per
    (user, client, year).
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_id", name="uq_invoices_invoice_id"),
        db.UniqueConstraint("user_id", "client_id", "invoice_number", name="uq_invoices_user_client_number"),
        db.Index("ix_invoices_user_client_created", "user_id", "client_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.String(36), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    currency = db.Column(db.String(8), nullable=False)

    status = db.Column(CodedEnum(InvoiceStatus), nullable=False, default=InvoiceStatus.DRAFT)
    billing_reason = db.Column(CodedEnum(BillingReason), nullable=False, default=BillingReason.MANUAL)

    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_send_date = db.Column(db.DateTime(timezone=True), nullable=True)

    amount = db.Column(INVOICE_MONEY, nullable=False, default=Decimal("0"))
    balance = db.Column(INVOICE_MONEY, nullable=False, default=Decimal("0"))
    discount = db.Column(INVOICE_MONEY, nullable=False, default=Decimal("0"))
    tax = db.Column(INVOICE_MONEY, nullable=False, default=Decimal("0"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "InvoiceItem",
        backref=db.backref("invoice", lazy=True),
        lazy=True,
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "user_id": self.user_id,
            "client_id": self.client_id,
            "company_id": self.company_id,
            "invoice_number": self.invoice_number,
            "description": self.description,
            "currency": self.currency,
            "status": self.status.value,
            "billing_reason": self.billing_reason.value,
            "due_date": to_utc_z(self.due_date) if self.due_date else None,
            "invoice_date": to_utc_z(self.invoice_date) if self.invoice_date else None,
            "last_send_date": to_utc_z(self.last_send_date) if self.last_send_date else None,
            "amount": money_str(self.amount),
            "balance": money_str(self.balance),
            "discount": money_str(self.discount),
            "tax": money_str(self.tax),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InvoiceItem(db.Model):
    """Line item: amount is the unit price, line total is amount * quantity."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.Index("ix_invoice_items_invoice_id", "invoice_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    amount = db.Column(ITEM_MONEY, nullable=False)
    quantity = db.Column(ITEM_QUANTITY, nullable=False)

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.amount) * Decimal(self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "name": self.name,
            "description": self.description,
            "amount": money_str(self.amount),
            "quantity": money_str(self.quantity),
            "line_total": money_str(self.line_total),
        }
