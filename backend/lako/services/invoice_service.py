# Overview: Service-layer operations for invoices; numbering, items and amount integrity.

"""
Invoice Aggregate

An invoice is a header plus its line items. The header's amount is derived,
never trusted from input:

    amount == sum(item.amount * item.quantity)

Every operation that changes items recalculates the amount inside the same
transaction, under a row lock on the owning invoice.

NUMBERING:
- Auto-generated numbers look like "2026/001": the creation year (UTC) and a
  3-digit sequence per (owner, client, year)
- The sequence is the count of that year's invoices for the pair plus one;
  if deletions left that number taken, it continues after the highest
  sequence already used
- (user_id, client_id, invoice_number) is unique in storage, so two
  concurrent creates cannot both keep the same number. The loser gets a
  DuplicateInvoiceNumberError, after a bounded retry when the number was
  generated here

All money math is Decimal. Item values carry at most 2 decimal places.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from ..enums import BillingReason, InvoiceStatus, from_label
from ..errors import DuplicateInvoiceNumberError, InternalError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Client, Company, Invoice, InvoiceItem
from ..models.invoices import MAX_INVOICE_AMOUNT
from ..time_utils import utcnow, year_bounds
from ..validation import ModelValidationPolicy, parse_decimal, validate_payload
from .concurrency import atomic, run_with_retry
from .ownership import delete_owned, get_owned_or_404, owned_query, update_owned
from .pagination import escape_like, paginate

logger = logging.getLogger(__name__)

NUMBER_ATTEMPTS = 3

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "amount", "quantity"},
    required_on_create={"name", "amount", "quantity"},
)

INVOICE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "client_id", "company_id", "invoice_number", "description", "currency",
        "billing_reason", "due_date", "invoice_date", "balance", "discount", "tax",
    },
    required_on_create={"client_id", "company_id", "currency"},
)

# amount is derived from items and user_id comes from the token
INVOICE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "client_id", "company_id", "invoice_number", "description", "currency",
        "status", "billing_reason", "due_date", "invoice_date", "last_send_date",
        "balance", "discount", "tax",
    },
)


# =============================================================================
# Numbering
# =============================================================================

def format_invoice_number(year: int, sequence: int) -> str:
    return f"{year}/{sequence:03d}"


def _sequence_of(invoice_number: str, year: int) -> int:
    prefix = f"{year}/"
    if not invoice_number.startswith(prefix):
        return 0
    tail = invoice_number[len(prefix):]
    return int(tail) if tail.isdigit() else 0


def _number_taken(owner_id: int, client_id: int, invoice_number: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Invoice.id).filter(
        Invoice.user_id == owner_id,
        Invoice.client_id == client_id,
        Invoice.invoice_number == invoice_number,
    )
    if exclude_id is not None:
        query = query.filter(Invoice.id != exclude_id)
    return query.first() is not None


def next_invoice_number(owner_id: int, client_id: int, year: int | None = None) -> str:
    """Next "{year}/{seq:03}" for invoices the owner creates for this client."""
    year = year or utcnow().year
    start, end = year_bounds(year)

    this_year = db.session.query(Invoice).filter(
        Invoice.user_id == owner_id,
        Invoice.client_id == client_id,
        Invoice.created_at >= start,
        Invoice.created_at < end,
    )
    count = this_year.count()
    candidate = format_invoice_number(year, count + 1)
    if not _number_taken(owner_id, client_id, candidate):
        return candidate

    # A deleted invoice left a gap; continue after the highest sequence used
    used = [_sequence_of(n, year) for (n,) in this_year.with_entities(Invoice.invoice_number)]
    return format_invoice_number(year, max(used + [count]) + 1)


# =============================================================================
# Items
# =============================================================================

def validate_item(payload: dict, *, partial: bool = False) -> dict:
    return validate_payload(model=InvoiceItem, payload=payload, policy=ITEM_POLICY, partial=partial)


def validate_items(items) -> list[dict]:
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list")
    rows = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        rows.append(validate_item(item))
    return rows


def calculate_items_total(items) -> Decimal:
    """
    Sum of amount * quantity; accepts validated dicts or InvoiceItem rows.

    Raises ValidationError when the total would not fit the amount column.
    """
    total = Decimal("0")
    for item in items:
        if isinstance(item, dict):
            total += Decimal(item["amount"]) * Decimal(item["quantity"])
        else:
            total += item.line_total
        if total > MAX_INVOICE_AMOUNT:
            raise ValidationError("invoice amount is too large")
    return total


def _recalculate(invoice: Invoice) -> Decimal:
    db.session.flush()
    items = db.session.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice.id).all()
    total = calculate_items_total(items)
    invoice.amount = total
    invoice.updated_at = utcnow()
    db.session.flush()
    return total


def recalculate_amount(invoice_id: int, owner_id: int) -> Decimal:
    """Re-sum an owned invoice's items and persist the result."""
    with atomic():
        invoice = get_owned_or_404(Invoice, invoice_id, owner_id, for_update=True)
        total = _recalculate(invoice)
    logger.info("Recalculated invoice id=%s amount=%s", invoice_id, total)
    return total


def add_invoice_item(invoice_id: int, owner_id: int, payload: dict) -> tuple[InvoiceItem, Invoice]:
    row = validate_item(payload)
    with atomic():
        invoice = get_owned_or_404(Invoice, invoice_id, owner_id, for_update=True)
        item = InvoiceItem(invoice_id=invoice.id, **row)
        db.session.add(item)
        _recalculate(invoice)
    return item, invoice


def update_invoice_item(invoice_id: int, item_id: int, owner_id: int, payload: dict) -> tuple[InvoiceItem, Invoice]:
    patch = validate_item(payload, partial=True)
    for key in ("name", "amount", "quantity"):
        if key in patch and patch[key] in (None, ""):
            raise ValidationError(f"{key} cannot be blank")

    with atomic():
        invoice = get_owned_or_404(Invoice, invoice_id, owner_id, for_update=True)
        item = _get_item_or_404(invoice.id, item_id)
        for key, value in patch.items():
            setattr(item, key, value)
        _recalculate(invoice)
    return item, invoice


def remove_invoice_item(invoice_id: int, item_id: int, owner_id: int) -> Invoice:
    with atomic():
        invoice = get_owned_or_404(Invoice, invoice_id, owner_id, for_update=True)
        item = _get_item_or_404(invoice.id, item_id)
        db.session.delete(item)
        _recalculate(invoice)
    return invoice


def _get_item_or_404(invoice_pk: int, item_id: int) -> InvoiceItem:
    item = (
        db.session.query(InvoiceItem)
        .filter(InvoiceItem.id == item_id, InvoiceItem.invoice_id == invoice_pk)
        .first()
    )
    if item is None:
        raise NotFoundError("Invoice item not found")
    return item


# =============================================================================
# Invoices
# =============================================================================

def _money_or_zero(value, field: str) -> Decimal:
    if value is None:
        return Decimal("0")
    return parse_decimal(value, field, places=4)


def create_invoice(
    owner_id: int,
    *,
    client_id: int,
    company_id: int,
    currency: str,
    description: str = "",
    due_date=None,
    invoice_date=None,
    discount=None,
    tax=None,
    balance=None,
    items=(),
    invoice_number: str | None = None,
    billing_reason=BillingReason.MANUAL,
) -> tuple[Invoice, list[InvoiceItem]]:
    """
    Create a Draft invoice with its items in one transaction.

    Raises:
        ValidationError: bad item or header values
        NotFoundError: client or company missing or owned by someone else
        DuplicateInvoiceNumberError: number already used for this client
    """
    if not isinstance(currency, str) or not currency.strip():
        raise ValidationError("currency is required")
    currency = currency.strip()
    rows = validate_items(items)
    reason = from_label(BillingReason, billing_reason)
    header = {
        "description": (description or "").strip(),
        "due_date": due_date,
        "invoice_date": invoice_date,
        "discount": _money_or_zero(discount, "discount"),
        "tax": _money_or_zero(tax, "tax"),
        "balance": _money_or_zero(balance, "balance"),
    }

    get_owned_or_404(Client, client_id, owner_id)
    get_owned_or_404(Company, company_id, owner_id)

    amount = calculate_items_total(rows)
    supplied_number = (invoice_number or "").strip() or None

    def _insert():
        now = utcnow()
        number = supplied_number or next_invoice_number(owner_id, client_id, now.year)
        try:
            with atomic():
                invoice = Invoice(
                    invoice_id=str(uuid.uuid4()),
                    user_id=owner_id,
                    client_id=client_id,
                    company_id=company_id,
                    invoice_number=number,
                    currency=currency,
                    status=InvoiceStatus.DRAFT,
                    billing_reason=reason,
                    amount=amount,
                    created_at=now,
                    updated_at=now,
                    **header,
                )
                db.session.add(invoice)
                db.session.flush()

                created = [InvoiceItem(invoice_id=invoice.id, **row) for row in rows]
                db.session.add_all(created)
        except IntegrityError:
            if _number_taken(owner_id, client_id, number):
                raise DuplicateInvoiceNumberError(number)
            logger.exception("Unexpected integrity error inserting invoice for user id=%s", owner_id)
            raise InternalError("Unexpected error when trying to insert invoice")
        return invoice, created

    if supplied_number is None:
        invoice, created = run_with_retry(
            _insert,
            attempts=NUMBER_ATTEMPTS,
            backoff_base=0.05,
            retry_on=(DuplicateInvoiceNumberError,),
        )
    else:
        invoice, created = _insert()

    logger.info(
        "Created invoice %s (id=%s) for user id=%s with %d items",
        invoice.invoice_number, invoice.id, owner_id, len(created),
    )
    return invoice, created


def create_invoice_from_payload(owner_id: int, payload: dict) -> tuple[Invoice, list[InvoiceItem]]:
    """Validate a JSON body ({...header, items: [...]}) and create the invoice."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    body = dict(payload)
    items = body.pop("items", [])
    header = validate_payload(model=Invoice, payload=body, policy=INVOICE_CREATE_POLICY, partial=False)
    return create_invoice(owner_id, items=items, **header)


def get_invoice(invoice_id: int, owner_id: int) -> tuple[Invoice, list[InvoiceItem]]:
    invoice = get_owned_or_404(Invoice, invoice_id, owner_id)
    items = (
        db.session.query(InvoiceItem)
        .filter(InvoiceItem.invoice_id == invoice.id)
        .order_by(InvoiceItem.id.asc())
        .all()
    )
    return invoice, items


def list_invoices(owner_id: int, *, page=None, per_page=None, q=None, client_id=None, status=None) -> dict:
    query = owned_query(Invoice, owner_id)
    if q and q.strip():
        query = query.filter(Invoice.invoice_number.ilike(f"{escape_like(q.strip())}%", escape="\\"))
    if client_id is not None:
        query = query.filter(Invoice.client_id == client_id)
    if status:
        query = query.filter(Invoice.status == from_label(InvoiceStatus, status))
    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return paginate(query, page, per_page)


def update_invoice(invoice_id: int, owner_id: int, changes: dict) -> Invoice:
    """
    Partial, owner-filtered update of header fields.

    A changed client_id/company_id must point at a row the owner holds.
    """
    patch = validate_payload(model=Invoice, payload=changes, policy=INVOICE_UPDATE_POLICY, partial=True)
    for key in ("invoice_number", "currency"):
        if patch.get(key) == "":
            raise ValidationError(f"{key} cannot be blank")

    if "client_id" in patch:
        get_owned_or_404(Client, patch["client_id"], owner_id)
    if "company_id" in patch:
        get_owned_or_404(Company, patch["company_id"], owner_id)

    try:
        with atomic():
            invoice = update_owned(Invoice, invoice_id, owner_id, patch)
    except IntegrityError:
        current = get_owned_or_404(Invoice, invoice_id, owner_id)
        number = patch.get("invoice_number") or current.invoice_number
        client_id = patch.get("client_id") or current.client_id
        if _number_taken(owner_id, client_id, number, exclude_id=current.id):
            raise DuplicateInvoiceNumberError(number)
        logger.exception("Unexpected integrity error updating invoice id=%s", invoice_id)
        raise InternalError("Unexpected error when trying to update invoice")
    return invoice


def delete_invoice(invoice_id: int, owner_id: int) -> bool:
    """Delete an owned invoice together with its items. False if nothing matched."""
    owned = select(Invoice.id).where(Invoice.id == invoice_id, Invoice.user_id == owner_id)
    with atomic():
        db.session.execute(
            delete(InvoiceItem)
            .where(InvoiceItem.invoice_id.in_(owned))
            .execution_options(synchronize_session="fetch")
        )
        removed = delete_owned(Invoice, invoice_id, owner_id)
    if removed:
        logger.info("Deleted invoice id=%s for user id=%s", invoice_id, owner_id)
    return removed > 0
