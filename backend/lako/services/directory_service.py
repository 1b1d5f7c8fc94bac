# Overview: Service-layer operations for clients and companies; owner-scoped CRUD.

"""
Client/Company Directories

Both collections are strictly owned by one user. Creates stamp user_id from
the authenticated caller, and every other operation goes through the
owner-filtered helpers in ownership.py.

Listing returns {total_pages, results}: newest first, optional case-insensitive
prefix search on name, per_page capped at MAX_PER_PAGE whatever the caller asks.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..extensions import db
from ..models import Client, Company, Invoice
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import atomic
from .ownership import delete_owned, get_owned_or_404, owned_query, update_owned
from .pagination import escape_like, paginate

ADDRESS_FIELDS = {"address_1", "address_2", "city", "state", "zip_code", "country"}

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "company_name", "website", "notes"} | ADDRESS_FIELDS,
    required_on_create={"name", "email"},
    email_fields={"email"},
)

COMPANY_POLICY = ModelValidationPolicy(
    writable_fields={"name"} | ADDRESS_FIELDS,
    required_on_create={"name"},
)


def _list_owned(model, owner_id: int, *, page, per_page, q) -> dict:
    query = owned_query(model, owner_id)
    if q and q.strip():
        query = query.filter(model.name.ilike(f"{escape_like(q.strip())}%", escape="\\"))
    query = query.order_by(model.created_at.desc(), model.id.desc())
    return paginate(query, page, per_page)


def _create_owned(model, policy: ModelValidationPolicy, owner_id: int, payload: dict):
    patch = validate_payload(model=model, payload=payload, policy=policy, partial=False)
    with atomic():
        obj = model(user_id=owner_id, **patch)
        db.session.add(obj)
    return obj


def _update_owned(model, policy: ModelValidationPolicy, resource_id: int, owner_id: int, payload: dict):
    patch = validate_payload(model=model, payload=payload, policy=policy, partial=True)
    with atomic():
        obj = update_owned(model, resource_id, owner_id, patch)
    return obj


def _delete_owned(model, resource_id: int, owner_id: int, referenced_by) -> bool:
    try:
        with atomic():
            in_use = (
                db.session.query(Invoice.id)
                .filter(Invoice.user_id == owner_id, referenced_by == resource_id)
                .first()
            )
            if in_use:
                raise ConflictError(f"{model.__name__} is referenced by invoices")
            removed = delete_owned(model, resource_id, owner_id)
    except IntegrityError:
        raise ConflictError(f"{model.__name__} is referenced by invoices")
    return removed > 0


# =============================================================================
# Clients
# =============================================================================

def create_client(owner_id: int, payload: dict) -> Client:
    return _create_owned(Client, CLIENT_POLICY, owner_id, payload)


def get_client(client_id: int, owner_id: int) -> Client:
    return get_owned_or_404(Client, client_id, owner_id)


def list_clients(owner_id: int, *, page=None, per_page=None, q=None) -> dict:
    return _list_owned(Client, owner_id, page=page, per_page=per_page, q=q)


def update_client(client_id: int, owner_id: int, payload: dict) -> Client:
    return _update_owned(Client, CLIENT_POLICY, client_id, owner_id, payload)


def delete_client(client_id: int, owner_id: int) -> bool:
    return _delete_owned(Client, client_id, owner_id, Invoice.client_id)


# =============================================================================
# Companies
# =============================================================================

def create_company(owner_id: int, payload: dict) -> Company:
    return _create_owned(Company, COMPANY_POLICY, owner_id, payload)


def get_company(company_id: int, owner_id: int) -> Company:
    return get_owned_or_404(Company, company_id, owner_id)


def list_companies(owner_id: int, *, page=None, per_page=None, q=None) -> dict:
    return _list_owned(Company, owner_id, page=page, per_page=per_page, q=q)


def update_company(company_id: int, owner_id: int, payload: dict) -> Company:
    return _update_owned(Company, COMPANY_POLICY, company_id, owner_id, payload)


def delete_company(company_id: int, owner_id: int) -> bool:
    return _delete_owned(Company, company_id, owner_id, Invoice.company_id)
