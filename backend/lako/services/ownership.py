# Overview: Owner-scoped query, update and delete helpers.

"""
Ownership Scoping

SECURITY INVARIANTS:
1. Every Client/Company/Invoice row has exactly one owning user_id
2. Reads, updates and deletes carry `user_id = owner` in the same SQL
   statement as the primary-key match (no fetch-then-compare)
3. A row owned by someone else is indistinguishable from a missing row:
   both surface as NotFoundError

USAGE:
    client = get_owned_or_404(Client, client_id, g.current_user_id)
    updated = update_owned(Client, client_id, owner_id, {"name": "ACME"})
    removed = delete_owned(Client, client_id, owner_id)
"""

from __future__ import annotations

from sqlalchemy import delete, update

from ..errors import NotFoundError
from ..extensions import db
from ..time_utils import utcnow


def authorize_owner(resource_user_id: int | None, current_user_id: int | None) -> bool:
    """Plain ownership predicate for objects that are already loaded."""
    return resource_user_id is not None and resource_user_id == current_user_id


def owned_query(model, owner_id: int):
    """Base query for `model` restricted to rows owned by owner_id."""
    return db.session.query(model).filter(model.user_id == owner_id)


def get_owned_or_404(model, resource_id: int, owner_id: int, *, for_update: bool = False):
    query = owned_query(model, owner_id).filter(model.id == resource_id)
    if for_update:
        query = query.with_for_update()
    obj = query.first()
    if obj is None:
        raise NotFoundError(f"{model.__name__} not found")
    return obj


def update_owned(model, resource_id: int, owner_id: int, values: dict):
    """
    Apply `values` with a single owner-filtered UPDATE and return the fresh row.

    The ownership check and the write are the same statement, so a stray id
    can never touch (or reveal) another user's row. user_id is never written.
    """
    values = {k: v for k, v in values.items() if k not in {"id", "user_id"}}
    if not values:
        return get_owned_or_404(model, resource_id, owner_id)

    if "updated_at" in model.__mapper__.columns and "updated_at" not in values:
        values["updated_at"] = utcnow()

    stmt = (
        update(model)
        .where(model.id == resource_id, model.user_id == owner_id)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError(f"{model.__name__} not found")

    obj = get_owned_or_404(model, resource_id, owner_id)
    db.session.refresh(obj)
    return obj


def delete_owned(model, resource_id: int, owner_id: int) -> int:
    """Owner-filtered DELETE; returns the number of rows removed (0 or 1)."""
    stmt = (
        delete(model)
        .where(model.id == resource_id, model.user_id == owner_id)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    return result.rowcount or 0
