# Overview: Closed enumerations stored as SMALLINT with frozen integer codes.

"""
Integer codes are a storage contract, not ordinals. Reordering members of
an enum class must never change what is written to the database, so every
enum carries an explicit code table and CodedEnum refuses to persist or
load anything outside it.
"""

from __future__ import annotations

import enum

from sqlalchemy import SmallInteger
from sqlalchemy.types import TypeDecorator

from .errors import ValidationError


class Role(enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    SUPERUSER = "superuser"


class InvoiceStatus(enum.Enum):
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    UNCOLLECTIBLE = "uncollectible"
    VOID = "void"


class BillingReason(enum.Enum):
    MANUAL = "manual"
    CONTRACT_CYCLE = "contract_cycle"


ROLE_CODES = {
    Role.CUSTOMER: 0,
    Role.STAFF: 1,
    Role.SUPERUSER: 2,
}

INVOICE_STATUS_CODES = {
    InvoiceStatus.DRAFT: 0,
    InvoiceStatus.OPEN: 1,
    InvoiceStatus.PAID: 2,
    InvoiceStatus.UNCOLLECTIBLE: 3,
    InvoiceStatus.VOID: 4,
}

BILLING_REASON_CODES = {
    BillingReason.MANUAL: 0,
    BillingReason.CONTRACT_CYCLE: 1,
}

CODE_TABLES = {
    Role: ROLE_CODES,
    InvoiceStatus: INVOICE_STATUS_CODES,
    BillingReason: BILLING_REASON_CODES,
}


def to_code(member: enum.Enum) -> int:
    return CODE_TABLES[type(member)][member]


def from_code(enum_cls: type[enum.Enum], code: int) -> enum.Enum:
    for member, value in CODE_TABLES[enum_cls].items():
        if value == code:
            return member
    raise ValueError(f"Unrecognized {enum_cls.__name__} code: {code}")


def from_label(enum_cls: type[enum.Enum], label) -> enum.Enum:
    """Parse a client-supplied label ("draft", "contract_cycle", ...)."""
    if isinstance(label, enum_cls):
        return label
    if isinstance(label, str):
        try:
            return enum_cls(label.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"Invalid {enum_cls.__name__} '{label}'. Must be one of: {allowed}")


class CodedEnum(TypeDecorator):
    """Persist an Enum member through its frozen integer code."""

    impl = SmallInteger
    cache_ok = True

    def __init__(self, enum_cls: type[enum.Enum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_cls = enum_cls

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, self.enum_cls):
            value = from_label(self.enum_cls, value)
        return CODE_TABLES[self.enum_cls][value]

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_code(self.enum_cls, int(value))
