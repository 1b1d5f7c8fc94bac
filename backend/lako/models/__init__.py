from .auth import User, Email
from .directory import Client, Company
from .invoices import Invoice, InvoiceItem

__all__ = [
    'User', 'Email',
    'Client', 'Company',
    'Invoice', 'InvoiceItem',
]
