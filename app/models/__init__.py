"""
Models Package
SQLAlchemy ORM models for the ledger the analytics read from.
"""

from app.models.organization import Organization
from app.models.customer import Customer
from app.models.invoice import Invoice, InvoiceStatus, Payment, PaymentStatus
from app.models.expense import COUNTED_EXPENSE_STATUSES, Expense, ExpenseStatus
from app.models.account import Account, TaxObligation

__all__ = [
    "Organization",
    "Customer",
    "Invoice",
    "InvoiceStatus",
    "Payment",
    "PaymentStatus",
    "Expense",
    "ExpenseStatus",
    "COUNTED_EXPENSE_STATUSES",
    "Account",
    "TaxObligation",
]
