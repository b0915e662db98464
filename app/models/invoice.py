"""
Invoice and Payment Models
Sales invoices and the payments received against them.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base, TimestampMixin, UUIDMixin


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Sales invoice.

    Revenue analytics use total_amount by issue_date; receivables use
    total_amount less paid_amount.
    """

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    vat_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    paid_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.DRAFT.value,
    )

    __table_args__ = (
        Index("ix_invoices_org_issue_date", "organization_id", "issue_date"),
        Index("ix_invoices_customer_id", "customer_id"),
    )


class Payment(Base, UUIDMixin, TimestampMixin):
    """Payment received from a customer, optionally linked to an invoice."""

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    payment_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment_method: Mapped[str] = mapped_column(String(30), nullable=False, default="bank_transfer")

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.COMPLETED.value,
    )

    __table_args__ = (
        Index("ix_payments_org_payment_date", "organization_id", "payment_date"),
    )
