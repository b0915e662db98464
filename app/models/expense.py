"""
Expense Model
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base, TimestampMixin, UUIDMixin


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


# Only these count as incurred spend
COUNTED_EXPENSE_STATUSES = (ExpenseStatus.APPROVED.value, ExpenseStatus.PAID.value)


class Expense(Base, UUIDMixin, TimestampMixin):
    """
    Business expense.

    Attributes:
        category: Free-text spending category, used for per-category analytics
        is_recurring: Part of a recurring commitment (rent, subscriptions)
        is_tax_deductible: Deductible for income tax purposes
    """

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    expense_date: Mapped[date] = mapped_column(Date, nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False, default="Uncategorized")

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ExpenseStatus.PENDING.value,
    )

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_tax_deductible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    vat_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        Index("ix_expenses_org_expense_date", "organization_id", "expense_date"),
        Index("ix_expenses_org_category", "organization_id", "category"),
    )
