"""
Chart of Accounts and Tax Obligation Models
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.organization import Organization


class Account(Base, UUIDMixin, TimestampMixin):
    """
    Ledger account with its current balance.

    type holds one of asset, liability, equity, revenue, expense. Balance
    sheet ratios are projected from the asset, liability and equity totals.
    """

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False)

    balance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="accounts",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_accounts_org_code"),
    )


class TaxObligation(Base, UUIDMixin, TimestampMixin):
    """A tax amount due (VAT, PAYE, income tax, turnover tax)."""

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    tax_type: Mapped[str] = mapped_column(String(30), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    penalty_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        Index("ix_tax_obligations_org_due_date", "organization_id", "due_date"),
    )
