"""
Organization Model
The tenant boundary. Every ledger record belongs to one organization.
"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.account import Account
    from app.models.customer import Customer


class Organization(Base, UUIDMixin, TimestampMixin):
    """
    Organization (tenant).

    Attributes:
        id: Unique identifier (UUID)
        name: Business name
        industry: Sector used for ratio benchmarking (retail, manufacturing, services)
        currency: ISO currency code for amounts
    """

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    industry: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="services",
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="ZMW",
    )

    customers: Mapped[list["Customer"]] = relationship(
        "Customer",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    accounts: Mapped[list["Account"]] = relationship(
        "Account",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"
