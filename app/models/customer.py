"""
Customer Model
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.organization import Organization


class Customer(Base, UUIDMixin, TimestampMixin):
    """
    A customer invoiced by the organization.

    Attributes:
        organization_id: Owning organization (tenant)
        name: Display name
        email: Contact email
        payment_terms: Agreed days to pay
        is_active: Inactive customers are excluded from analytics
    """

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    payment_terms: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="customers",
    )

    __table_args__ = (
        Index("ix_customers_organization_id", "organization_id"),
    )
