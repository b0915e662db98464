"""
Base Model Module
Declarative base and shared mixins for the ledger tables.
"""

import re
import uuid
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    declared_attr,
    mapped_column,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Table names are derived from the class name:
        Invoice -> invoices
        TaxObligation -> tax_obligations
        Expense -> expenses
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        name = re.sub(r"(?<!^)(?=[A-Z])", "_", cls.__name__).lower()

        if name.endswith(("s", "x", "ch", "sh")):
            return name + "es"
        if name.endswith("y") and name[-2] not in "aeiou":
            return name[:-1] + "ies"
        return name + "s"

    def __repr__(self) -> str:
        attrs = []
        if hasattr(self, "id"):
            attrs.append(f"id={self.id}")
        for attr in ("organization_id", "name", "status"):
            value = getattr(self, attr, None)
            if value is not None:
                attrs.append(f"{attr}={value!r}")
        return f"<{self.__class__.__name__}({', '.join(attrs)})>"


class TimestampMixin:
    """Adds created_at and updated_at, maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UUIDMixin:
    """Adds a UUID primary key."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
