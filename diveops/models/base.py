"""
Base models with common fields for all entities.
Includes multi-tenant support via DiveCenterBase.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, declared_attr

# SQLite only autoincrements INTEGER primary keys
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """Mixin adding created_at and updated_at timestamps."""

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


class DiveCenterBase(Base, TimestampMixin):
    """
    Base class for all dive-center-scoped models.
    Every row belongs to a specific dive center for data isolation.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    @declared_attr
    def dive_center_id(cls) -> Mapped[int]:
        return mapped_column(
            BigInteger,
            ForeignKey("dive_centers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
