"""SQLAlchemy declarative base and shared mixins."""
from datetime import datetime
from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class CreatedAtMixin:
    """Adds a server-side created_at column. Rows are never updated in place."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


class OwnerMixin:
    """Adds the owning identity's id. Every query filters on it."""
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
