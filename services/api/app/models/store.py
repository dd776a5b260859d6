"""Store model.

Represents a seller owning zero or more products.
Active/inactive status is derived from stripe_account_id (non-null = active).
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.stores.postgres import Base


class Store(Base):
    """Store owned by a single user."""

    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identification (name is globally unique)
    name: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    slug: Mapped[str] = mapped_column(String(100), index=True)
    description: Mapped[str | None] = mapped_column(Text)

    # Owner identifier (resolved upstream, trusted here)
    user_id: Mapped[str] = mapped_column(String(191), index=True)

    # Payment account; presence is the "active" status signal
    stripe_account_id: Mapped[str | None] = mapped_column(String(191))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def is_active(self) -> bool:
        return self.stripe_account_id is not None

    def __repr__(self) -> str:
        return f"<Store {self.name} ({'active' if self.is_active else 'inactive'})>"
