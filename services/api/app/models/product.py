"""Product model.

Only a product's existence and store association matter to the catalog:
products are counted per store and deleted together with their store.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.stores.postgres import Base


class Product(Base):
    """Product listed by a store."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(191))

    # Relations
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} (store {self.store_id})>"
