"""SQLAlchemy ORM models.

Models represent database tables:
- stores: Sellers, unique by name, active when a payment account is linked
- products: Items belonging to exactly one store
"""

from app.models.store import Store
from app.models.product import Product

__all__ = ["Store", "Product"]
