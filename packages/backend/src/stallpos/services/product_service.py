"""Product service — the menu catalog.

Learn: Reads here are what the dataset cache fronts (the menu barely
changes during a shift); writes are what trigger the product* events.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stallpos.db.models import Product

logger = structlog.get_logger()


class ProductNotFoundError(Exception):
    """Raised when a product id doesn't exist."""
    pass


class ProductService:
    """Business logic for catalog management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_products(self, available_only: bool = False) -> list[Product]:
        query = select(Product).order_by(Product.category, Product.name)
        if available_only:
            query = query.where(Product.is_available.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def menu(self) -> dict[str, list[Product]]:
        """Available products grouped by category, categories in name order."""
        grouped: dict[str, list[Product]] = defaultdict(list)
        for product in await self.list_products(available_only=True):
            grouped[product.category].append(product)
        return dict(grouped)

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def _require_product(self, product_id: str) -> Product:
        product = await self.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        return product

    async def create_product(
        self,
        name: str,
        price: float,
        category: str = "general",
        description: str = "",
        image_url: Optional[str] = None,
        is_available: bool = True,
    ) -> Product:
        product = Product(
            name=name,
            price=Decimal(str(price)),
            category=category,
            description=description,
            image_url=image_url,
            is_available=is_available,
        )
        self.db.add(product)
        await self.db.commit()
        logger.info("products.created", product_id=product.id, name=name)
        return product

    async def update_product(self, product_id: str, changes: dict) -> Product:
        """Apply a partial update. Unknown keys are ignored.

        None leaves a required column as it was; only image_url can be
        cleared.
        """
        product = await self._require_product(product_id)
        for field in ("name", "category", "description", "is_available"):
            if changes.get(field) is not None:
                setattr(product, field, changes[field])
        if "image_url" in changes:
            product.image_url = changes["image_url"]
        if changes.get("price") is not None:
            product.price = Decimal(str(changes["price"]))
        await self.db.commit()
        logger.info("products.updated", product_id=product_id, fields=sorted(changes))
        return product

    async def set_availability(self, product_id: str, is_available: bool) -> Product:
        product = await self._require_product(product_id)
        product.is_available = is_available
        await self.db.commit()
        logger.info(
            "products.availability_changed",
            product_id=product_id,
            is_available=is_available,
        )
        return product

    async def delete_product(self, product_id: str) -> None:
        product = await self._require_product(product_id)
        await self.db.delete(product)
        await self.db.commit()
        logger.info("products.deleted", product_id=product_id)
