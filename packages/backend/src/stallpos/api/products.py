"""Product catalog API routes.

Learn: Catalog reads go through the dataset cache under three names:
- "all_products"       → GET /products
- "available_products" → GET /products?available_only=true (the counter's view)
- "products"           → GET /products/menu (grouped by category)

Every catalog write invalidates all three through the EventNotifier.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stallpos.api.deps import get_cache, get_notifier
from stallpos.auth.dependencies import CurrentIdentity, get_current_user, require_role
from stallpos.db.engine import get_db
from stallpos.events.notifier import (
    ALL_PRODUCTS,
    AVAILABLE_PRODUCTS,
    PRODUCTS,
    EventNotifier,
)
from stallpos.realtime.cache import DatasetCache
from stallpos.schemas.product import (
    AvailabilityChange,
    MenuCategory,
    ProductCreate,
    ProductRead,
    ProductUpdate,
)
from stallpos.services.product_service import ProductNotFoundError, ProductService

router = APIRouter()

_admin = require_role("admin")


def _svc(db: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(db)


def _dump(product) -> dict:
    return ProductRead.model_validate(product).model_dump(mode="json")


# ─── Read ───────────────────────────────────────────────

@router.get("/products", response_model=list[ProductRead])
async def list_products(
    available_only: bool = Query(False),
    svc: ProductService = Depends(_svc),
    cache: DatasetCache = Depends(get_cache),
    _: CurrentIdentity = Depends(get_current_user),
):
    async def load():
        return [_dump(p) for p in await svc.list_products(available_only=available_only)]

    key = AVAILABLE_PRODUCTS if available_only else ALL_PRODUCTS
    return await cache.get_or_compute(key, load)


@router.get("/products/menu", response_model=list[MenuCategory])
async def menu(
    svc: ProductService = Depends(_svc),
    cache: DatasetCache = Depends(get_cache),
    _: CurrentIdentity = Depends(get_current_user),
):
    async def load():
        grouped = await svc.menu()
        return [
            {"category": category, "products": [_dump(p) for p in products]}
            for category, products in grouped.items()
        ]

    return await cache.get_or_compute(PRODUCTS, load)


@router.get("/products/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: str,
    svc: ProductService = Depends(_svc),
    _: CurrentIdentity = Depends(get_current_user),
):
    product = await svc.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# ─── Write (admin) ──────────────────────────────────────

@router.post("/products", response_model=ProductRead, status_code=201)
async def create_product(
    body: ProductCreate,
    svc: ProductService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(_admin),
):
    product = await svc.create_product(**body.model_dump())
    payload = _dump(product)
    notifier.notify_product_created(payload)
    return payload


@router.patch("/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    body: ProductUpdate,
    svc: ProductService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(_admin),
):
    try:
        product = await svc.update_product(product_id, body.model_dump(exclude_unset=True))
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    payload = _dump(product)
    notifier.notify_product_updated(payload)
    return payload


@router.patch("/products/{product_id}/availability", response_model=ProductRead)
async def set_availability(
    product_id: str,
    body: AvailabilityChange,
    svc: ProductService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(_admin),
):
    try:
        product = await svc.set_availability(product_id, body.is_available)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    notifier.notify_product_availability_changed(product_id, body.is_available)
    return product


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    svc: ProductService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(_admin),
):
    try:
        await svc.delete_product(product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    notifier.notify_product_deleted(product_id)
