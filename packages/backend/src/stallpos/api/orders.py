"""Order API routes.

Learn: These routes are the HTTP interface to the order state machine.
Each mutating route follows the same three steps:
1. the service validates and commits the change
2. the route serializes the result
3. the route hands it to the EventNotifier, which invalidates the cached
   "orders" dataset and broadcasts to every dashboard

Service errors map to HTTP: not found → 404, illegal transition → 409,
bad quantity → 400.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stallpos.api.deps import get_cache, get_notifier
from stallpos.auth.dependencies import CurrentIdentity, require_role
from stallpos.db.engine import get_db
from stallpos.events.notifier import ORDERS, EventNotifier
from stallpos.realtime.cache import DatasetCache
from stallpos.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderStats,
    OrderUpdate,
    PreparationChange,
    PreparationRead,
    StatusChange,
)
from stallpos.services.order_service import (
    ORDER_STATUSES,
    InvalidPreparationError,
    InvalidTransitionError,
    OrderNotFoundError,
    OrderService,
)

router = APIRouter()

DEFAULT_LIMIT = 50

_staff = require_role("admin", "counter", "delivery")
_counter = require_role("admin", "counter")
_kitchen = require_role("admin", "delivery")
_admin = require_role("admin")


def _svc(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)


def _dump(order) -> dict:
    return OrderRead.model_validate(order).model_dump(mode="json")


# ─── Create ─────────────────────────────────────────────

@router.post("/orders", response_model=OrderRead, status_code=201)
async def create_order(
    body: OrderCreate,
    svc: OrderService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    identity: CurrentIdentity = Depends(_counter),
):
    order = await svc.create_order(
        customer_name=body.customer_name,
        customer_id=body.customer_id,
        order_type=body.order_type,
        items=[item.model_dump() for item in body.items],
        created_by=identity.user_id,
    )
    payload = _dump(order)
    notifier.notify_order_created(payload)
    return payload


# ─── Read ───────────────────────────────────────────────

@router.get("/orders", response_model=list[OrderRead])
async def list_orders(
    status: Optional[str] = Query(None, pattern=r"^(all|pending|preparing|ready|delivered|cancelled)$"),
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=100),
    offset: int = Query(0, ge=0),
    svc: OrderService = Depends(_svc),
    cache: DatasetCache = Depends(get_cache),
    _: CurrentIdentity = Depends(_staff),
):
    """List orders, newest first.

    The default view (no filter, first page) is what every dashboard polls
    on load, so it is served from the "orders" dataset cache.
    """
    is_default_view = (
        status in (None, "all") and not search and limit == DEFAULT_LIMIT and offset == 0
    )
    if is_default_view:
        async def load():
            return [_dump(o) for o in await svc.list_orders(limit=DEFAULT_LIMIT)]

        return await cache.get_or_compute(ORDERS, load)

    orders = await svc.list_orders(status=status, limit=limit, offset=offset, search=search)
    return [_dump(o) for o in orders]


@router.get("/orders/stats/overview", response_model=OrderStats)
async def order_stats(
    svc: OrderService = Depends(_svc),
    _: CurrentIdentity = Depends(_admin),
):
    return await svc.order_stats()


@router.get("/orders/status/{status}", response_model=list[OrderRead])
async def list_orders_by_status(
    status: str,
    limit: int = Query(100, ge=1, le=100),
    svc: OrderService = Depends(_svc),
    _: CurrentIdentity = Depends(_staff),
):
    if status not in ORDER_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    orders = await svc.list_orders(status=status, limit=limit)
    return [_dump(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str,
    svc: OrderService = Depends(_svc),
    _: CurrentIdentity = Depends(_staff),
):
    order = await svc.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# ─── Update ─────────────────────────────────────────────

@router.patch("/orders/{order_id}", response_model=OrderRead)
async def update_order(
    order_id: str,
    body: OrderUpdate,
    svc: OrderService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    identity: CurrentIdentity = Depends(_counter),
):
    try:
        order = await svc.update_order(
            order_id, body.model_dump(exclude_unset=True), user_id=identity.user_id
        )
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    payload = _dump(order)
    notifier.notify_order_updated(payload)
    return payload


@router.patch("/orders/{order_id}/status", response_model=OrderRead)
async def change_status(
    order_id: str,
    body: StatusChange,
    svc: OrderService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    identity: CurrentIdentity = Depends(_kitchen),
):
    """Transition order status. Validated by state machine."""
    try:
        order = await svc.update_status(order_id, body.status, user_id=identity.user_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    payload = _dump(order)
    notifier.notify_order_status_changed(
        order_id, body.status, updated_by=identity.user_id, order=payload
    )
    return payload


@router.patch(
    "/orders/{order_id}/items/{item_id}/preparation",
    response_model=PreparationRead,
)
async def update_item_preparation(
    order_id: str,
    item_id: str,
    body: PreparationChange,
    svc: OrderService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(_kitchen),
):
    try:
        result = await svc.update_item_preparation(order_id, item_id, body.prepared_quantity)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidPreparationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    notifier.notify_item_preparation_updated(order_id, item_id, result)
    return result


# ─── Delete ─────────────────────────────────────────────

@router.delete("/orders/{order_id}", status_code=204)
async def delete_order(
    order_id: str,
    svc: OrderService = Depends(_svc),
    notifier: EventNotifier = Depends(get_notifier),
    _: CurrentIdentity = Depends(_admin),
):
    try:
        await svc.delete_order(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    notifier.notify_order_deleted(order_id)
