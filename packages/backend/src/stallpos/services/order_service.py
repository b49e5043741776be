"""Order service — business logic for orders with an enforced status machine.

Learn: Every status change is:
1. Validated against VALID_TRANSITIONS (can't skip or go back)
2. Applied to the order row (with who did it, and delivery bookkeeping)
3. Committed

Only then does the route handler tell the EventNotifier. The notifier
trusts that whatever it is told has already happened.

The state machine:
  pending → preparing → ready → delivered
  pending / preparing → cancelled
"""

import random
import string
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stallpos.db.models import Order, OrderItem

logger = structlog.get_logger()


# ═══════════════════════════════════════════════════════════
# State Machine
# ═══════════════════════════════════════════════════════════

VALID_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"preparing", "cancelled"},
    "preparing": {"ready", "cancelled"},
    "ready": {"delivered"},
    "delivered": set(),  # terminal state
    "cancelled": set(),  # terminal state
}

ORDER_STATUSES = tuple(VALID_TRANSITIONS)

MAX_ORDER_ID_ATTEMPTS = 10


class OrderNotFoundError(Exception):
    """Raised when an order (or one of its items) doesn't exist."""
    pass


class InvalidTransitionError(Exception):
    """Raised when a status transition is not allowed."""
    pass


class InvalidPreparationError(Exception):
    """Raised when a prepared quantity is out of range for its item."""
    pass


def generate_memorable_order_id(now: Optional[datetime] = None) -> str:
    """Short code staff can call out: DDMM-HHMM-XXX (e.g. 2512-1430-ABC)."""
    now = now or datetime.now()
    code = "".join(random.choices(string.ascii_uppercase, k=3))
    return f"{now:%d%m}-{now:%H%M}-{code}"


# ═══════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════


class OrderService:
    """Business logic for order CRUD and state management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Create ──────────────────────────────────────────

    async def create_order(
        self,
        customer_name: str,
        items: list[dict],
        order_type: str = "takeaway",
        customer_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Order:
        """Create an order in 'pending' status with its line items.

        Learn: Prices come from the request (the counter shows the menu it
        was served), so the total is computed here from unit_price × quantity.
        """
        if not customer_name or not items:
            raise ValueError("customer name and at least one item are required")

        order = Order(
            custom_order_id=await self._unique_order_id(),
            customer_name=customer_name,
            customer_id=customer_id or f"CUST{int(time.time() * 1000)}",
            order_type=order_type,
            status="pending",
            created_by=created_by,
            items_count=len(items),
        )
        total = Decimal("0")
        for item in items:
            unit_price = Decimal(str(item["unit_price"]))
            line_total = unit_price * item["quantity"]
            total += line_total
            order.items.append(
                OrderItem(
                    product_id=item["product_id"],
                    product_name=item["product_name"],
                    quantity=item["quantity"],
                    unit_price=unit_price,
                    total_price=line_total,
                    prepared_quantity=0,
                    is_prepared=False,
                )
            )
        order.total_amount = total

        self.db.add(order)
        await self.db.commit()
        logger.info(
            "orders.created",
            order_id=order.id,
            custom_order_id=order.custom_order_id,
            total=str(total),
        )
        return order

    async def _unique_order_id(self) -> str:
        for _ in range(MAX_ORDER_ID_ATTEMPTS):
            candidate = generate_memorable_order_id()
            result = await self.db.execute(
                select(Order.id).where(Order.custom_order_id == candidate).limit(1)
            )
            if result.first() is None:
                return candidate
        logger.warning("orders.memorable_id_exhausted", attempts=MAX_ORDER_ID_ATTEMPTS)
        return f"ORDER{int(time.time() * 1000)}"

    # ─── Read ────────────────────────────────────────────

    async def list_orders(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
    ) -> list[Order]:
        query = select(Order).order_by(Order.created_at.desc())
        if status and status != "all":
            query = query.where(Order.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Order.customer_name.ilike(pattern),
                    Order.custom_order_id.ilike(pattern),
                )
            )
        query = query.limit(limit).offset(offset)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_order(self, order_id: str) -> Optional[Order]:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    async def _require_order(self, order_id: str) -> Order:
        order = await self.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    # ─── Update ──────────────────────────────────────────

    async def update_order(
        self, order_id: str, changes: dict, user_id: Optional[str] = None
    ) -> Order:
        """Edit customer details. Status has its own endpoint and rules."""
        order = await self._require_order(order_id)
        for field in ("customer_name", "customer_id", "order_type"):
            if changes.get(field) is not None:
                setattr(order, field, changes[field])
        order.updated_by = user_id
        await self.db.commit()
        logger.info("orders.updated", order_id=order_id, fields=sorted(changes))
        return order

    # ─── Status transitions ──────────────────────────────

    async def update_status(
        self,
        order_id: str,
        new_status: str,
        user_id: Optional[str] = None,
    ) -> Order:
        """Transition order status. Enforces the state machine."""
        order = await self._require_order(order_id)

        old_status = order.status
        allowed = VALID_TRANSITIONS.get(old_status, set())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from '{old_status}' to '{new_status}'. "
                f"Allowed: {sorted(allowed) or 'none (terminal state)'}"
            )

        order.status = new_status
        order.updated_by = user_id
        if new_status == "delivered":
            order.delivered_by = user_id
            order.delivered_at = datetime.now(timezone.utc)

        await self.db.commit()
        logger.info(
            "orders.status_changed",
            order_id=order_id,
            from_status=old_status,
            to_status=new_status,
            user_id=user_id,
        )
        return order

    # ─── Kitchen progress ────────────────────────────────

    async def update_item_preparation(
        self, order_id: str, item_id: str, prepared_quantity: int
    ) -> dict:
        """Record how many units of a line item are ready.

        Returns {id, prepared_quantity, is_prepared, total_quantity}.
        """
        if prepared_quantity < 0:
            raise InvalidPreparationError("Prepared quantity cannot be negative")

        result = await self.db.execute(
            select(OrderItem).where(
                OrderItem.id == item_id, OrderItem.order_id == order_id
            )
        )
        item = result.scalars().first()
        if item is None:
            raise OrderNotFoundError(f"Order item {item_id} not found in order {order_id}")

        if prepared_quantity > item.quantity:
            raise InvalidPreparationError(
                f"Prepared quantity ({prepared_quantity}) cannot exceed "
                f"total quantity ({item.quantity})"
            )

        item.prepared_quantity = prepared_quantity
        item.is_prepared = prepared_quantity == item.quantity
        await self.db.commit()

        return {
            "id": item.id,
            "prepared_quantity": item.prepared_quantity,
            "is_prepared": item.is_prepared,
            "total_quantity": item.quantity,
        }

    # ─── Delete ──────────────────────────────────────────

    async def delete_order(self, order_id: str) -> None:
        order = await self._require_order(order_id)
        await self.db.delete(order)
        await self.db.commit()
        logger.info("orders.deleted", order_id=order_id)

    # ─── Stats ───────────────────────────────────────────

    async def order_stats(self) -> dict:
        """Counts per status, today's orders, and delivered revenue."""
        rows = await self.db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )
        by_status = {status: 0 for status in ORDER_STATUSES}
        for status, count in rows.all():
            by_status[status] = count

        start_of_day = datetime.now(timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        today = await self.db.scalar(
            select(func.count(Order.id)).where(Order.created_at >= start_of_day)
        )
        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Order.total_amount), 0)).where(
                Order.status == "delivered"
            )
        )
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "today": today or 0,
            "delivered_revenue": float(revenue or 0),
        }
