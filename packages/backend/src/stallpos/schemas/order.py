"""Pydantic schemas for orders and order items.

Learn: Separate schemas for create/update/read keeps the API clean.
- OrderCreate: what the counter POSTs
- StatusChange: dedicated schema for status transitions (validated by state machine)
- PreparationChange: kitchen progress on a single line item
- OrderRead: what the API returns and what realtime events carry
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

STATUS_PATTERN = r"^(pending|preparing|ready|delivered|cancelled)$"


# ─── Create ──────────────────────────────────────────────

class OrderItemCreate(BaseModel):
    product_id: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)


class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_id: Optional[str] = None
    order_type: str = Field(default="takeaway", pattern=r"^(takeaway|dine-in|delivery)$")
    items: list[OrderItemCreate] = Field(..., min_length=1)


# ─── Mutations ───────────────────────────────────────────

class OrderUpdate(BaseModel):
    """Partial update — only non-None fields are applied."""
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_id: Optional[str] = None
    order_type: Optional[str] = Field(None, pattern=r"^(takeaway|dine-in|delivery)$")


class StatusChange(BaseModel):
    """Request to change order status. Validated by the state machine."""
    status: str = Field(..., pattern=STATUS_PATTERN)


class PreparationChange(BaseModel):
    prepared_quantity: int = Field(..., ge=0)


# ─── Read ────────────────────────────────────────────────

class OrderItemRead(BaseModel):
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    total_price: float
    prepared_quantity: int
    is_prepared: bool

    model_config = {"from_attributes": True}


class OrderRead(BaseModel):
    id: str
    custom_order_id: str
    customer_name: str
    customer_id: Optional[str]
    order_type: str
    status: str
    total_amount: float
    items_count: int
    created_by: Optional[str]
    updated_by: Optional[str]
    delivered_by: Optional[str]
    delivered_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemRead] = []

    model_config = {"from_attributes": True}


class PreparationRead(BaseModel):
    """Result of a preparation update — also the itemPreparationUpdated payload."""
    id: str
    prepared_quantity: int
    is_prepared: bool
    total_quantity: int


class OrderStats(BaseModel):
    total: int
    by_status: dict[str, int]
    today: int
    delivered_revenue: float
