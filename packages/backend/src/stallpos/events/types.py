"""Domain event types.

Learn: Centralizing event names as constants prevents typos and makes it
easy to discover every event a dashboard can receive. Each name also has a
pydantic model describing its payload, and DomainEvent is the tagged union
of all of them (discriminated on `event`).

Order and product events carry the entity itself, flattened into the
payload, because that is what dashboards render directly. Their models
allow extra fields for that reason.

Every payload has a server-side `timestamp` stamped when the event is
emitted. It is for display only — clients must not use it to order or
reconcile updates.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# ─── Orders ──────────────────────────────────────────────

ORDER_PLACED = "orderPlaced"
ORDER_UPDATED = "orderUpdated"
ORDER_STATUS_UPDATED = "orderStatusUpdated"
ITEM_PREPARATION_UPDATED = "itemPreparationUpdated"
ORDER_DELETED = "orderDeleted"

# ─── Products ────────────────────────────────────────────

PRODUCT_CREATED = "productCreated"
PRODUCT_UPDATED = "productUpdated"
PRODUCT_DELETED = "productDeleted"
PRODUCT_AVAILABILITY_CHANGED = "productAvailabilityChanged"

# ─── System ──────────────────────────────────────────────

SYSTEM_MESSAGE = "systemMessage"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=utcnow)

    def wire_data(self) -> dict[str, Any]:
        """Payload as sent to clients (camelCase keys, JSON-safe values)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"event"})


class _EntityEvent(_Event):
    """Event whose payload is an order or product record plus a timestamp."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str


class OrderPlaced(_EntityEvent):
    event: Literal["orderPlaced"] = ORDER_PLACED


class OrderUpdated(_EntityEvent):
    event: Literal["orderUpdated"] = ORDER_UPDATED


class OrderStatusUpdated(_Event):
    event: Literal["orderStatusUpdated"] = ORDER_STATUS_UPDATED
    order_id: str = Field(alias="orderId")
    status: str
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    order: Optional[dict[str, Any]] = None


class ItemPreparationUpdated(_Event):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event: Literal["itemPreparationUpdated"] = ITEM_PREPARATION_UPDATED
    order_id: str = Field(alias="orderId")
    item_id: str = Field(alias="itemId")
    prepared_quantity: Optional[int] = None
    is_prepared: Optional[bool] = None
    total_quantity: Optional[int] = None


class OrderDeleted(_Event):
    event: Literal["orderDeleted"] = ORDER_DELETED
    order_id: str = Field(alias="orderId")


class ProductCreated(_EntityEvent):
    event: Literal["productCreated"] = PRODUCT_CREATED


class ProductUpdated(_EntityEvent):
    event: Literal["productUpdated"] = PRODUCT_UPDATED


class ProductDeleted(_Event):
    event: Literal["productDeleted"] = PRODUCT_DELETED
    product_id: str = Field(alias="productId")


class ProductAvailabilityChanged(_Event):
    event: Literal["productAvailabilityChanged"] = PRODUCT_AVAILABILITY_CHANGED
    product_id: str = Field(alias="productId")
    is_available: bool = Field(alias="isAvailable")


class SystemMessage(_Event):
    event: Literal["systemMessage"] = SYSTEM_MESSAGE
    message: str
    level: str = Field(default="info", alias="type")


DomainEvent = Annotated[
    Union[
        OrderPlaced,
        OrderUpdated,
        OrderStatusUpdated,
        ItemPreparationUpdated,
        OrderDeleted,
        ProductCreated,
        ProductUpdated,
        ProductDeleted,
        ProductAvailabilityChanged,
        SystemMessage,
    ],
    Field(discriminator="event"),
]

domain_event_adapter: TypeAdapter = TypeAdapter(DomainEvent)


def parse_event(event: str, data: Any) -> DomainEvent:
    """Validate a raw (event, data) pair into its typed model.

    Raises pydantic.ValidationError for unknown names or malformed payloads.
    """
    body = dict(data) if isinstance(data, dict) else {}
    body["event"] = event
    return domain_event_adapter.validate_python(body)
