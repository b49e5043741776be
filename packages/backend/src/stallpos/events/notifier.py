"""Event notifier — turns domain mutations into cache invalidations + broadcasts.

Learn: This is the only place that knows, for each kind of change, which
wire event to emit and which cached datasets it makes stale. Route
handlers call notify_*() *after* the change has been validated and
committed; the notifier never checks anything itself — it is a fan-out
layer, not a source of truth.

Every notify_*() does, in order:
1. invalidate the cached datasets listed in INVALIDATIONS
2. broadcast the event to every connected client

Events are broadcast globally, not per room. Every dashboard shows badges
for every kind of change, so all roles get all events. Rooms remain
available through the router for targeted sends.

notify_*() never raises: a failed broadcast is logged and swallowed so it
can't turn a successful write into an error response.
"""

from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError

from stallpos.events.types import (
    ITEM_PREPARATION_UPDATED,
    ORDER_DELETED,
    ORDER_PLACED,
    ORDER_STATUS_UPDATED,
    ORDER_UPDATED,
    PRODUCT_AVAILABILITY_CHANGED,
    PRODUCT_CREATED,
    PRODUCT_DELETED,
    PRODUCT_UPDATED,
    SYSTEM_MESSAGE,
    DomainEvent,
    ItemPreparationUpdated,
    OrderDeleted,
    OrderPlaced,
    OrderStatusUpdated,
    OrderUpdated,
    ProductAvailabilityChanged,
    ProductCreated,
    ProductDeleted,
    ProductUpdated,
    SystemMessage,
    parse_event,
    utcnow,
)
from stallpos.realtime.broadcast import BroadcastRouter
from stallpos.realtime.cache import DatasetCache
from stallpos.realtime.registry import ClientIdentity, ConnectionRegistry, RegistryStats
from stallpos.realtime.transport import Transport

logger = structlog.get_logger()

# ─── Cached dataset names ────────────────────────────────

ORDERS = "orders"
PRODUCTS = "products"
AVAILABLE_PRODUCTS = "available_products"
ALL_PRODUCTS = "all_products"

_ORDER_DATASETS = (ORDERS,)
_PRODUCT_DATASETS = (PRODUCTS, AVAILABLE_PRODUCTS, ALL_PRODUCTS)

INVALIDATIONS: dict[str, tuple[str, ...]] = {
    ORDER_PLACED: _ORDER_DATASETS,
    ORDER_UPDATED: _ORDER_DATASETS,
    ORDER_STATUS_UPDATED: _ORDER_DATASETS,
    ITEM_PREPARATION_UPDATED: _ORDER_DATASETS,
    ORDER_DELETED: _ORDER_DATASETS,
    PRODUCT_CREATED: _PRODUCT_DATASETS,
    PRODUCT_UPDATED: _PRODUCT_DATASETS,
    PRODUCT_DELETED: _PRODUCT_DATASETS,
    PRODUCT_AVAILABILITY_CHANGED: _PRODUCT_DATASETS,
    SYSTEM_MESSAGE: (),
}

# Events a dashboard may emit itself, to be relayed to everybody else.
RELAYABLE_EVENTS = frozenset({ORDER_PLACED, ORDER_STATUS_UPDATED, ITEM_PREPARATION_UPDATED})


class EventNotifier:
    """Order/product event API over the broadcast router and dataset cache."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        cache: DatasetCache,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.registry = registry
        self.router = router
        self.cache = cache
        self._clock = clock

    # ─── Transport hooks ────────────────────────────────

    def register_client(
        self,
        connection_id: str,
        identity: Optional[ClientIdentity] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.registry.register(connection_id, identity, transport)

    def unregister_client(self, connection_id: str) -> None:
        self.registry.unregister(connection_id)

    def join_room(self, connection_id: str, room: str) -> bool:
        return self.registry.join_room(connection_id, room)

    def leave_room(self, connection_id: str, room: str) -> bool:
        return self.registry.leave_room(connection_id, room)

    # ─── Orders ─────────────────────────────────────────

    def notify_order_created(self, order: dict[str, Any]) -> None:
        logger.info("events.order_created", order_id=order.get("id"))
        self._emit(OrderPlaced, **order)

    def notify_order_updated(self, order: dict[str, Any]) -> None:
        self._emit(OrderUpdated, **order)

    def notify_order_status_changed(
        self,
        order_id: str,
        status: str,
        updated_by: Optional[str] = None,
        order: Optional[dict[str, Any]] = None,
    ) -> None:
        self._emit(
            OrderStatusUpdated,
            order_id=order_id,
            status=status,
            updated_by=updated_by,
            order=order,
        )

    def notify_item_preparation_updated(
        self, order_id: str, item_id: str, result: dict[str, Any]
    ) -> None:
        fields = {**result, "order_id": order_id, "item_id": item_id}
        self._emit(ItemPreparationUpdated, **fields)

    def notify_order_deleted(self, order_id: str) -> None:
        self._emit(OrderDeleted, order_id=order_id)

    # ─── Products ───────────────────────────────────────

    def notify_product_created(self, product: dict[str, Any]) -> None:
        self._emit(ProductCreated, **product)

    def notify_product_updated(self, product: dict[str, Any]) -> None:
        self._emit(ProductUpdated, **product)

    def notify_product_deleted(self, product_id: str) -> None:
        self._emit(ProductDeleted, product_id=product_id)

    def notify_product_availability_changed(self, product_id: str, is_available: bool) -> None:
        self._emit(
            ProductAvailabilityChanged, product_id=product_id, is_available=is_available
        )

    # ─── System ─────────────────────────────────────────

    def notify_system_message(self, message: str, type: str = "info") -> None:
        self._emit(SystemMessage, message=message, level=type)

    # ─── Client relays ──────────────────────────────────

    def relay(self, connection_id: str, event: str, data: Any) -> bool:
        """Re-broadcast a client-originated event to every *other* client.

        Returns False (and sends nothing) if the event is not relayable or
        its payload doesn't validate.
        """
        if event not in RELAYABLE_EVENTS:
            logger.warning("events.relay_rejected", connection_id=connection_id, event_name=event)
            return False
        try:
            parsed = parse_event(event, data)
        except ValidationError as e:
            logger.warning(
                "events.relay_invalid",
                connection_id=connection_id,
                event_name=event,
                errors=e.error_count(),
            )
            return False
        parsed.timestamp = self._clock()
        self.publish(parsed, exclude=connection_id)
        return True

    # ─── Core ───────────────────────────────────────────

    def publish(self, event: DomainEvent, exclude: Optional[str] = None) -> None:
        """Invalidate the event's datasets, then broadcast it."""
        for key in INVALIDATIONS[event.event]:
            self.cache.invalidate(key)
        try:
            self.router.broadcast_all(event.event, event.wire_data(), exclude=exclude)
        except Exception as e:
            logger.error("events.broadcast_failed", event_name=event.event, error=str(e))

    def _emit(self, model: type, **fields: Any) -> None:
        fields.pop("event", None)
        fields["timestamp"] = self._clock()
        try:
            event = model(**fields)
        except ValidationError as e:
            # The write already happened; readers must still see it.
            for key in INVALIDATIONS[model.model_fields["event"].default]:
                self.cache.invalidate(key)
            logger.error(
                "events.invalid_payload",
                event_name=model.model_fields["event"].default,
                errors=e.error_count(),
            )
            return
        self.publish(event)

    # ─── Ops ────────────────────────────────────────────

    def stats(self) -> RegistryStats:
        return self.registry.stats()
