"""Domain event model tests — parsing and wire serialization."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from stallpos.events.types import (
    ORDER_STATUS_UPDATED,
    OrderPlaced,
    OrderStatusUpdated,
    ProductAvailabilityChanged,
    SystemMessage,
    parse_event,
)


def test_parse_picks_model_by_event_name():
    event = parse_event(ORDER_STATUS_UPDATED, {"orderId": "o1", "status": "ready"})
    assert isinstance(event, OrderStatusUpdated)
    assert event.order_id == "o1"
    assert event.updated_by is None


def test_parse_accepts_snake_case_too():
    event = parse_event("productAvailabilityChanged", {"product_id": "p1", "is_available": True})
    assert isinstance(event, ProductAvailabilityChanged)
    assert event.is_available is True


def test_parse_rejects_unknown_event():
    with pytest.raises(ValidationError):
        parse_event("orderTeleported", {"id": "o1"})


def test_parse_rejects_missing_fields():
    with pytest.raises(ValidationError):
        parse_event("orderDeleted", {})


def test_parse_ignores_event_key_inside_data():
    event = parse_event("orderPlaced", {"id": "o1", "event": "systemMessage"})
    assert isinstance(event, OrderPlaced)


def test_entity_event_flattens_extra_fields():
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    event = OrderPlaced(id="o1", customer_name="Ana", items=[{"id": "i1"}], timestamp=ts)
    assert event.wire_data() == {
        "id": "o1",
        "customer_name": "Ana",
        "items": [{"id": "i1"}],
        "timestamp": "2024-01-02T03:04:05Z",
    }


def test_wire_data_uses_camel_case_and_omits_event():
    event = OrderStatusUpdated(order_id="o1", status="ready", updated_by="u7")
    data = event.wire_data()
    assert "event" not in data
    assert data["orderId"] == "o1"
    assert data["updatedBy"] == "u7"


def test_system_message_level_is_sent_as_type():
    assert SystemMessage(message="hi", level="warning").wire_data()["type"] == "warning"
    assert SystemMessage(message="hi").level == "info"


def test_timestamp_defaults_to_now():
    before = datetime.now(timezone.utc)
    event = SystemMessage(message="hi")
    assert before <= event.timestamp <= datetime.now(timezone.utc)
