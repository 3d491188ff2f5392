from kafka import KafkaProducer
from kafka.errors import KafkaError
import json
from order_service.core.config import settings
from order_service.core.logging import get_logger
from order_service.db.models import Order

log = get_logger(__name__)

_producer = None

def get_producer():
    global _producer
    if _producer is None:
        _producer = KafkaProducer(
            bootstrap_servers=[settings.KAFKA_BOOTSTRAP],
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda v: (v.encode("utf-8") if isinstance(v, str) else v),
            linger_ms=5,
        )
    return _producer

def order_event(event_type: str, order: Order) -> dict:
    return {
        "type": event_type,
        "order_id": str(order.id),
        "status": order.status.value,
        "total_amount": str(order.total_amount),
        "total_items": order.total_items,
        "paid": order.paid,
    }

def emit(event_type: str, order: Order):
    """Publish an order event; never fails the caller's request."""
    if not settings.KAFKA_ENABLED:
        return
    try:
        p = get_producer()
        p.send(settings.TOPIC_ORDER_EVENTS, key=str(order.id), value=order_event(event_type, order))
        p.flush(5)
    except KafkaError as exc:
        log.warning(f"Could not publish {event_type} for order {order.id}: {exc!r}")
