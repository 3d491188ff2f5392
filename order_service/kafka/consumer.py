import threading, json
from kafka import KafkaConsumer
from pydantic import ValidationError
from sqlalchemy.orm import Session
from order_service.core.config import settings
from order_service.core.errors import OrderNotFound
from order_service.core.logging import get_logger
from order_service.db.session import SessionLocal
from order_service.kafka.producer import emit
from order_service.schemas import PaymentSucceeded
from order_service.store.order_store import OrderStore

log = get_logger(__name__)

_stop_event = threading.Event()
_thread = None

def process_event(ev, db: Session):
    """Apply a payment event. Returns the paid order, or None when skipped."""
    if not isinstance(ev, dict):
        log.warning(f"Skipping non-object payment event of type {type(ev).__name__}")
        return None
    if ev.get("type") != "payment.succeeded":
        return None
    try:
        paid = PaymentSucceeded.model_validate(ev)
    except ValidationError as exc:
        log.warning(f"Skipping malformed payment.succeeded event: {exc.errors(include_url=False)}")
        return None
    try:
        order = OrderStore(db).mark_paid(paid.order_id, paid.payment_id, paid.receipt_url)
    except OrderNotFound:
        log.warning(f"payment.succeeded for unknown order {paid.order_id}")
        return None
    log.info(f"Order {order.id} paid via event (charge {order.stripe_charge_id})")
    emit("order.paid", order)
    return order

def handle_message(value, db: Session):
    """Process one message; errors are logged so the consumer loop keeps running."""
    try:
        return process_event(value, db)
    except Exception:
        db.rollback()
        log.exception("Failed to process payment event")
        return None

def decode(v: bytes):
    try:
        return json.loads(v.decode("utf-8"))
    except ValueError:
        return None

def run_loop():
    consumer = KafkaConsumer(
        settings.TOPIC_PAYMENT_EVENTS,
        bootstrap_servers=[settings.KAFKA_BOOTSTRAP],
        group_id="order-service",
        value_deserializer=decode,
        enable_auto_commit=True,
        auto_offset_reset="earliest",
    )
    db = SessionLocal()
    try:
        for msg in consumer:
            if _stop_event.is_set(): break
            handle_message(msg.value, db)
    finally:
        db.close()
        consumer.close()

def start():
    global _thread
    if not settings.KAFKA_ENABLED: return
    if _thread and _thread.is_alive(): return
    _stop_event.clear()
    _thread = threading.Thread(target=run_loop, daemon=True)
    _thread.start()

def stop():
    _stop_event.set()
