from decimal import Decimal
import uuid
import pytest
from sqlalchemy.exc import OperationalError

from order_service.core.config import settings
from order_service.db.models import OrderStatus
from order_service.kafka import consumer, producer
from order_service.store.order_store import NewItem


class RecordingProducer:
    def __init__(self):
        self.sent = []

    def send(self, topic, key=None, value=None):
        self.sent.append((topic, key, value))

    def flush(self, timeout=None):
        pass


def test_payment_succeeded_event_marks_order_paid(store, db):
    order = store.create(Decimal("5.00"), 1, [NewItem(1, 1, Decimal("5.00"))])
    paid = consumer.process_event({
        "type": "payment.succeeded",
        "order_id": str(order.id),
        "payment_id": "ch_evt",
        "receipt_url": "https://receipts.example.com/evt",
    }, db)
    assert paid.status == OrderStatus.PAID
    assert paid.stripe_charge_id == "ch_evt"
    assert paid.receipt.receipt_url == "https://receipts.example.com/evt"


def test_other_events_are_ignored(db):
    assert consumer.process_event({"type": "payment.failed", "order_id": str(uuid.uuid4())}, db) is None


def test_unknown_or_malformed_order_is_skipped(db):
    ev = {"type": "payment.succeeded", "payment_id": "ch_1", "receipt_url": "https://receipts.example.com/1"}
    assert consumer.process_event({**ev, "order_id": str(uuid.uuid4())}, db) is None
    assert consumer.process_event({**ev, "order_id": "nope"}, db) is None


def test_emit_disabled_is_noop(store, monkeypatch):
    rec = RecordingProducer()
    monkeypatch.setattr(producer, "_producer", rec)
    monkeypatch.setattr(settings, "KAFKA_ENABLED", False)
    producer.emit("order.created", store.create(Decimal("1.00"), 1, [NewItem(1, 1, Decimal("1.00"))]))
    assert rec.sent == []


def test_emit_publishes_order_event(store, monkeypatch):
    rec = RecordingProducer()
    monkeypatch.setattr(producer, "_producer", rec)
    monkeypatch.setattr(settings, "KAFKA_ENABLED", True)
    order = store.create(Decimal("7.50"), 3, [NewItem(2, 3, Decimal("2.50"))])
    producer.emit("order.created", order)
    topic, key, value = rec.sent[0]
    assert topic == settings.TOPIC_ORDER_EVENTS
    assert key == str(order.id)
    assert value == {
        "type": "order.created",
        "order_id": str(order.id),
        "status": "PENDING",
        "total_amount": "7.50",
        "total_items": 3,
        "paid": False,
    }


@pytest.mark.parametrize("missing", ["payment_id", "receipt_url"])
def test_payment_event_missing_fields_is_skipped(store, db, missing):
    order = store.create(Decimal("5.00"), 1, [NewItem(1, 1, Decimal("5.00"))])
    ev = {
        "type": "payment.succeeded",
        "order_id": str(order.id),
        "payment_id": "ch_evt",
        "receipt_url": "https://receipts.example.com/evt",
    }
    del ev[missing]
    assert consumer.process_event(ev, db) is None
    db.expire_all()
    untouched = store.get_by_id(order.id)
    assert untouched.status == OrderStatus.PENDING
    assert untouched.receipt is None


def test_payment_event_blank_receipt_is_skipped(store, db):
    order = store.create(Decimal("5.00"), 1, [NewItem(1, 1, Decimal("5.00"))])
    ev = {"type": "payment.succeeded", "order_id": str(order.id), "payment_id": "ch_evt", "receipt_url": ""}
    assert consumer.process_event(ev, db) is None
    assert store.get_by_id(order.id).paid is False


@pytest.mark.parametrize("value", [["not", "a", "dict"], "payment.succeeded", 42, None])
def test_non_object_messages_are_skipped(db, value):
    assert consumer.process_event(value, db) is None
    assert consumer.handle_message(value, db) is None


def test_undecodable_message_body_becomes_none():
    assert consumer.decode(b"\xff\xfe not json") is None
    assert consumer.decode(b"{broken") is None
    assert consumer.decode(b'{"type": "payment.succeeded"}') == {"type": "payment.succeeded"}


def test_database_error_is_logged_and_rolled_back(store, db, monkeypatch):
    order = store.create(Decimal("5.00"), 1, [NewItem(1, 1, Decimal("5.00"))])
    rollbacks = []
    real_rollback = db.rollback

    def failing_commit():
        raise OperationalError("UPDATE orders", {}, Exception("server closed the connection"))

    def counting_rollback():
        rollbacks.append(1)
        real_rollback()

    monkeypatch.setattr(db, "commit", failing_commit)
    monkeypatch.setattr(db, "rollback", counting_rollback)
    ev = {
        "type": "payment.succeeded",
        "order_id": str(order.id),
        "payment_id": "ch_evt",
        "receipt_url": "https://receipts.example.com/evt",
    }
    assert consumer.handle_message(ev, db) is None
    assert rollbacks


def test_consumer_keeps_going_after_a_bad_message(store, db):
    order = store.create(Decimal("5.00"), 1, [NewItem(1, 1, Decimal("5.00"))])
    good = {
        "type": "payment.succeeded",
        "order_id": str(order.id),
        "payment_id": "ch_evt",
        "receipt_url": "https://receipts.example.com/evt",
    }
    results = [consumer.handle_message(v, db) for v in (["junk"], None, good)]
    assert results[:2] == [None, None]
    assert results[2].status == OrderStatus.PAID
