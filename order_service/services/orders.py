"""Order workflow: catalog validation, totals, persistence and payment."""
from decimal import Decimal, ROUND_HALF_UP
from math import ceil
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
from order_service.clients.catalog import CatalogClient
from order_service.clients.payment import PaymentClient
from order_service.core.errors import InvalidProducts, OrderCreationFailed, OrderNotFound
from order_service.core.logging import get_logger
from order_service.db.models import Order, OrderStatus
from order_service.kafka.producer import emit
from order_service.schemas import (
    OrderDetail, OrderItemIn, OrderItemRead, OrderPage, OrderRead, OrderWithReceipt, PageMeta, PaymentLine, ProductRef,
)
from order_service.store.order_store import NewItem, OrderStore

log = get_logger(__name__)

CENT = Decimal("0.01")

def with_names(order: Order, names: Dict[int, str]) -> OrderDetail:
    """Snapshot ``order`` as an OrderDetail, attaching catalog names to its items."""
    detail = OrderDetail.model_validate(order)
    detail.items = [
        OrderItemRead(product_id=it.product_id, price=float(it.price), quantity=it.quantity, name=names.get(it.product_id))
        for it in order.items
    ]
    return detail

def compute_totals(items: Iterable[OrderItemIn], prices: Dict[int, Decimal]):
    total_amount = Decimal("0")
    total_items = 0
    for it in items:
        total_amount += prices[it.product_id] * it.quantity
        total_items += it.quantity
    return total_amount, total_items

class OrderService:
    def __init__(self, store: OrderStore, catalog: CatalogClient, payments: PaymentClient, currency: str = "usd"):
        self.store = store
        self.catalog = catalog
        self.payments = payments
        self.currency = currency

    def _lookup_names(self, order: Order) -> Dict[int, str]:
        products = self.catalog.lookup(it.product_id for it in order.items)
        return {p.id: p.name for p in products}

    def create_order(self, items: List[OrderItemIn]) -> OrderDetail:
        product_ids = {it.product_id for it in items}
        try:
            products: List[ProductRef] = self.catalog.lookup(product_ids)
            if not products:
                raise InvalidProducts(product_ids)
            by_id = {p.id: p for p in products}
            missing = product_ids - by_id.keys()
            if missing:
                raise InvalidProducts(missing)

            # item snapshots are stored at cent precision; totals use the same value
            prices = {pid: p.price.quantize(CENT, rounding=ROUND_HALF_UP) for pid, p in by_id.items()}
            total_amount, total_items = compute_totals(items, prices)
            order = self.store.create(
                total_amount,
                total_items,
                [NewItem(it.product_id, it.quantity, prices[it.product_id]) for it in items],
            )
        except InvalidProducts:
            raise
        except Exception:
            log.exception("Order creation failed")
            raise OrderCreationFailed()

        log.info(f"Order {order.id} created: {total_items} items, total {total_amount}")
        emit("order.created", order)
        return with_names(order, {p.id: p.name for p in products})

    def get_order(self, order_id: UUID) -> OrderDetail:
        order = self.store.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return with_names(order, self._lookup_names(order))

    def list_orders(self, status: Optional[OrderStatus], page: int, limit: int) -> OrderPage:
        orders, total = self.store.list(status, page, limit)
        return OrderPage(
            data=[OrderRead.model_validate(o) for o in orders],
            meta=PageMeta(total=total, page=page, last_page=ceil(total / limit)),
        )

    def change_status(self, order_id: UUID, status: OrderStatus) -> OrderDetail:
        order = self.store.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        names = self._lookup_names(order)
        if order.status == status:
            return with_names(order, names)

        previous = order.status
        order = self.store.update_status(order, status)
        log.info(f"Order {order.id} status {previous.value} -> {status.value}")
        emit("order.status_changed", order)
        return with_names(order, names)

    def confirm_payment(self, order_id: UUID, charge_ref: str, receipt_url: str) -> OrderWithReceipt:
        """Mark the order paid. The response carries the receipt but not line items."""
        order = self.store.mark_paid(order_id, charge_ref, receipt_url)
        log.info(f"Order {order.id} paid (charge {charge_ref})")
        emit("order.paid", order)
        return OrderWithReceipt.model_validate(order)

    def create_payment_session(self, order: OrderDetail) -> Dict[str, Any]:
        lines = [PaymentLine(name=it.name, price=it.price, quantity=it.quantity) for it in order.items]
        return self.payments.create_session(order.id, self.currency, lines)
