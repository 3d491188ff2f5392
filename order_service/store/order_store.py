from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence, Tuple
from uuid import UUID
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from order_service.core.errors import OrderNotFound
from order_service.db.models import Order, OrderItem, OrderReceipt, OrderStatus, utcnow

class NewItem(NamedTuple):
    product_id: int
    quantity: int
    price: Decimal

class OrderStore:
    """Persistence for orders, their items and receipts.

    Each write commits once, so an order and its items (or a payment and its
    receipt) land together or not at all.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, total_amount: Decimal, total_items: int, items: Sequence[NewItem]) -> Order:
        order = Order(
            total_amount=total_amount,
            total_items=total_items,
            status=OrderStatus.PENDING,
            paid=False,
            items=[OrderItem(product_id=it.product_id, quantity=it.quantity, price=it.price) for it in items],
        )
        try:
            self.db.add(order); self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order

    def list(self, status: Optional[OrderStatus], page: int, limit: int) -> Tuple[List[Order], int]:
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        stmt = select(Order)
        count = select(func.count()).select_from(Order)
        if status is not None:
            stmt = stmt.where(Order.status == status)
            count = count.where(Order.status == status)
        total = self.db.execute(count).scalar_one()
        stmt = stmt.order_by(Order.created_at.desc(), Order.id).offset((page - 1) * limit).limit(limit)
        return list(self.db.execute(stmt).scalars().all()), total

    def get_by_id(self, order_id: UUID, refresh: bool = False) -> Optional[Order]:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items), selectinload(Order.receipt))
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.db.execute(stmt).scalars().first()

    def update_status(self, order: Order, status: OrderStatus) -> Order:
        if order.status == status:
            return order
        order.status = status
        order.updated_at = utcnow()
        try:
            self.db.add(order); self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order

    def _apply_payment(self, order: Order, charge_ref: str, receipt_url: str):
        now = utcnow()
        order.status = OrderStatus.PAID
        order.paid = True
        order.paid_at = now
        order.stripe_charge_id = charge_ref
        order.updated_at = now
        if order.receipt is None:
            order.receipt = OrderReceipt(receipt_url=receipt_url)
        else:
            order.receipt.receipt_url = receipt_url
            order.receipt.updated_at = now
        self.db.add(order)

    def mark_paid(self, order_id: UUID, charge_ref: str, receipt_url: str) -> Order:
        order = self.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        self._apply_payment(order, charge_ref, receipt_url)
        try:
            self.db.commit()
        except IntegrityError:
            # a concurrent confirmation inserted the receipt first; overwrite it
            self.db.rollback()
            order = self.get_by_id(order_id, refresh=True)
            if not order:
                raise OrderNotFound(order_id)
            self._apply_payment(order, charge_ref, receipt_url)
            try:
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order
