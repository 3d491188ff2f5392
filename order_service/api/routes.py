from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID
from order_service.api.deps import get_order_service
from order_service.core.config import settings
from order_service.core.errors import PaymentSessionError, PaymentSessionFailed
from order_service.core.logging import get_logger
from order_service.db.models import OrderStatus
from order_service.schemas import (
    ChangeOrderStatus, CreateOrder, CreateOrderResponse, OrderDetail, OrderPage, OrderWithReceipt, PaidOrder,
)
from order_service.services.orders import OrderService

router = APIRouter()
log = get_logger(__name__)

@router.post("/v1/orders", response_model=CreateOrderResponse, status_code=201)
def create_order(payload: CreateOrder, svc: OrderService = Depends(get_order_service)):
    order = svc.create_order(payload.items)
    try:
        session = svc.create_payment_session(order)
    except PaymentSessionError:
        # order stays PENDING; the client may retry payment later
        log.warning(f"Order {order.id} stored without a payment session")
        raise PaymentSessionFailed(order.id)
    return CreateOrderResponse(order=order, payment_session=session)

@router.get("/v1/orders", response_model=OrderPage)
def list_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.MAX_PAGE_LIMIT),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_orders(status, page, limit)

@router.put("/v1/orders/status", response_model=OrderDetail)
def change_order_status(payload: ChangeOrderStatus, svc: OrderService = Depends(get_order_service)):
    return svc.change_status(payload.id, payload.status)

@router.post("/v1/orders/payment/succeeded", response_model=OrderWithReceipt)
def paid_order(payload: PaidOrder, svc: OrderService = Depends(get_order_service)):
    return svc.confirm_payment(payload.order_id, payload.stripe_payment_id, payload.receipt_url)

@router.get("/v1/orders/{order_id}", response_model=OrderDetail)
def get_order(order_id: UUID, svc: OrderService = Depends(get_order_service)):
    return svc.get_order(order_id)
