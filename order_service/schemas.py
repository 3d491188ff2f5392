from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from order_service.db.models import OrderStatus

# --- Collaborator views ---
class ProductRef(BaseModel):
    id: int
    name: str
    price: Decimal = Field(ge=0)

class PaymentLine(BaseModel):
    name: Optional[str] = None
    price: float
    quantity: int

# --- Requests ---
class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)

class CreateOrder(BaseModel):
    items: List[OrderItemIn] = Field(min_length=1)

class ChangeOrderStatus(BaseModel):
    id: UUID
    status: OrderStatus

class PaidOrder(BaseModel):
    order_id: UUID
    stripe_payment_id: str = Field(min_length=1)
    receipt_url: str = Field(min_length=1)

# --- Events ---
class PaymentSucceeded(BaseModel):
    type: Literal["payment.succeeded"]
    order_id: UUID
    payment_id: str = Field(min_length=1)
    receipt_url: str = Field(min_length=1)

# --- Responses ---
class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    product_id: int
    price: float
    quantity: int
    name: Optional[str] = None

class OrderReceiptRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    receipt_url: str
    created_at: datetime

class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    total_amount: float
    total_items: int
    status: OrderStatus
    paid: bool
    paid_at: Optional[datetime] = None
    stripe_charge_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class OrderWithReceipt(OrderRead):
    receipt: Optional[OrderReceiptRead] = None

class OrderDetail(OrderWithReceipt):
    items: List[OrderItemRead] = []

class PageMeta(BaseModel):
    total: int
    page: int
    last_page: int

class OrderPage(BaseModel):
    data: List[OrderRead]
    meta: PageMeta

class CreateOrderResponse(BaseModel):
    order: OrderDetail
    payment_session: Dict[str, Any]
