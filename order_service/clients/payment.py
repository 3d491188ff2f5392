from typing import Any, Dict, List, Optional
from uuid import UUID
import httpx
from order_service.core.config import settings
from order_service.core.errors import PaymentSessionError
from order_service.core.logging import get_logger
from order_service.schemas import PaymentLine

log = get_logger(__name__)

class PaymentClient:
    def __init__(self, base_url: str, path: str = "/payment/v1/payments/create-session",
                 timeout: float = 5.0, transport: Optional[httpx.BaseTransport] = None):
        self.url = base_url.rstrip("/") + path
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "PaymentClient":
        return cls(settings.PAYMENT_BASE, settings.PAYMENT_SESSION_PATH, timeout=settings.HTTP_TIMEOUT)

    def create_session(self, order_id: UUID, currency: str, items: List[PaymentLine]) -> Dict[str, Any]:
        """Request a payment session and return the collaborator's descriptor as-is."""
        payload = {
            "order_id": str(order_id),
            "currency": currency,
            "items": [it.model_dump() for it in items],
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.url, json=payload)
        except httpx.RequestError as exc:
            log.error(f"Payment request to {self.url} failed: {exc!r}")
            raise PaymentSessionError() from exc
        if resp.status_code >= 400:
            log.error(f"Payment service returned {resp.status_code}: {resp.text}")
            raise PaymentSessionError()
        try:
            return resp.json()
        except ValueError as exc:
            log.error(f"Payment service returned an unreadable body: {exc!r}")
            raise PaymentSessionError() from exc
