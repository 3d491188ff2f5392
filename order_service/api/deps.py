from fastapi import Depends
from sqlalchemy.orm import Session
from order_service.clients.catalog import CatalogClient
from order_service.clients.payment import PaymentClient
from order_service.core.config import settings
from order_service.db.session import SessionLocal
from order_service.services.orders import OrderService
from order_service.store.order_store import OrderStore

def get_db():
    db = SessionLocal()
    try: yield db
    finally: db.close()

def get_order_store(db: Session = Depends(get_db)) -> OrderStore:
    return OrderStore(db)

def get_catalog_client() -> CatalogClient:
    return CatalogClient.from_settings()

def get_payment_client() -> PaymentClient:
    return PaymentClient.from_settings()

def get_order_service(
    store: OrderStore = Depends(get_order_store),
    catalog: CatalogClient = Depends(get_catalog_client),
    payments: PaymentClient = Depends(get_payment_client),
) -> OrderService:
    return OrderService(store, catalog, payments, currency=settings.DEFAULT_CURRENCY)
