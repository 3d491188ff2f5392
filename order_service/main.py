from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from order_service.version import VERSION
from order_service.api import routes
from order_service.core.errors import OrderServiceError
from order_service.core.logging import get_logger
from order_service.kafka import consumer as payment_consumer

log = get_logger(__name__)

# Create instrumentator first
instrumentator = Instrumentator()

app = FastAPI(title="Order Service", version=VERSION)

# Instrument the app BEFORE adding routes or middleware
instrumentator.instrument(app).expose(
    app,
    include_in_schema=False,
    endpoint="/order/metrics",
    should_gzip=True,
)

@app.exception_handler(OrderServiceError)
async def order_service_error(request: Request, exc: OrderServiceError):
    return JSONResponse(status_code=exc.status_code, content={"status": exc.status_code, "detail": exc.message})

@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    log.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"status": 500, "detail": "Internal server error"})

# Health endpoints
@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/order/health")
def order_health():
    return {"status": "ok"}

@app.get("/v1/_info")
def info():
    return {"service": "order", "version": VERSION}

@app.on_event("startup")
async def startup_event():
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            log.debug(f"{sorted(route.methods)} {route.path}")
    payment_consumer.start()

@app.on_event("shutdown")
async def shutdown_event():
    payment_consumer.stop()

app.include_router(routes.router, prefix="/order", tags=["orders"])
