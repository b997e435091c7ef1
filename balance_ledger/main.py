import time
import uuid

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from balance_ledger.core.config import get_settings
from balance_ledger.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from balance_ledger.core.logging import bind_request_id, configure_logging, get_logger
from balance_ledger.db.init import init_store
from balance_ledger.routers import transactions, users

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

app = FastAPI(
    title="Balance Ledger API",
    version="1.0.0",
)


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_id(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers
app.include_router(users.router, prefix="/v1/users", tags=["users"])
app.include_router(transactions.router, prefix="/v1/transactions", tags=["transactions"])


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        import sentry_sdk
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
        log.info("startup", msg="Sentry enabled")
    app.state.store = await init_store(settings)
    log.info("startup", msg="Store ready", backend=settings.store_backend)


@app.on_event("shutdown")
async def shutdown():
    store = getattr(app.state, "store", None)
    if store is not None:
        await store.close()


@app.get("/health")
async def health():
    """Health check for load balancers and monitoring."""
    return {"status": "ok"}
