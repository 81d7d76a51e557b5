# Main application file

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backoffice.core.config import settings
from backoffice.core.rate_limiter import limiter
from backoffice.core.status_monitor import status_monitor
from backoffice.database import Base, engine
from backoffice.models import invoices, orders, products, transactions, users  # noqa: F401
from backoffice.routers import (
    invoices as invoices_router,
    monitor,
    orders as orders_router,
    products as products_router,
    ratings,
    statistics,
    users as users_router,
)


# LOGGING CONFIGURATION

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger("backoffice")


# LIFESPAN (schema + status monitor)

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    if settings.STATUS_MONITOR_ENABLED:
        status_monitor.start()

    yield

    await status_monitor.stop()


# APP INIT

app = FastAPI(
    title="Back-office Inventory API",
    description="Inventory, ordering, invoicing and sales analytics for a small business",
    version="1.0.0",
    lifespan=lifespan,
)


# CORS

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_URLS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# RATE LIMITING

app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    _rate_limit_exceeded_handler
)


# UNHANDLED ERRORS

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# REQUEST LOGGING MIDDLEWARE

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = round((time.time() - start_time) * 1000, 2)

    logger.info(
        f"{request.method} {request.url.path} "
        f"Status: {response.status_code} "
        f"Time: {duration}ms"
    )

    return response


# ROUTERS

app.include_router(products_router.router)
app.include_router(orders_router.router)
app.include_router(invoices_router.router)
app.include_router(ratings.router)
app.include_router(statistics.router)
app.include_router(monitor.router)
app.include_router(users_router.router)


# ROOT

@app.get("/")
def root():
    logger.info("Health check endpoint called")
    return {"message": "Back-office Inventory API is running"}
