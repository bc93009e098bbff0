"""Kasuwa FastAPI application.

Marketplace web server that processes commands synchronously via HTTP.
Each request runs inside the kasuwa domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
import os
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kasuwa.api import (  # imported before kasuwa.init() so traversal finds the api package loaded
    cart_router,
    order_router,
    payment_router,
    product_router,
    register_error_handlers,
    review_router,
)
from kasuwa.domain import kasuwa
from kasuwa.utils.logging import add_context, clear_context, configure_logging

configure_logging(os.environ.get("KASUWA_LOG_DIR", "logs"))
kasuwa.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Kasuwa API",
    description="Multi-vendor marketplace — catalogue, cart, orders, payments and reviews",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the kasuwa domain context and bind request details to the log context."""
    clear_context()
    add_context(
        request_id=request.headers.get("x-request-id") or uuid4().hex,
        method=request.method,
        path=request.url.path,
        user_id=request.headers.get("x-user-id"),
    )
    with kasuwa.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(product_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(review_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": kasuwa.name,
            "environment": os.environ.get("PROTEAN_ENV", "development"),
        }
    )
