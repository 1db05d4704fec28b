"""Order Management FastAPI application.

Accepts, cancels and ships fulfillment orders synchronously over HTTP. Every
request under ``/fulfillment_orders`` runs inside the order_management domain
context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → synchronous command and event processing, in-memory stores
#   - "production" → PostgreSQL and Redis (see domain.toml)
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from order_management.domain import order_management
from order_management.utils.logging import configure_logging

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_logs=os.environ.get("LOG_FORMAT", "console") == "json",
)
order_management.init()

_DOMAIN_ROUTE_PREFIX = "/fulfillment_orders"

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Order Management API",
    description="Fulfillment order acceptance",
)
register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the order_management domain context for order routes."""
    if request.url.path.startswith(_DOMAIN_ROUTE_PREFIX):
        with order_management.domain_context():
            response = await call_next(request)
        return response
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from order_management.api.routes import router as order_router  # noqa: E402

app.include_router(order_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": order_management.name})
