"""Returnflow FastAPI application.

Web server for order lifecycle, cancellation and return workflows. Commands
are processed synchronously; every request runs inside the refunds domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay ("production" switches to PostgreSQL).
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from refunds.domain import refunds

refunds.init()

_ROUTE_PREFIXES = ("/orders", "/cancellations", "/refunds", "/returns", "/policy")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Returnflow API",
    description="Order lifecycle, cancellations, returns and refunds",
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
    """Push the refunds domain context for API requests."""
    if request.url.path.startswith(_ROUTE_PREFIXES):
        with refunds.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from refunds.api.errors import register_exception_handlers  # noqa: E402
from refunds.api.routes import (  # noqa: E402
    cancellation_router,
    order_router,
    policy_router,
    refund_router,
    return_router,
)

app.include_router(order_router)
app.include_router(cancellation_router)
app.include_router(refund_router)
app.include_router(return_router)
app.include_router(policy_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"refunds": {"name": refunds.name}},
        }
    )
