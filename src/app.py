"""Checkout FastAPI application.

Web server for discount administration, carts and cart settlement. Commands
are processed synchronously; each request runs inside the checkout domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the Protean config overlay; CHECKOUT_* variables shape
# money handling (see checkout.config).
from checkout.domain import checkout  # noqa: E402
from checkout.utils.logging import clear_checkout_context, configure_logging  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

configure_logging()
checkout.init()

_DOMAIN_PREFIXES = ("/discounts", "/carts")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Checkout API",
    description="Storefront checkout: discounts, carts and settlement",
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
    """Push the checkout domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        try:
            with checkout.domain_context():
                response = await call_next(request)
        finally:
            clear_checkout_context()
        return response
    # Health check, docs
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import cart_router, discount_router, register_checkout_exception_handlers  # noqa: E402

app.include_router(discount_router)
app.include_router(cart_router)

register_exception_handlers(app)
register_checkout_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": {"name": checkout.name},
        }
    )
