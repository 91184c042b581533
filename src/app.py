"""Brandson Sales FastAPI application.

Web server for orders, quotes, invoices, receipts and payments. Commands are
processed synchronously; every request runs inside the sales domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from [tool.protean] in pyproject.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from sales.domain import sales
from sales.utils.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    current_environment,
)

configure_logging()
sales.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Brandson Sales API",
    description="Printing & branding shop — orders, quotes, invoices, receipts and payments",
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
    """Push the sales domain context and tag log lines for each request."""
    request_id = bind_request_context(request.method, request.url.path, request.headers.get("x-request-id"))
    try:
        with sales.domain_context():
            response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-ID"] = request_id
    return response


# Protean ValidationError / ObjectNotFoundError → 400 / 404, ApiError → envelope
register_exception_handlers(app)

from sales.api.errors import register_api_error_handler  # noqa: E402

register_api_error_handler(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from sales.api.routes import (  # noqa: E402
    invoice_router,
    order_router,
    payment_router,
    quote_router,
    receipt_router,
)

app.include_router(order_router)
app.include_router(quote_router)
app.include_router(receipt_router)
app.include_router(invoice_router)
app.include_router(payment_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "environment": current_environment(),
            "domains": {"sales": {"name": sales.name}},
        }
    )
