"""Paid JSON tools API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .config import get_chain_registry, get_settings
from .errors import ApiError
from .logging_config import get_logger
from .rate_limit import limiter
from .revenue import RevenueLog, RevenueWatcher
from .routes import account_router, payments_router, tools_router

logger = get_logger("paygate")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    settings = get_settings()
    registry = get_chain_registry()
    logger.info(
        f"Starting paid-json-tools (payTo={settings.pay_to}, price={settings.price_units}, "
        f"chains={','.join(registry.keys())})"
    )
    watcher = None
    if settings.revenue_watcher_enabled:
        watcher = RevenueWatcher(
            registry,
            pay_to=settings.pay_to,
            price_units=settings.price_units,
            revenue_log=RevenueLog(settings.revenue_log_dir),
        )
        watcher.start()
    app.state.revenue_watcher = watcher
    yield
    # Shutdown
    if watcher is not None:
        await watcher.stop()
    logger.info("Shutting down paid-json-tools")


app = FastAPI(
    title="Paid JSON Tools API",
    description="JSON utilities unlocked by a one-time on-chain stablecoin payment",
    version=VERSION,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return await api_error_handler(request, ApiError("bad_input"))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return await api_error_handler(request, ApiError("rate_limited"))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return await api_error_handler(request, ApiError("server_error"))


# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(payments_router)
app.include_router(account_router)
app.include_router(tools_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "service": "paid-json-tools",
        "version": VERSION,
        "status": "ok",
    }
