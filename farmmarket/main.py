from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from farmmarket.api import (
    auth, cart, checkout, dashboard, farmers, health, likes, notifications, orders, outreach, products, seed, webhooks
)
from farmmarket.core.config import DEFAULT_JWT_SECRET, settings
from farmmarket.core.logging_config import get_logger, setup_logging
from farmmarket.db.init import init_db
from farmmarket.exception_handlers.global_handler import setup_exception_handlers
from farmmarket.middleware.security_headers import SecurityHeadersMiddleware

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.is_production and settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; tokens are signed with the default development secret")
    init_db()
    logger.info(f"FarmMarket API started in {settings.environment} mode")
    yield
    logger.info("FarmMarket API shutting down")


app = FastAPI(
    title="FarmMarket API",
    description="Backend API for the FarmMarket farmers' marketplace",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(farmers.router, prefix="/api/farmers", tags=["farmers"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(likes.router, prefix="/api", tags=["likes"])
app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(checkout.router, prefix="/api/checkout", tags=["checkout"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(outreach.router, prefix="/api", tags=["outreach"])
app.include_router(seed.router, prefix="/api/seed", tags=["seed"])


@app.get("/")
def read_root():
    return {"message": "Welcome to FarmMarket API"}


def run():
    uvicorn.run("farmmarket.main:app", host=settings.host, port=settings.port)
