import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pos_app.core.config import settings
from pos_app.core.request_log import RequestLogMiddleware
from pos_app.services.pos import registry as pos_registry

from pos_app.api.auth import router as auth_router
from pos_app.api.customers import router as customers_router
from pos_app.api.pos import router as pos_router
from pos_app.api.products import router as products_router
from pos_app.api.sales import router as sales_router


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)


# -------------------------------------------------
# Create FastAPI App
# -------------------------------------------------

app = FastAPI(title="Liquor Store POS Middleware")


# -------------------------------------------------
# Add Middleware
# -------------------------------------------------

app.add_middleware(RequestLogMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------
# Include Routers
# -------------------------------------------------

app.include_router(auth_router)
app.include_router(products_router)
app.include_router(customers_router)
app.include_router(pos_router)
app.include_router(sales_router)


# -------------------------------------------------
# Health Check
# -------------------------------------------------

@app.get("/health")
def health():
    return {
        "status": "ok",
        "message": "POS middleware is running",
        "registers": pos_registry.registry.registers(),
    }
