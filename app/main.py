from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import sync_engine, Base

# Import middleware
from app.common.middleware import TenantMiddleware, SecurityHeadersMiddleware

# Import routers
from app.modules.auth.router import auth_router
from app.modules.tenants.router import tenants_router
from app.modules.plans.router import plans_router
from app.modules.invitations.router import invitations_router
from app.modules.clients.router import clients_router
from app.modules.vehicles.router import vehicles_router
from app.modules.appointments.router import appointments_router
from app.modules.products.router import products_router
from app.modules.work_orders.router import work_orders_router
from app.modules.quotes.router import quotes_router
from app.modules.cash.router import cash_router
from app.modules.reports.router import reports_router
from app.modules.admin.router import admin_router

# Import models for table creation
import app.modules.auth.models
import app.modules.tenants.models
import app.modules.invitations.models
import app.modules.clients.models
import app.modules.vehicles.models
import app.modules.appointments.models
import app.modules.products.models
import app.modules.work_orders.models
import app.modules.quotes.models
import app.modules.cash.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TallerApp API",
    description="API multi-tenant para gestión de talleres: clientes, vehículos, turnos, órdenes de trabajo, stock y caja",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TenantMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(tenants_router)
app.include_router(plans_router)
app.include_router(invitations_router)
app.include_router(clients_router)
app.include_router(vehicles_router)
app.include_router(appointments_router)
app.include_router(products_router)
app.include_router(work_orders_router)
app.include_router(quotes_router)
app.include_router(cash_router)
app.include_router(reports_router)
app.include_router(admin_router)

# Create database tables (only for development)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)


@app.get("/")
async def read_root():
    return {
        "message": "TallerApp API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("TallerApp API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("TallerApp API shutting down...")
