"""Main FastAPI application."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from cre_api.config import settings
from cre_api.database import Base, init_db

# Import ALL models to register them with SQLAlchemy before routers load
from cre_api import models  # noqa: F401

from cre_api.routers import (
    master_properties,
    prospect_lists,
    crm_deals,
    contacts,
    companies,
    activities,
    listing_sites,
    public_listings,
    vendors,
    budgets,
    expenses,
    capital_projects,
    lease_tenants,
    rent_payments,
)

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

app = FastAPI(
    title="CRE Back Office API",
    description="Property data, prospecting, CRM, listing sites and asset management",
    version=APP_VERSION,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================
# ROUTER REGISTRATION
# ============================================

# Property data and prospecting
app.include_router(master_properties.router)
app.include_router(prospect_lists.router)

# CRM
app.include_router(crm_deals.router)
app.include_router(contacts.router)
app.include_router(companies.router)
app.include_router(activities.router)

# Listing sites (public routes carry no auth)
app.include_router(listing_sites.router)
app.include_router(public_listings.router)

# Asset management
app.include_router(vendors.router)
app.include_router(budgets.router)
app.include_router(expenses.router)
app.include_router(capital_projects.router)
app.include_router(lease_tenants.router)
app.include_router(rent_payments.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ============================================
# HEALTH & ROOT ENDPOINTS
# ============================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "registered_tables": len(Base.metadata.tables),
        "tables": sorted(Base.metadata.tables.keys()),
    }


@app.get("/")
async def root():
    return {
        "message": "CRE Back Office API",
        "version": APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


# ============================================
# STARTUP & SHUTDOWN
# ============================================

@app.on_event("startup")
async def startup_event():
    """Create tables and log what is registered."""
    logger.info("Starting CRE Back Office API...")
    await init_db()

    logger.info("=" * 50)
    logger.info(f"Registered {len(Base.metadata.tables)} SQLAlchemy tables:")
    for table_name in sorted(Base.metadata.tables.keys()):
        logger.info(f"  {table_name}")
    logger.info("=" * 50)
    logger.info("Registered Routes:")
    for route in app.routes:
        if hasattr(route, "path"):
            logger.info(f"  {route.path}")
    logger.info("=" * 50)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down CRE Back Office API...")
