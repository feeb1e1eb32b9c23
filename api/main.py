"""
Stock Aging Alerts API - Main Application.

FastAPI application exposing the inventory aging alert pass and aging reports.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from api import __version__

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

# Create FastAPI application
app = FastAPI(
    title="Stock Aging Alerts API",
    description="Inventory aging classification and deduplicated aging alerts",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for demo
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "stock-aging-alerts-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Stock Aging Alerts API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import aging, alerts

app.include_router(alerts.router, prefix="/api/v1", tags=["Alerts"])
app.include_router(aging.router, prefix="/api/v1", tags=["Inventory Aging"])
