"""
FastAPI Application Entry Point

This module initializes the frontend application and configures:
- Redirect, preview and authentication routes
- Middleware (logging, CORS, rate limiting)
- Service startup and shutdown
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from myurl.api import auth_endpoints, endpoints
from myurl.core.rate_limit import limiter
from myurl.core.service_manager import initialize_services, shutdown_services
from myurl.core.setting import settings
from myurl.middleware.logging import add_logging_middleware

logging.basicConfig(level=settings.LOG_LEVEL)

app = FastAPI(
    title="MyUrl Redirect Frontend",
    description="Short link redirect view, link previews and sessions for MyUrl",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

# Cookies are sent cross-origin only to the configured frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint for health checks.

    Returns:
        Simple JSON response indicating service is running
    """
    return {
        "message": settings.SITE_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Redirects"])
app.include_router(auth_endpoints.router, tags=["Auth"])


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    await initialize_services()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    await shutdown_services()
