"""
Estate CRM application: routers, middleware, error handlers and health checks.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Callable
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
import logging

from estate_crm.config import settings
from estate_crm.database import test_database_connection, close_db_connection, create_tables
from estate_crm.routers import (
    auth_router,
    users_router,
    properties_router,
    buyers_router,
    matches_router,
    notifications_router,
    activity_router,
    invites_router,
    integrations_router,
    catalog_router,
    analytics_router
)
from estate_crm.utils.exceptions import APIException
from estate_crm.services.error_handler import ErrorHandlerService
from estate_crm.middleware.validation import ValidationMiddleware

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")
    elif not settings.is_production and not settings.is_testing:
        await create_tables()

    yield

    logger.info("Shutting down application")
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    A CRM for real-estate agents.

    ## Features

    * **Listings**: CRUD, search, image URLs and extended details, plus Webtiv feed sync
    * **Buyers**: preferences, offered properties and a per-buyer timeline
    * **Matching**: hard filters and additive scoring, notifications and a realtime WebSocket feed
    * **Catalog**: public listings, lead self-registration and a buyer journal
    * **Tools**: mortgage, rental yield and transaction cost calculators

    ## Authentication

    Use `/api/v1/auth/login` to obtain a JWT token, then send it in the Authorization
    header as `Bearer <token>`. The WebSocket feed takes the token as a `token` query parameter.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Authentication", "description": "Login, sign-up and token management"},
        {"name": "Users", "description": "User administration"},
        {"name": "Properties", "description": "Listing management and search"},
        {"name": "Buyers", "description": "Buyers, offered properties, timeline and matches"},
        {"name": "Matching", "description": "Matching triggers and realtime match updates"},
        {"name": "Notifications", "description": "Agent and manager notifications"},
        {"name": "Activity", "description": "Office activity feed"},
        {"name": "Invites", "description": "Invitation links for clients"},
        {"name": "Integrations", "description": "Webtiv sync and agent emails"},
        {"name": "Catalog", "description": "Public catalog and buyer portal"},
        {"name": "Analytics", "description": "Dashboard, calculators and neighborhoods"},
        {"name": "Health", "description": "System health endpoints"}
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Processing-Time"],
)

app.add_middleware(
    ValidationMiddleware,
    max_request_size=10 * 1024 * 1024,  # 10MB
    enable_request_logging=settings.debug
)

for router in (
    auth_router,
    users_router,
    properties_router,
    buyers_router,
    matches_router,
    notifications_router,
    activity_router,
    invites_router,
    integrations_router,
    catalog_router,
    analytics_router,
):
    app.include_router(router, prefix=settings.api_v1_prefix)


ERROR_HANDLERS = {
    APIException: ErrorHandlerService.handle_api_exception,
    RequestValidationError: ErrorHandlerService.handle_validation_error,
    PydanticValidationError: ErrorHandlerService.handle_validation_error,
    SQLAlchemyError: ErrorHandlerService.handle_database_error,
    StarletteHTTPException: ErrorHandlerService.handle_http_exception,
    Exception: ErrorHandlerService.handle_unexpected_error,
}


def _as_exception_handler(handle: Callable[[Exception, Request], JSONResponse]):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return handle(exc, request)
    return handler


for exc_class, handle in ERROR_HANDLERS.items():
    app.add_exception_handler(exc_class, _as_exception_handler(handle))


@app.get("/", tags=["Health"])
async def root():
    """Basic API information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "healthy",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_v1_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with database connectivity test.
    Used by load balancers and container health checks.
    """
    db_healthy = await test_database_connection()

    if not db_healthy:
        raise HTTPException(status_code=503, detail="Database connection failed")

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "estate_crm.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
