"""
AccountGuard Backend - FastAPI Application

Authentication and account protection: login with progressive lockout and
risk scoring, rotating refresh tokens, password change/reset and an audit trail.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from accountguard.config import get_settings
from accountguard.core.errors import register_error_handlers
from accountguard.database.connections import get_mongo_client, close_connections
from accountguard.database.registry import sync_registry, create_indexes
from accountguard.routers import admin_security, auth, health

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Configure logging
    - Sync database registry
    - Create indexes

    Shutdown:
    - Close all database connections
    """
    configure_logging()
    logger.info("Starting up AccountGuard Backend...")

    try:
        client = await get_mongo_client()
        await sync_registry(client)
        await create_indexes(client)
        logger.info("Database registry synced and indexes created")
    except PyMongoError as e:
        logger.warning(f"Database initialization warning: {e}")

    yield

    logger.info("Shutting down AccountGuard Backend...")
    await close_connections()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title="AccountGuard API",
    description="""
## Authentication and Account Protection API

### Features
- **Login**: email/password with per-IP rate limiting, progressive account
  lockout and risk scoring of every successful login
- **Sessions**: short-lived access tokens and rotating, revocable refresh tokens
- **Passwords**: strength rules, password change and single-use reset tokens
- **Admin**: login statistics, ledger cleanup, lockout checks and session revocation

### Authentication
Send the access token as a header:
```
Authorization: Bearer <access_token>
```
Browser clients receive `access_token` and `refresh_token` HTTP-only cookies
on login, and the cookies are accepted in place of the header.
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Development
        "http://localhost:8080",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(admin_security.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "AccountGuard API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
