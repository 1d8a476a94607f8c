import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.config import (
    APP_ADDR,
    APP_PORT,
    COMMIT_HASH,
    ENV,
    LOG_FORMAT,
    LOG_LEVEL,
    validate_settings,
)
from cotillion.database import close_db, get_db, init_db
from cotillion.dependencies import verify_csrf
from cotillion.error_handlers import register_error_handlers
from cotillion.observability import setup_logging
from cotillion.routers.access import router as access_router
from cotillion.routers.accounts import router as accounts_router
from cotillion.routers.asks import router as asks_router
from cotillion.routers.members import router as members_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    # Startup
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    validate_settings()
    await init_db()
    logger.info("Cotillion registry started")
    yield
    # Shutdown
    await close_db()
    logger.info("Cotillion registry stopped")


app = FastAPI(
    title="Cotillion Registry",
    description="Invitation-gated matchmaking registry",
    version=COMMIT_HASH or "dev",
    lifespan=lifespan,
)

register_error_handlers(app)

# Every /api route needs the site passcode, and a CSRF token when mutating
api_guards = [Depends(verify_csrf)]

# Include routers
app.include_router(access_router, tags=["access"])
app.include_router(
    accounts_router, prefix="/api", tags=["accounts"], dependencies=api_guards
)
app.include_router(
    members_router, prefix="/api", tags=["members"], dependencies=api_guards
)
app.include_router(asks_router, prefix="/api", tags=["asks"], dependencies=api_guards)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Optional[str]]:
    """Health check endpoint with database connectivity."""
    try:
        # Test database connection
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except Exception:
        logger.exception("Health check could not reach the database")
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": ENV,
        "version": COMMIT_HASH,
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=APP_ADDR, port=APP_PORT)
