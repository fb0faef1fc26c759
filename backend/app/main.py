"""
Personal Finance Tracker - Main Application Entry Point

A modular monolithic application for wallets, budgets and savings goals.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Import module routers
from app.core.auth_router import router as auth_router
from app.modules.users.router import router as user_router
from app.modules.categories.router import router as categories_router
from app.modules.wallets.router import router as wallets_router
from app.modules.transactions.router import router as transactions_router
from app.modules.budgets.router import router as budgets_router
from app.modules.savings.router import router as savings_router
from app.modules.statistics.router import router as statistics_router
from app.modules.notifications.router import router as notifications_router
from app.modules.dashboard.router import router as dashboard_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Personal finance tracking: wallets, transactions, budgets and savings goals",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Use ["*"] if CORS_ALLOW_ALL is True (development), otherwise use explicit origins
    cors_origins = ["*"] if settings.CORS_ALLOW_ALL else settings.CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register module routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(user_router, prefix="/api/v1/user", tags=["User"])
    app.include_router(categories_router, prefix="/api/v1/categories", tags=["Categories"])
    app.include_router(wallets_router, prefix="/api/v1/wallets", tags=["Wallets"])
    app.include_router(transactions_router, prefix="/api/v1/transactions", tags=["Transactions"])
    app.include_router(budgets_router, prefix="/api/v1/budgets", tags=["Budgets"])
    app.include_router(savings_router, prefix="/api/v1/savings-goals", tags=["Savings Goals"])
    app.include_router(statistics_router, prefix="/api/v1/statistics", tags=["Statistics"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["Notifications"])
    app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["Dashboard"])

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - health check."""
        return {
            "application": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running"
        }

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        """API health check endpoint."""
        return {"status": "healthy"}

    @app.on_event("startup")
    async def startup_event():
        """Start the notification scheduler."""
        if not settings.SCHEDULER_ENABLED:
            logger.info("Scheduler disabled by configuration")
            return
        try:
            start_scheduler()
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}", exc_info=True)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop background scheduler on app shutdown."""
        try:
            stop_scheduler()
            logger.info("Application shutdown - scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
