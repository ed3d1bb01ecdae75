"""
StockFlow FastAPI Main Application
Entry point for the StockFlow REST API
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from stockflow.api.errors import register_exception_handlers
from stockflow.api.v1.api_router import api_router
from stockflow.core.config import settings
from stockflow.core.database import check_db_connection, init_db
from stockflow.core.logging import get_logger, setup_logging
from stockflow.services.scheduler import get_scheduler

logger = get_logger("api")

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## StockFlow Replenishment API

    Multi-warehouse inventory with purchase-request, purchase-order,
    goods-receipt and transfer workflows.

    ### Workflows:
    - **Purchase Requests**: manual or raised automatically for low stock
    - **Purchase Orders**: admin approval, supplier acknowledgement, delays
    - **Goods Receipts**: warehouse receipt, manager approval updates stock
    - **Transfers**: approved moves of stock between warehouses
    """,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Health check endpoint
@app.get("/health", tags=["System"])
def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()
        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
            "automatic_trigger": get_scheduler().scheduler_running,
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


@app.on_event("startup")
def startup_event():
    """
    Application startup tasks

    Configure logging, create tables and start the automatic trigger
    """
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")

    init_db()

    if settings.AUTO_TRIGGER_ENABLED:
        get_scheduler().start()

    logger.info("Application startup completed successfully")


@app.on_event("shutdown")
def shutdown_event():
    logger.info("Shutting down application")
    get_scheduler().close()


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)
