from .gateway import APIGateway
from .routers import documents, files, uploads, users
from .routers.dependencies import initialize_services, shutdown_services
from .core.config import (
    DATABASE_TYPE,
    ENVIRONMENT,
    RATE_LIMIT_ENABLED,
    RATE_LIMIT_PER_HOUR,
    RATE_LIMIT_PER_MINUTE,
    STORAGE_TYPE
)
from .core.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)

gateway = APIGateway()

# Setup middleware (CORS, logging, request ids, error handling)
gateway.setup_middleware()

gateway.register_router(uploads.router, tags=["Uploads"])
gateway.register_router(documents.router, tags=["Documents"])
gateway.register_router(files.router, tags=["Files"])
gateway.register_router(users.router, tags=["Users"])

gateway.register_health_endpoints()

app = gateway.get_app()


@app.on_event("startup")
async def startup_event():
    """Open storage and database clients."""
    logger.info("=" * 60)
    logger.info("Starting Loan Document Vault backend...")
    logger.info(f"  → Environment: {ENVIRONMENT}")
    logger.info(f"  → Storage Backend: {STORAGE_TYPE.upper()}")
    logger.info(f"  → Database Backend: {DATABASE_TYPE.upper()}")
    logger.info(f"  → Docs URL: {app.docs_url if app.docs_url else 'Disabled (production)'}")
    if RATE_LIMIT_ENABLED:
        logger.info(f"  → Upload rate limit: {RATE_LIMIT_PER_MINUTE}/minute, {RATE_LIMIT_PER_HOUR}/hour")

    await initialize_services()

    logger.info(f"  → Routers: {', '.join(gateway.routers)}")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Close storage and database clients."""
    logger.info("Shutting down Loan Document Vault backend...")
    await shutdown_services()
    logger.info("Shutdown complete")
