"""
API Gateway

Builds the FastAPI application for the loan document vault: middleware
stack, upload rate limiting, routers and the health probes used by the
container platform.
"""
from typing import List, Optional
from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ..core.config import CORS_ORIGINS, ENVIRONMENT
from ..core.logging_config import get_logger
from ..middleware.rate_limit import limiter
from ..services.key_builder import STRUCTURED_ROOT
from .middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware
)

logger = get_logger(__name__)


class APIGateway:
    """
    Owns the FastAPI app and everything wired around the routers.

    The service container itself is opened by the startup hook in
    ``loandocs.main``; the health probes only read its state.
    """

    def __init__(
        self,
        title: str = "Loan Document Vault API",
        description: str = "Batch upload and lookup of loan documents across both storage layouts",
        version: str = "1.0.0",
        enable_docs: Optional[bool] = None
    ):
        """
        Args:
            title: OpenAPI title
            description: OpenAPI description
            version: Reported on ``/`` and in OpenAPI
            enable_docs: Serve /docs and /redoc (defaults to on outside production)
        """
        self.title = title
        self.version = version
        self.enable_docs = enable_docs if enable_docs is not None else ENVIRONMENT != "production"
        self.routers: List[str] = []

        self.app = FastAPI(
            title=title,
            description=description,
            version=version,
            docs_url="/docs" if self.enable_docs else None,
            redoc_url="/redoc" if self.enable_docs else None
        )

        # slowapi reads the limiter from app state when a decorated route runs
        self.app.state.limiter = limiter
        self.app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    def setup_middleware(self, cors_origins: Optional[List[str]] = None):
        """
        Install middleware. Outermost first: CORS, request id, request
        logging, error handling.
        """
        self.app.add_middleware(ErrorHandlingMiddleware)
        self.app.add_middleware(RequestLoggingMiddleware)
        self.app.add_middleware(RequestIDMiddleware)

        origins = [origin.strip() for origin in (cors_origins or CORS_ORIGINS) if origin.strip()]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )
        logger.info(f"Middleware configured (CORS origins: {', '.join(origins)})")

    def register_router(self, router: APIRouter, prefix: str = "", tags: Optional[List[str]] = None):
        self.app.include_router(router, prefix=prefix, tags=tags or [])
        self.routers.append(", ".join(tags) if tags else prefix or "/")

    def register_health_endpoints(self):
        """
        ``/`` reports the service, ``/health`` whether the stores are open,
        ``/ready`` whether both stores answer a cheap query.
        """
        from ..routers.dependencies import get_container

        def _not_open(key: str) -> Optional[JSONResponse]:
            container = get_container()
            if container is None or not container.is_open:
                logger.warning("Probe failed: services not initialized")
                return JSONResponse(status_code=503, content={key: False, "reason": "Services not initialized"})
            return None

        @self.app.get("/")
        async def root():
            return {
                "message": f"{self.title} is running",
                "version": self.version,
                "status": "healthy"
            }

        @self.app.get("/health")
        async def health_check():
            failure = _not_open("healthy")
            if failure is not None:
                return failure
            container = get_container()
            return {
                "status": "healthy",
                "storage": type(container.storage).__name__,
                "database": type(container.db).__name__
            }

        @self.app.get("/ready")
        async def readiness_check():
            failure = _not_open("ready")
            if failure is not None:
                return failure
            container = get_container()
            try:
                await container.db.distinct_loan_ids()
                await container.storage.list_objects(f"{STRUCTURED_ROOT}/", delimiter="/")
            except Exception as e:
                logger.error(f"Readiness check failed: {e}", exc_info=True)
                return JSONResponse(status_code=503, content={"ready": False, "reason": str(e)})
            return {"ready": True}

    def get_app(self) -> FastAPI:
        return self.app
