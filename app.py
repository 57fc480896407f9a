"""
HashCertify FastAPI Application

This is the main FastAPI application entry point for HashCertify, a tool for
certifying that archived evidence files are byte-identical to what a hashing
run recorded in a manifest.

Example usage:
    # Start the server
    uvicorn app:app --host 0.0.0.0 --port 8000 --reload

    # Health check
    curl http://localhost:8000/health

    # Reconcile
    curl -F manifest=@hashes.txt -F archive=@evidence.zip \\
         http://localhost:8000/api/reconcile
"""

import os
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from core import __version__
from core.logging import setup_logging, get_logger, RequestLoggingMiddleware
from api.routes.reconcile import router as reconcile_router

logger = get_logger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:8000,http://127.0.0.1:8000"
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()]


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    tags_metadata = [
        {
            "name": "reconcile",
            "description": "Manifest against archive reconciliation"
        },
        {
            "name": "health",
            "description": "System health and status endpoints"
        }
    ]

    app = FastAPI(
        title="HashCertify",
        description="Certify archived evidence files against a manifest of SHA-256 digests",
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
        openapi_tags=tags_metadata
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=CORS_ORIGINS != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Include API routers
    app.include_router(reconcile_router)

    @app.get("/health", tags=["health"])
    async def health_check() -> JSONResponse:
        """
        Health check endpoint for monitoring and load balancer readiness.

        Example:
            >>> # GET /health
            >>> {"status": "healthy", "service": "hashcertify", "version": "0.1.0"}
        """
        health_data: Dict[str, Any] = {
            "status": "healthy",
            "service": "hashcertify",
            "version": __version__
        }
        return JSONResponse(content=health_data, status_code=200)

    logger.info("HashCertify application created")
    return app


# Create the main app instance
app = create_app()


if __name__ == "__main__":
    setup_logging(
        level=os.environ.get("HASHCERTIFY_LOG_LEVEL", "INFO"),
        format_type=os.environ.get("HASHCERTIFY_LOG_FORMAT", "json")
    )
    uvicorn.run(
        "app:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000"))
    )
