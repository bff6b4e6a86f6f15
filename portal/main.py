"""Main FastAPI application entry point.

Provides CORS, health endpoints, the portal session flow (role choice,
sign-in, sign-out), the learner catalog and the admin console CRUD.
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from datetime import datetime

from portal.errors import PortalError

# Import routers
from portal.routers import health, session, catalog, admin

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Application metadata
APP_NAME = "Training Portal API"
VERSION = "1.0.0"
DESCRIPTION = """
Training Portal Backend API

## Features

* **Sessions**: Pick a role (admin or student), sign in, sign out
* **Catalog**: Browse courses, watch ordered lessons, mark them completed
* **Completion**: Celebrate a course once every lesson is done
* **Admin console**: Create, edit and delete courses and lessons
"""

# Initialize FastAPI app
app = FastAPI(
    title=APP_NAME,
    description=DESCRIPTION,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware configuration
cors_origins = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def _error_body(request, message: str) -> dict:
    return {
        "success": False,
        "error": message,
        "timestamp": datetime.utcnow().isoformat(),
        "path": str(request.url)
    }


# Global exception handlers


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions with consistent error format"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.detail)
    )


@app.exception_handler(PortalError)
async def portal_exception_handler(request, exc):
    """Report portal errors with their user-facing message"""
    logger.warning(
        f"{type(exc).__name__} on {request.url.path}: {exc.message}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.message)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body(request, "Internal server error")
    )

# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(session.router, prefix="/api/v1")
app.include_router(catalog.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "name": APP_NAME,
        "version": VERSION,
        "status": "running",
        "environment": os.getenv("ENVIRONMENT", "development"),
        "timestamp": datetime.utcnow().isoformat(),
        "docs": "/docs",
        "health": "/api/v1/health"
    }


@app.on_event("startup")
async def startup_event():
    """Application startup tasks"""
    logger.info(f"Starting {APP_NAME} v{VERSION}")
    logger.info(f"Environment: {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"CORS Origins: {cors_origins}")
    if os.getenv("AUTO_MIGRATE", "false").lower() in {"1", "true", "yes"}:
        try:
            import subprocess
            logger.info("AUTO_MIGRATE enabled: running 'alembic upgrade head'")
            result = subprocess.run(
                ["alembic", "upgrade", "head"],
                cwd=os.path.join(os.path.dirname(__file__), ".."),
                capture_output=True,
                text=True,
                check=False,
            )
            if result.returncode != 0:
                logger.error(
                    "Alembic upgrade failed (code %s): %s\n%s",
                    result.returncode,
                    result.stdout,
                    result.stderr,
                )
            else:
                logger.info("Alembic migration applied successfully")
        except FileNotFoundError:
            logger.error(
                "Alembic not found - ensure it's installed in the environment"
            )


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown tasks"""
    logger.info(f"Shutting down {APP_NAME}")

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")

    uvicorn.run(
        "portal.main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info"
    )
