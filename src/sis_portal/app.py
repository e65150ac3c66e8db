"""Main FastAPI application module.

This module initializes the FastAPI application, installs the error handlers
and registers all route handlers.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sis_portal import __version__
from sis_portal.api.routes import (
    audit,
    auth,
    courses,
    grades,
    reservations,
    stats,
    students,
    subjects,
    users,
)
from sis_portal.config import API_HOST, API_PORT, CORS_ALLOWED_ORIGINS
from sis_portal.core.database import init_db
from sis_portal.core.exceptions import SISError
from sis_portal.core.logging_config import install_access_log, setup_logging

logger = logging.getLogger(__name__)

# Setup logging
setup_logging()

# Initialize FastAPI application
app = FastAPI(
    title="SIS Portal API",
    description="Backend API for the School Information System admin console.",
    version=__version__,
)

# Configure CORS middleware; the dashboard sends the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_access_log(app)


@app.exception_handler(SISError)
async def sis_error_handler(request: Request, exc: SISError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Register route handlers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(courses.router)
app.include_router(subjects.router)
app.include_router(students.router)
app.include_router(grades.router)
app.include_router(reservations.router)
app.include_router(audit.router)
app.include_router(stats.router)


@app.on_event("startup")
def startup_tasks() -> None:
    """Create missing tables."""
    init_db()


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": "SIS Portal API",
        "version": __version__,
        "description": "Backend API for the School Information System admin console.",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    logger.info("Starting SIS Portal API at %s (docs: %s/docs)", server_url, server_url)
    uvicorn.run("sis_portal.app:app", host=API_HOST, port=API_PORT, reload=True)
