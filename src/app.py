"""Main FastAPI application module.

This module initializes the FastAPI application and registers all route handlers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.logging_config import setup_logging
from config import (
    CORS_ALLOWED_ORIGINS,
    API_HOST,
    API_PORT,
)
from api.routes import auth, corporate, dashboards, schools, signup

# Setup logging
setup_logging()

# Initialize FastAPI application
app = FastAPI(
    title="Gen-Connect API",
    description="Accounts, invitation links and role-gated dashboards for the Gen-Connect mentoring program.",
    version="1.0.0",
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(signup.router)
app.include_router(corporate.router)
app.include_router(schools.router)
app.include_router(dashboards.router)


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returning API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": "Gen-Connect API",
        "version": "1.0.0",
        "description": "Accounts, invitation links and role-gated dashboards.",
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

    print("Starting Gen-Connect API server...")
    server_url = f"http://{API_HOST}:{API_PORT}"
    print(f"Server: {server_url}")
    print(f"API docs: {server_url}/docs")
    print()

    # reload=True enables auto-reload on code changes
    uvicorn.run("app:app", host=API_HOST, port=API_PORT, reload=True)
