"""Main FastAPI application with modularized routes."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.database import init_db
from api.routes import attempts, tests, users
from core.logging_setup import setup_console_logging

setup_console_logging()

app = FastAPI(title="Test Session API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database on startup."""
    init_db()


@app.get("/api/health")
def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


# Include routers
app.include_router(tests.router)
app.include_router(attempts.router)
app.include_router(users.router)
