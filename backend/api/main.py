"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import cafes
from db import init_db
from settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app
app = FastAPI(
    title="Coffee Discover API",
    description="Nearby café discovery backed by a local store and Google Places",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Include routers
app.include_router(cafes.router, prefix="/api", tags=["cafes"])


@app.on_event("startup")
def startup_event():
    """Initialize database tables on startup."""
    init_db()
    if not settings.GOOGLE_API_KEY:
        logging.getLogger(__name__).warning(
            "GOOGLE_API_KEY not set; Discover will only serve cafés already in the store."
        )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Coffee Discover API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
