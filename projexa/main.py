"""
Projexa - Main Application

FastAPI backend with:
- PostgreSQL for structured data
- MongoDB for check reports and the reference text cache
- Gemini (OpenAI-compatible API) for similarity screening
- JWT authentication with admin / guide / student roles

Run: uvicorn projexa.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from projexa.api import api_router
from projexa.core.config import get_settings
from projexa.core.logging import configure_logging
from projexa.db.postgres import init_schema, check_postgres_connection
from projexa.db.mongodb import init_mongo_indexes, check_mongo_connection

logger = logging.getLogger(__name__)

settings = get_settings()

# Create FastAPI app
app = FastAPI(
    title="Projexa",
    description="""
    Capstone project management for academic departments.

    ## Features
    - **Authentication**: JWT-based auth for admins, guides and students
    - **Admins**: Users, department projects, groups, phases and rubrics
    - **Students**: Projects, phase submissions with automated checks
    - **Guides**: Review submissions, award marks (group marking)
    - **Checks**: AI similarity screening and rubric presence validation
    - **Leaderboard**: Department ranking with late penalties

    ## Databases
    - PostgreSQL: Structured data (users, projects, phases, submissions)
    - MongoDB: Documents (similarity reports, rubric reports, reference text)
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Configure logging, create missing tables and MongoDB indexes."""
    configure_logging()
    try:
        init_schema()
    except Exception as e:
        logger.error("Relational schema initialization failed: %s", e)
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Projexa", "docs": "/docs"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    postgres_ok = check_postgres_connection()
    mongo_ok = check_mongo_connection()

    return {
        "status": "healthy" if postgres_ok and mongo_ok else "degraded",
        "postgres": "connected" if postgres_ok else "disconnected",
        "mongodb": "connected" if mongo_ok else "disconnected"
    }
