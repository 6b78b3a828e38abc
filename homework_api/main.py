from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import os
import logging
from contextlib import asynccontextmanager

from .database import get_db, check_database_connection, create_tables
from .errors import register_error_handlers
from .auth import auth_router
from .school import school_router
from .assignments import assignments_router
from .submissions import submissions_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and verify the database before serving."""
    logger.info("Starting up Homework Review API...")
    # Tests provide their own database
    if os.getenv("PYTEST_CURRENT_TEST") is not None:
        logger.info("Skipping database setup during tests")
    else:
        if check_database_connection():
            logger.info("Database connection successful")
        else:
            logger.error("Database connection failed")
            raise Exception("Cannot connect to database")
        create_tables()
    yield
    logger.info("Shutting down Homework Review API...")

app = FastAPI(
    title="Homework Review API",
    description="Homework submission, AI review and class management API",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routers
app.include_router(auth_router)
app.include_router(school_router)
app.include_router(assignments_router)
app.include_router(submissions_router)

@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Homework Review API", "version": VERSION}

@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint with database connectivity test."""
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "version": VERSION
        }
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "version": VERSION
        }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
