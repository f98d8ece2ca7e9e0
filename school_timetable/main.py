"""
Main FastAPI application
School Timetable Scheduler
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from school_timetable.config import PORT, configure_logging
from school_timetable.models.database import close_db, init_db
from school_timetable.routes import timetables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging()
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully!")
    yield
    logger.info("Shutting down...")
    close_db()


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="School Timetable Scheduler",
        description="Greedy constraint-based weekly timetable generation for schools",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None,
    )

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(timetables.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "OK",
            "message": "School Timetable Scheduler is running"
        }

    @app.get("/")
    async def root():
        """Root endpoint with API info"""
        return {
            "name": "School Timetable Scheduler",
            "version": "1.0.0",
            "endpoints": {
                "health": "/health",
                "generate_timetable": "POST /api/timetable/generate",
                "validate": "GET /api/timetable/validate",
                "suggestions": "GET /api/timetable/suggestions",
                "timetable": "GET /api/timetable",
                "detailed": "GET /api/timetable/detailed",
                "versions": "GET /api/timetable/versions?class_id=",
                "activate_version": "POST /api/timetable/versions/{version_id}/activate",
                "docs": "/docs",
            }
        }

    @app.exception_handler(404)
    async def not_found_handler(request, exc):
        detail = getattr(exc, "detail", None) or "Endpoint not found"
        return JSONResponse(status_code=404, content={"detail": detail})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
