"""
FastAPI application entry point for the job board backend.

This is the main app that:
- Initializes FastAPI with CORS
- Starts the in-process ingest queue for webhook messages
- Registers all API routers
- Provides health check endpoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobboard import database
from jobboard.config import settings
from jobboard.dependencies import process_ingest_log
from jobboard.services.task_queue import IngestTaskQueue
# Import API routers
from jobboard.api import admin, alerts, jobs, webhooks

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    
    On startup: create missing tables, start ingest workers
    On shutdown: drain the ingest queue, close database connections
    """
    # Startup
    logger.info("🚀 Starting job board API...")
    logger.info(f"📊 Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'configured'}")
    logger.info(f"🔧 Debug mode: {settings.debug}")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; inbound messages will be logged but not extracted")
    
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    
    app.state.ingest_queue = IngestTaskQueue(
        process_ingest_log,
        maxsize=settings.ingest_queue_size,
        workers=settings.ingest_workers,
    )
    await app.state.ingest_queue.start()
    
    yield
    
    # Shutdown
    logger.info("👋 Shutting down job board API...")
    await app.state.ingest_queue.stop(drain=True)
    await database.engine.dispose()


# Initialize FastAPI app
app = FastAPI(
    title="Job Board API",
    description="Job board with WhatsApp ingestion and moderation",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS
allowed_origins = [
    "http://localhost:3000",  # Local development
]

# Add production origins from environment variable
if settings.allowed_origins:
    allowed_origins.extend(origin.strip() for origin in settings.allowed_origins.split(',') if origin.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Simple health check endpoint."""
    queue = getattr(app.state, "ingest_queue", None)
    return {
        "status": "healthy",
        "service": "Job Board API",
        "version": "1.0.0",
        "ingest_queue_pending": queue.pending if queue else 0,
    }


# Root endpoint
@app.get("/")
async def root():
    """API root with basic info."""
    return {
        "message": "Job Board API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


# Register API routers
app.include_router(webhooks.router, prefix="/webhooks/whatsapp", tags=["webhooks"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])
