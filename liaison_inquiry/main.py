"""Main FastAPI application"""
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from liaison_inquiry.config import get_settings
from liaison_inquiry.middleware.cors import setup_cors
from liaison_inquiry.middleware.error_handler import ErrorHandlerMiddleware
from contextlib import asynccontextmanager
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

# APScheduler setup
scheduler = None


def setup_scheduler():
    """Initialize the background scheduler that prunes the requirements cache"""
    global scheduler
    try:
        from apscheduler.schedulers.background import BackgroundScheduler
        from liaison_inquiry.services.requirements_cache import get_requirements_cache

        minutes = get_settings().cache_prune_minutes
        scheduler = BackgroundScheduler()

        scheduler.add_job(
            get_requirements_cache().prune,
            'interval',
            minutes=minutes,
            id='prune_requirements_cache',
            name='Drop expired form requirement cache entries',
            replace_existing=True
        )

        scheduler.start()
        logger.info(f"Background scheduler started - pruning requirements cache every {minutes} minutes")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully"""
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()


# Create FastAPI app with lifespan
app = FastAPI(
    title="Liaison Inquiry API",
    description="Renders Liaison SpectrumEMP inquiry forms and forwards submissions",
    version="0.6.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Setup CORS
setup_cors(app)

# Add error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Browser assets for the rendered form
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "liaison-inquiry", "scheduler": "running" if scheduler and scheduler.running else "stopped"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Liaison Inquiry API",
        "version": "0.6.0",
        "docs": "/docs"
    }

# Import and include routers
from liaison_inquiry.routers import credentials, forms, inquiry

app.include_router(inquiry.router, prefix="/api/inquiry", tags=["Inquiry Form"])
app.include_router(credentials.router, prefix="/api/admin/credentials", tags=["Credentials"])
app.include_router(forms.router, prefix="/api/admin/forms", tags=["Forms"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
