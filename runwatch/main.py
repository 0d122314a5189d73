"""
RunWatch - FastAPI Application Entry Point.

Triggers remote CI workflows and follows them to completion.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from runwatch.config import settings
from runwatch.api.routes import websocket, workflows
from runwatch.storage.memory import run_storage


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if not settings.GITHUB_TOKEN:
        logger.warning(
            f"GITHUB_TOKEN not set - workflow calls to {settings.GITHUB_HOST} will fail"
        )
    
    yield
    
    # Shutdown
    if workflows.active_calls:
        logger.warning(
            f"Shutting down with {len(workflows.active_calls)} call(s) still running; "
            f"their remote runs continue"
        )
    for orchestrator in list(workflows.active_calls.values()):
        orchestrator.cancel("server shutting down")
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## RunWatch API

Trigger a remote CI workflow and follow it until it finishes.

### How it works
- **Dispatch**: the workflow is triggered with a unique correlation token as input
- **Resolve**: recent runs are listed until one has a job whose name contains the token
- **Monitor**: each completed step is reported exactly once
- **Outcome**: the run's final conclusion decides success or failure

### Quick Start
1. Run a workflow: `POST /workflows/run`
2. Check a call: `GET /workflows/runs/{correlation_token}`
3. Stream steps: `WS /ws/subscribe/{correlation_token}`
4. Cancel: `POST /workflows/runs/{correlation_token}/cancel`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(workflows.router)
app.include_router(websocket.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "Dispatch remote CI workflows and follow them to completion",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "run": "/workflows/run",
            "calls": "/workflows/runs",
            "cancel": "/workflows/runs/{correlation_token}/cancel",
            "websocket_subscribe": "/ws/subscribe/{correlation_token}",
        },
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "github_host": settings.GITHUB_HOST,
        "active_calls": len(workflows.active_calls),
        "calls_count": len(run_storage),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
