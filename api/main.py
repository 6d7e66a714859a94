"""
Fire22 Back Office - Main FastAPI Application.

JSON API over the event-driven orchestration core: external event
ingestion, business processes and workflow lookups.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from api.dependencies import shutdown_dependencies
from api.routes import external_events, health, processes, workflows
from core.domain.errors import (
    Fire22Error,
    MappingError,
    ProcessFailedError,
    ValidationError,
    WorkflowNotFoundError,
)


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown_dependencies()


app = FastAPI(
    title="Fire22 Back Office - Orchestration API",
    description="""
    Event-driven business process orchestration.

    Features:
    - External event ingestion (Fantasy402, Telegram)
    - Customer deposits, agent bet placement, customer onboarding
    - Event-triggered workflows
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST LOGGING MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing."""
    start_time = time.time()

    logger.info(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration = time.time() - start_time
    response.headers["X-Process-Time"] = f"{duration:.3f}"

    logger.info(
        f"← {request.method} {request.url.path} "
        f"[{response.status_code}] ({duration:.3f}s)"
    )

    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(ProcessFailedError)
async def process_failed_handler(request: Request, exc: ProcessFailedError):
    logger.warning(f"Process {exc.result.process_id} failed: {exc.result.error}")
    return JSONResponse(status_code=422, content=exc.result.to_dict())


@app.exception_handler(MappingError)
async def mapping_error_handler(request: Request, exc: MappingError):
    logger.warning(f"Malformed {exc.external_type} event {exc.event_id}: {exc}")
    return JSONResponse(
        status_code=422,
        content={**exc.to_dict(), "external_type": exc.external_type, "event_id": exc.event_id},
    )


@app.exception_handler(WorkflowNotFoundError)
async def workflow_not_found_handler(request: Request, exc: WorkflowNotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(Fire22Error)
async def domain_error_handler(request: Request, exc: Fire22Error):
    logger.error(f"Domain error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={**exc.to_dict(), "path": request.url.path})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "path": request.url.path
        }
    )


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(
    health.router,
    tags=["Health"]
)

app.include_router(
    external_events.router,
    prefix="/api/v1/external-events",
    tags=["External Events"]
)

app.include_router(
    processes.router,
    prefix="/api/v1/processes",
    tags=["Processes"]
)

app.include_router(
    workflows.router,
    prefix="/api/v1/workflows",
    tags=["Workflows"]
)


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "message": "Fire22 Back Office - Orchestration API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
