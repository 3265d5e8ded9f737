"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings
from shared.utils.exceptions import KaiError, OrchestrationError, RunNotFoundError
from shared.utils.logging import setup_logging
from kai_orchestrator.api.routes import error_response, router

# Setup logging
setup_logging(
    log_level=settings.log_level,
    log_file=settings.log_file,
    config_file=settings.log_config_file,
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="kAI Routing & Orchestration API",
    description="Message routing, intention analysis and multi-agent orchestration for kAI",
    version=settings.app_version,
)

# The browser client calls these endpoints directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


@app.exception_handler(RunNotFoundError)
async def run_not_found_handler(request: Request, exc: RunNotFoundError):
    return error_response(404, str(exc), "run_not_found")


@app.exception_handler(OrchestrationError)
async def orchestration_error_handler(request: Request, exc: OrchestrationError):
    logger.warning(f"Orchestration request rejected: {str(exc)}")
    return error_response(409, str(exc), "orchestration_conflict")


@app.exception_handler(KaiError)
async def kai_error_handler(request: Request, exc: KaiError):
    logger.error(f"Unhandled service error: {str(exc)}")
    return error_response(500, str(exc), type(exc).__name__)


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Run store backend: {settings.orchestrator.run_store}")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info(f"Shutting down {settings.app_name}")
