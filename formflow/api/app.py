"""
FastAPI application factory for FormFlow.

Creates and configures the FastAPI app, logging, and routes.

Run with:
    uvicorn formflow.api.app:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formflow.api.routes import configure_routes, router

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_FORMS_DIR = Path(__file__).parent.parent / "forms"


def _is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    forms_dir = Path(os.getenv("FORMS_DIR", str(DEFAULT_FORMS_DIR)))
    include_trace = _is_truthy(os.getenv("INCLUDE_TRACE"), default=False)
    if not forms_dir.exists():
        logger.warning("Forms directory %s does not exist; /forms will be empty", forms_dir)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("FormFlow backend starting up")
        logger.info("Forms directory: %s", forms_dir)
        logger.info("Trace in responses: %s", include_trace)
        yield
        logger.info("FormFlow backend shutting down")

    application = FastAPI(
        title="FormFlow",
        description="Conditional visibility engine for multi-step forms",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS: allow all origins in development
    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Configure routes with dependencies
    configure_routes(forms_dir=forms_dir, include_trace=include_trace)
    application.include_router(router, prefix="/api")

    return application


# Create the app instance (used by uvicorn)
app = create_app()
