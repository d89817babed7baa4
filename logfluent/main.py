"""
LogFluent Insight - API Application
===================================

FastAPI application serving log upload, summarization and chat.

Run with: uvicorn logfluent.main:app
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from logfluent.config import get_settings
from logfluent.api.routes import router as api_router
from logfluent.core.log_store import get_log_store
from logfluent.core.llm_client import get_llm_client
from logfluent.utils.logging import setup_logging, get_logger, set_correlation_id

settings = get_settings()

setup_logging(
    service_name=settings.service_name,
    log_level=settings.log_level,
    json_output=settings.log_json
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.
    """
    logger.info(
        f"Starting {settings.service_name} v{settings.service_version}",
        extra={
            "version": settings.service_version,
            "store_provider": settings.store_provider.value,
            "llm_provider": settings.llm_provider.value
        }
    )
    
    store = get_log_store()
    llm = get_llm_client()
    await store.initialize()
    await llm.initialize()
    logger.info(f"LLM client initialized: {settings.llm_provider.value}")
    
    yield
    
    logger.info("Shutting down LogFluent API...")
    await llm.shutdown()
    await store.shutdown()
    logger.info("LogFluent API shutdown complete")


app = FastAPI(
    title="LogFluent Insight",
    description="AI-powered log summarization with follow-up chat",
    version=settings.service_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Middleware to extract or generate correlation ID."""
    correlation_id = request.headers.get("X-Correlation-ID")
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
    
    set_correlation_id(correlation_id)
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path},
        exc_info=True
    )
    
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "detail": str(exc) if settings.debug else None
        }
    )


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version
    }


@app.get("/ready", tags=["health"])
async def readiness_check():
    """Readiness check endpoint."""
    store = get_log_store()
    llm = get_llm_client()
    
    return {
        "status": "ready" if store.is_ready() and llm.is_ready() else "degraded",
        "service": settings.service_name,
        "store_provider": settings.store_provider.value,
        "store_ready": store.is_ready(),
        "llm_provider": settings.llm_provider.value,
        "llm_ready": llm.is_ready()
    }


app.include_router(api_router, prefix="/api/v1")


def run() -> None:
    """Console entry point."""
    import uvicorn
    
    uvicorn.run(
        "logfluent.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )


if __name__ == "__main__":
    run()
