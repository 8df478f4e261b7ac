"""
Sarkari Pulse — FastAPI Application Entry Point
Scheme browsing API, scrape trigger and run-event relay.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sarkari_pulse.config import get_settings
from sarkari_pulse.utils.rate_limiter import RateLimiter
from sarkari_pulse.utils.logger import logger

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = get_settings()
    logger.info(f"🚀 Sarkari Pulse starting in {settings.app_env} mode...")
    logger.info(f"🗄️ Store backend: {settings.store_backend}")
    if settings.store_backend == "supabase":
        logger.info(f"🗄️ Supabase: {'✅' if settings.has_supabase_config else '❌'}")
    logger.info(f"🌐 Headless browser: {'ON' if settings.browser_enabled else 'OFF'}")
    logger.info(f"📋 Default strategies: {', '.join(settings.default_strategy_names)}")

    yield

    logger.info("👋 Sarkari Pulse shutting down...")


app = FastAPI(
    title="Sarkari Pulse",
    description="Government scheme aggregator — scrape, normalize and serve Indian government schemes.",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Middleware Stack ---
app.add_middleware(RateLimiter, requests_per_minute=get_settings().api_requests_per_minute)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Error Handler ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": "Something went wrong. Please try again later.",
            "path": str(request.url.path),
        },
    )


# --- Health Check ---
@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "healthy",
        "service": "Sarkari Pulse",
        "version": VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    settings = get_settings()
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "services": {
            "store_backend": settings.store_backend,
            "supabase": settings.has_supabase_config,
            "headless_browser": settings.browser_enabled,
        },
    }


# --- Register Routers ---
from sarkari_pulse.api import events, schemes

app.include_router(schemes.router, prefix="/api/schemes", tags=["Schemes"])
app.include_router(events.router, tags=["Events"])


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "sarkari_pulse.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )
