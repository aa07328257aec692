# =============================================================================
# ZAPP COMMESSE v1.0 - FASTAPI MAIN
# =============================================================================
# Applicazione FastAPI principale
# =============================================================================

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import config
from .dependencies import build_pipeline, close_pipeline, get_pipeline, set_pipeline
from .exceptions import CommesseException
from .routers import commesse
from .services.scheduler import (
    get_scadenze_scheduler_status,
    init_scadenze_scheduler,
    shutdown_scadenze_scheduler,
)
from .utils.response import error_response


logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger('commesse')


# =============================================================================
# LIFESPAN - Startup/Shutdown
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestisce startup e shutdown dell'applicazione."""
    logger.info("%s v%s - Avvio...", config.APP_NAME, config.VERSION)

    pipeline = build_pipeline()
    set_pipeline(pipeline)
    init_scadenze_scheduler(pipeline)

    yield

    shutdown_scadenze_scheduler()
    close_pipeline()
    logger.info("%s - Arresto", config.APP_NAME)


# =============================================================================
# APP FASTAPI
# =============================================================================

app = FastAPI(
    title="ZAPP COMMESSE API",
    description="Pipeline fasi commesse con aggiornamento ottimistico e notifiche",
    version=config.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"https?://.*",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROUTERS
# =============================================================================

API_PREFIX = "/api/v1"

app.include_router(commesse.router, prefix=API_PREFIX, tags=["Commesse"])


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """Endpoint root - info applicazione."""
    return {
        "app": config.APP_NAME,
        "version": config.VERSION,
        "status": "running",
        "docs": "/docs",
        "api": API_PREFIX
    }


@app.get("/health", tags=["Root"])
def health_check():
    """Health check endpoint."""
    try:
        pipeline = get_pipeline()
    except RuntimeError as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": str(e)}
        )
    return {
        "status": "healthy",
        "store": config.COMMESSE_STORE,
        "commesse": len(pipeline.cache.snapshot()),
        "notifiche_in_corso": pipeline.dispatcher.pending_count(),
        "scheduler_scadenze": get_scadenze_scheduler_status(),
    }


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(CommesseException)
async def commesse_exception_handler(request: Request, exc: CommesseException):
    """Errori di dominio: categoria esplicita nel campo code."""
    if exc.status_code >= 500:
        logger.warning("%s %s: %s", request.method, request.url.path, exc.to_dict())
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.detail, exc.code, **exc.extra)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handler globale per eccezioni non gestite."""
    logger.exception("Errore non gestito su %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc),
            "path": str(request.url)
        }
    )


# =============================================================================
# RUN (per sviluppo)
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "commesse.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
