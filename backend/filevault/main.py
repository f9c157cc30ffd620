"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from filevault.config import settings
from filevault.database import engine, get_db
from filevault.dependencies import (
    close_collaborators,
    forget_on_sign_out,
    get_auth_client,
    get_object_store,
    registry,
)
from filevault.logging_config import setup_logging
from filevault.models import Base
from filevault.services.errors import FileVaultError

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and wire collaborators on startup, release connections on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    get_object_store()
    stop_watching = None
    try:
        stop_watching = forget_on_sign_out(get_auth_client(), registry)
    except HTTPException:
        logger.warning("Auth service not configured (SUPABASE_URL / SUPABASE_ANON_KEY); sign-in is unavailable")
    logger.info(f"FileVault API ready (storage: {settings.FILE_STORAGE_TYPE})")

    yield

    # Cleanup
    if stop_watching is not None:
        stop_watching()
    await close_collaborators()
    await engine.dispose()


app = FastAPI(
    title="FileVault API",
    version="1.0.0",
    description="Personal file storage: sign in, upload, list, download and delete files.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FileVaultError)
async def filevault_error_handler(request: Request, exc: FileVaultError):
    """Render domain errors as a readable notice the client can show as-is."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "operation": exc.operation},
    )


@app.get("/api/health")
async def health_check():
    """Verify API and database connectivity."""
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
    except Exception as e:
        return {"status": "error", "database": str(e)}


# Register routers
from filevault.routes.auth import router as auth_router
from filevault.routes.files import router as files_router
from filevault.routes.folders import router as folders_router
from filevault.routes.storage import router as storage_router
app.include_router(auth_router)
app.include_router(files_router)
app.include_router(folders_router)
app.include_router(storage_router)


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("filevault.main:app", host="0.0.0.0", port=settings.API_PORT)
