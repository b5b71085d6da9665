"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filestore.config import settings
from filestore.services.file_storage import FileStorageService, get_file_storage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Make sure the storage root exists before serving."""
    # Honour dependency overrides so tests can point the app at their own root
    factory = app.dependency_overrides.get(get_file_storage, get_file_storage)
    storage = factory()
    await storage.ensure_root()
    logger.info(f"Storage root: {storage.storage_root}")
    yield


app = FastAPI(
    title="Content File Store API",
    version="1.0.0",
    description="Local content-addressed file storage with deduplication.",
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


@app.get("/api/health")
async def health_check(storage: FileStorageService = Depends(get_file_storage)):
    """Report whether the storage and temp directories are present."""
    root_ok = storage.storage_root.is_dir()
    return {
        "status": "ok" if root_ok else "error",
        "storage_root": str(storage.storage_root),
        "temp_root_exists": storage.temp_root.is_dir(),
    }


# Register routers
from filestore.routes.files import router as files_router
app.include_router(files_router)
