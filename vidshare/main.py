import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from vidshare import models  # noqa: F401 - register tables
from vidshare.config import get_settings
from vidshare.database import Base, engine
from vidshare.routers import videos
from vidshare.services.processor import get_processor
from vidshare.services.retention import retention_sweeper
from vidshare.services.storage import (
    PROCESSED_URL_PREFIX,
    THUMBNAILS_URL_PREFIX,
    ensure_storage_dirs,
    processed_dir,
    thumbnails_dir,
)

logger = logging.getLogger(__name__)


def _public_dir() -> Path:
    settings = get_settings()
    if settings.public_dir:
        return Path(settings.public_dir)
    return Path(__file__).resolve().parent.parent / "public"


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    _configure_logging()
    ensure_storage_dirs()
    Base.metadata.create_all(bind=engine)
    logger.info("Processing strategy: %s", get_processor().name)

    task = None
    if settings.retention_enabled:
        task = asyncio.create_task(retention_sweeper(settings))
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


def create_app() -> FastAPI:
    app = FastAPI(title="vidshare", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(videos.router)

    # Read-only asset mounts, 1:1 with the storage directories
    app.mount(PROCESSED_URL_PREFIX, StaticFiles(directory=processed_dir(), check_dir=False), name="processed")
    app.mount(THUMBNAILS_URL_PREFIX, StaticFiles(directory=thumbnails_dir(), check_dir=False), name="thumbnails")

    @app.get("/{full_path:path}", include_in_schema=False)
    def spa(full_path: str):
        """Serve a file from public/ if it exists, otherwise the single-page index.html."""
        base = _public_dir().resolve()
        if full_path:
            try:
                candidate = (base / full_path).resolve()
                candidate.relative_to(base)  # raises ValueError if path escaped
            except (ValueError, OSError):
                candidate = None
            if candidate is not None and candidate.is_file():
                return FileResponse(candidate)
        index = base / "index.html"
        if not index.is_file():
            return JSONResponse(status_code=404, content={"message": "Front end not found."})
        return FileResponse(index)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("vidshare.main:app", host=settings.host, port=settings.port)
