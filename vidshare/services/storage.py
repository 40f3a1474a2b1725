"""
Storage layout for uploaded videos: originals (transient), processed assets and thumbnails.
Processed assets and thumbnails are served read-only under fixed URL prefixes.
"""
import logging
import time
import uuid
from pathlib import Path

from vidshare.config import get_settings
from vidshare.services.errors import StorageError

logger = logging.getLogger(__name__)

PROCESSED_URL_PREFIX = "/uploads/processed"
THUMBNAILS_URL_PREFIX = "/uploads/thumbnails"
PLACEHOLDER_THUMBNAIL = "/placeholder-thumbnail.svg"

RAW_FILENAME_PREFIX = "video"
DEFAULT_EXTENSION = ".mp4"


def upload_root() -> Path:
    settings = get_settings()
    if settings.upload_root:
        return Path(settings.upload_root)
    return Path(__file__).resolve().parent.parent.parent / "uploads"


def original_dir() -> Path:
    return upload_root() / "originals"


def processed_dir() -> Path:
    return upload_root() / "processed"


def thumbnails_dir() -> Path:
    return upload_root() / "thumbnails"


def storage_dirs() -> list[Path]:
    return [original_dir(), processed_dir(), thumbnails_dir()]


def ensure_storage_dirs() -> None:
    """Create every storage directory. Raises StorageError; callers treat it as fatal."""
    for path in storage_dirs():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {path}: {e}") from e
        logger.info("Storage directory ready: %s", path)


def generate_raw_filename(client_filename: str | None) -> str:
    """video-<epoch ms>-<random hex><ext>; unique per upload, extension kept from the client name."""
    ext = Path(client_filename or "").suffix.lower() or DEFAULT_EXTENSION
    if len(ext) > 10:
        ext = DEFAULT_EXTENSION
    stamp = int(time.time() * 1000)
    return f"{RAW_FILENAME_PREFIX}-{stamp}-{uuid.uuid4().hex}{ext}"


def processed_url(filename: str) -> str:
    return f"{PROCESSED_URL_PREFIX}/{filename}"


def thumbnail_url(filename: str) -> str:
    return f"{THUMBNAILS_URL_PREFIX}/{filename}"


def remove_file(path: Path) -> bool:
    """Best-effort delete. Returns True if the file is gone afterwards; failures are logged only."""
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)
        return False


class FileCleanup:
    """
    Files created while handling one upload request.

    Every file is registered as soon as it is (about to be) written. On exit all
    registered files are removed except those marked with keep(), which only
    happens when the request is accepted.
    """

    def __init__(self):
        self._paths: list[Path] = []
        self._kept: set[Path] = set()

    def register(self, *paths: Path | None) -> None:
        for path in paths:
            if path is not None and path not in self._paths:
                self._paths.append(path)

    def keep(self, *paths: Path | None) -> None:
        for path in paths:
            if path is not None:
                self._kept.add(path)

    def run(self) -> None:
        for path in self._paths:
            if path not in self._kept:
                remove_file(path)

    def __enter__(self) -> "FileCleanup":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.run()
