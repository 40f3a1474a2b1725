"""
Upload pipeline: receive -> validate -> process -> persist.
Every file written for the request is tracked by a FileCleanup and removed unless the
request is accepted; the raw upload is always removed.
"""
import asyncio
import logging
from pathlib import Path
from fastapi import UploadFile
from sqlalchemy.orm import Session
from vidshare.config import Settings, get_settings
from vidshare.models.video import Video
from vidshare.services.errors import ClientInputError, UploadRejected
from vidshare.services.processor import VideoProcessor
from vidshare.services.storage import FileCleanup, generate_raw_filename, original_dir
from vidshare.services.validation import validate_content_type, validate_size, validate_title
from vidshare.services.video_store import create_video

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB


async def receive_upload(file: UploadFile, raw_path: Path, settings: Settings) -> int:
    """Stream the upload to raw_path, stopping as soon as the size ceiling is exceeded. Returns bytes written."""
    written = 0
    try:
        out = await asyncio.to_thread(raw_path.open, "wb")
        try:
            while chunk := await file.read(CHUNK_SIZE):
                written += len(chunk)
                validate_size(written, settings)
                await asyncio.to_thread(out.write, chunk)
        finally:
            await asyncio.to_thread(out.close)
    except OSError as e:
        logger.error("Could not write upload to %s: %s", raw_path, e)
        raise UploadRejected("Internal server error while receiving the video.", error=str(e)) from e
    return written


async def handle_upload(
    file: UploadFile | None,
    title: str | None,
    db: Session,
    processor: VideoProcessor,
    settings: Settings | None = None,
) -> Video:
    """Run one upload to a terminal state. Returns the stored Video or raises UploadRejected."""
    settings = settings or get_settings()

    if file is None or not file.filename:
        raise ClientInputError("No video file was sent or the file is invalid.")
    # type and declared size are checked before any byte hits the disk
    validate_content_type(file.content_type, settings)
    validate_size(getattr(file, "size", None), settings)

    raw_path = original_dir() / generate_raw_filename(file.filename)
    with FileCleanup() as cleanup:
        cleanup.register(raw_path)
        size = await receive_upload(file, raw_path, settings)
        clean_title = validate_title(title)

        logger.debug("Processing %s (%d bytes) with %s", raw_path.name, size, processor.name)
        media = await processor.process(raw_path, cleanup)

        video = await asyncio.to_thread(create_video, db, clean_title, raw_path, media)
        cleanup.keep(media.processed_path, media.thumbnail_path)

    logger.info("Accepted upload %s: %r -> %s", video.id, video.title, video.processed_filename)
    return video
