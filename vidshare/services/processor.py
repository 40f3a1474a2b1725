"""
Video processing strategies. Chosen once per deployment (settings.processing_strategy):
- passthrough: copy the upload unchanged into processed storage, no thumbnail.
- transcode: FFmpeg re-encode + thumbnail, run concurrently and joined.
"""
import asyncio
import logging
import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Awaitable, Callable

from vidshare.config import get_settings
from vidshare.services.errors import ProcessingError
from vidshare.services.ffmpeg_media import generate_thumbnail, transcode_video
from vidshare.services.storage import FileCleanup, processed_dir, remove_file, thumbnails_dir

logger = logging.getLogger(__name__)

MediaStep = Callable[[Path, Path], Awaitable[None]]


@dataclass
class ProcessedMedia:
    processed_path: Path
    thumbnail_path: Path | None = None

    @property
    def processed_filename(self) -> str:
        return self.processed_path.name

    @property
    def thumbnail_filename(self) -> str | None:
        return self.thumbnail_path.name if self.thumbnail_path else None


class VideoProcessor:
    name = "base"

    async def process(self, raw_path: Path, cleanup: FileCleanup) -> ProcessedMedia:
        """Turn the raw upload into a servable asset. Output files are registered with cleanup before writing."""
        raise NotImplementedError


class PassthroughProcessor(VideoProcessor):
    name = "passthrough"

    async def process(self, raw_path: Path, cleanup: FileCleanup) -> ProcessedMedia:
        target = processed_dir() / raw_path.name
        cleanup.register(target)
        try:
            await asyncio.to_thread(shutil.copyfile, raw_path, target)
        except OSError as e:
            logger.error("Copy of %s into processed storage failed: %s", raw_path.name, e)
            raise ProcessingError("Could not store the uploaded video.", error=str(e)) from e
        remove_file(raw_path)
        return ProcessedMedia(processed_path=target)


class TranscodeProcessor(VideoProcessor):
    name = "transcode"

    PROCESSED_SUFFIX = "-processed.mp4"
    THUMBNAIL_SUFFIX = "-thumb.jpg"

    def __init__(self, transcode: MediaStep = transcode_video, thumbnail: MediaStep = generate_thumbnail):
        self._transcode = transcode
        self._thumbnail = thumbnail

    def output_paths(self, raw_path: Path) -> ProcessedMedia:
        """Output names derive from the (already unique) raw name, so concurrent uploads never collide."""
        stem = raw_path.stem
        return ProcessedMedia(
            processed_path=processed_dir() / f"{stem}{self.PROCESSED_SUFFIX}",
            thumbnail_path=thumbnails_dir() / f"{stem}{self.THUMBNAIL_SUFFIX}",
        )

    async def process(self, raw_path: Path, cleanup: FileCleanup) -> ProcessedMedia:
        media = self.output_paths(raw_path)
        cleanup.register(media.processed_path, media.thumbnail_path)

        tasks = [
            asyncio.create_task(self._transcode(raw_path, media.processed_path)),
            asyncio.create_task(self._thumbnail(raw_path, media.thumbnail_path)),
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException as e:
            # first failure wins; stop the sibling before cleanup touches its output
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if isinstance(e, ProcessingError) or not isinstance(e, Exception):
                raise
            logger.exception("Unexpected error while processing %s", raw_path.name)
            raise ProcessingError("Video processing failed.", error=str(e)) from e

        remove_file(raw_path)
        return media


@lru_cache
def build_processor(strategy: str) -> VideoProcessor:
    if strategy == PassthroughProcessor.name:
        return PassthroughProcessor()
    if strategy == TranscodeProcessor.name:
        return TranscodeProcessor()
    raise ValueError(f"Unknown processing strategy: {strategy}")


def get_processor() -> VideoProcessor:
    """FastAPI dependency: the deployment-wide processor."""
    return build_processor(get_settings().processing_strategy)
