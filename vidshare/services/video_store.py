"""Metadata store for videos: insert, list newest first, delete all, public projection."""
import logging
from pathlib import Path
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from vidshare.models.video import VIDEO_SCHEMA_VERSION, Video
from vidshare.schemas.video import VideoPublic
from vidshare.services.errors import PersistenceError
from vidshare.services.processor import ProcessedMedia
from vidshare.services.storage import PLACEHOLDER_THUMBNAIL, processed_url, thumbnail_url

logger = logging.getLogger(__name__)


def create_video(db: Session, title: str, raw_path: Path, media: ProcessedMedia) -> Video:
    """Insert and commit one row. Raises PersistenceError (after rollback) on any database error."""
    video = Video(
        title=title,
        original_filename=raw_path.name,
        original_path=str(raw_path),
        processed_filename=media.processed_filename,
        processed_path=processed_url(media.processed_filename),
        thumbnail_filename=media.thumbnail_filename,
        thumbnail_path=thumbnail_url(media.thumbnail_filename) if media.thumbnail_filename else PLACEHOLDER_THUMBNAIL,
        schema_version=VIDEO_SCHEMA_VERSION,
    )
    try:
        db.add(video)
        db.commit()
        db.refresh(video)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Could not save video metadata for %s: %s", media.processed_filename, e)
        raise PersistenceError("Internal server error while saving the video.", error=str(e)) from e
    return video


def list_videos(db: Session) -> list[Video]:
    # id breaks upload_date ties so repeated listings agree
    return db.query(Video).order_by(Video.upload_date.desc(), Video.id.desc()).all()


def delete_all_videos(db: Session) -> int:
    count = db.query(Video).delete(synchronize_session=False)
    db.commit()
    return count


def to_public(video: Video) -> VideoPublic | None:
    """
    Project a row to its public fields. Version-1 (flat) rows are upgraded on the fly;
    rows of an unknown version or without a processed asset are rejected (None).
    """
    version = video.schema_version or 1
    if version > VIDEO_SCHEMA_VERSION:
        logger.warning("Skipping video %s with unknown schema version %s", video.id, version)
        return None

    path = video.processed_path
    if not path and video.processed_filename:
        path = processed_url(video.processed_filename)
    if not path:
        logger.warning("Skipping video %s without a processed asset", video.id)
        return None

    if version == 1 or not video.thumbnail_path:
        thumbnail = thumbnail_url(video.thumbnail_filename) if video.thumbnail_filename else PLACEHOLDER_THUMBNAIL
    else:
        thumbnail = video.thumbnail_path

    return VideoPublic(
        id=video.id,
        title=video.title,
        path=path,
        thumbnail_path=thumbnail,
        upload_date=video.upload_date,
    )


def list_public_videos(db: Session) -> list[VideoPublic]:
    return [p for p in (to_public(v) for v in list_videos(db)) if p is not None]
