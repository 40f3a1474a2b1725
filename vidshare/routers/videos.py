"""
Video upload and listing. No accounts: anyone can upload and everyone sees every video.
Processed files and thumbnails themselves are served by the static mounts in main.
"""
import logging
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from vidshare.database import get_db
from vidshare.services.errors import UploadRejected
from vidshare.services.processor import VideoProcessor, get_processor
from vidshare.services.video_store import list_public_videos, to_public
from vidshare.services.video_upload import handle_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["videos"])


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_video(
    video: UploadFile | None = File(None),
    title: str | None = Form(None),
    db: Session = Depends(get_db),
    processor: VideoProcessor = Depends(get_processor),
):
    """
    Upload a video (multipart: `video` file, `title` text).
    201 {message, video}; 400 {message} for bad input; 500 {message, error} for server faults.
    """
    try:
        item = await handle_upload(video, title, db, processor)
    except UploadRejected as e:
        logger.info("Upload rejected (%s): %s", e.status_code, e.message)
        return JSONResponse(status_code=e.status_code, content=e.to_content())
    except Exception as e:
        logger.exception("Unexpected error during video upload")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error while uploading the video.", "error": str(e)},
        )

    public = to_public(item)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": "Video uploaded successfully!", "video": public.to_json()},
    )


@router.get("/videos")
def list_videos(db: Session = Depends(get_db)):
    """All videos, newest first: [{_id, title, path, thumbnailPath, uploadDate}]."""
    try:
        items = list_public_videos(db)
    except SQLAlchemyError as e:
        logger.error("Could not list videos: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error while fetching videos.", "error": str(e)},
        )
    return [v.to_json() for v in items]
