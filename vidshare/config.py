from typing import Literal
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./vidshare.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Storage: base folder for originals/processed/thumbnails (empty = <repo>/uploads)
    upload_root: str = ""

    # Static single-page front end (empty = <repo>/public)
    public_dir: str = ""

    # Upload limits
    max_upload_mb: int = 15
    allowed_video_types: list[str] = [
        "video/mp4",
        "video/webm",
        "video/ogg",
        "video/quicktime",
        "video/x-msvideo",
        "video/x-matroska",
    ]

    # "passthrough" = store the upload unchanged; "transcode" = FFmpeg H.264/AAC MP4 + thumbnail
    processing_strategy: Literal["passthrough", "transcode"] = "transcode"

    # FFmpeg
    ffmpeg_binary: str = "ffmpeg"
    transcode_max_width: int = 1280
    transcode_crf: int = 28
    transcode_preset: str = "veryfast"
    thumbnail_size: str = "320x180"
    thumbnail_at_seconds: float = 1.0
    ffmpeg_timeout_seconds: float = 900  # 0 = no timeout

    # Retention sweeper: wipes all videos on a fixed schedule
    retention_enabled: bool = True
    retention_interval_hours: int = 6
    retention_timezone: str = "America/Sao_Paulo"

    class Config:
        env_file = ".env"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
