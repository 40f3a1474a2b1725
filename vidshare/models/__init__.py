from vidshare.models.video import Video, VIDEO_SCHEMA_VERSION

__all__ = ["Video", "VIDEO_SCHEMA_VERSION"]
