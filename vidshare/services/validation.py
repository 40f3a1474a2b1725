"""Upload acceptance rules: MIME allow-list, size ceiling, non-blank title."""
from vidshare.config import Settings, get_settings
from vidshare.services.errors import ClientInputError


def normalize_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def _allowed_extensions(allowed: list[str]) -> str:
    return ", ".join(t.split("/", 1)[-1] for t in allowed)


def validate_content_type(content_type: str | None, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    ct = normalize_content_type(content_type)
    if ct not in settings.allowed_video_types:
        raise ClientInputError(
            f"Unsupported file type. Only videos are allowed ({_allowed_extensions(settings.allowed_video_types)})."
        )
    return ct


def validate_size(size: int | None, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    if size is not None and size > settings.max_upload_bytes:
        raise ClientInputError(
            f"File is too large. The maximum allowed size is {settings.max_upload_mb} MB."
        )


def validate_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ClientInputError("Video title is required.")
    return cleaned
