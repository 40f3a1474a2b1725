"""
FFmpeg commands for web playback: H.264/AAC MP4 with faststart, plus a single-frame thumbnail.
Runs as asyncio subprocesses so a request can transcode and grab the thumbnail at the same time.
"""
import asyncio
import logging
from pathlib import Path

from vidshare.config import get_settings
from vidshare.services.errors import ProcessingError

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 2000


def transcode_args(
    input_path: Path,
    output_path: Path,
    max_width: int = 1280,
    crf: int = 28,
    preset: str = "veryfast",
) -> list[str]:
    """Re-encode to H.264 + AAC in MP4, width capped (aspect kept), moov atom up front for streaming."""
    return [
        "-y",
        "-i", str(input_path),
        # -2 keeps height even (required by libx264)
        "-vf", f"scale='min({max_width},iw)':-2",
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", str(crf),
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-b:a", "128k",
        "-movflags", "+faststart",
        "-f", "mp4",
        str(output_path),
    ]


def thumbnail_args(
    input_path: Path,
    output_path: Path,
    at_seconds: float = 1.0,
    size: str = "320x180",
) -> list[str]:
    """Grab one frame near the start, scaled to a fixed size."""
    width, _, height = size.lower().partition("x")
    return [
        "-y",
        "-ss", str(at_seconds),
        "-i", str(input_path),
        "-frames:v", "1",
        "-vf", f"scale={width}:{height}",
        "-q:v", "2",
        str(output_path),
    ]


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def run_ffmpeg(args: list[str], timeout: float | None = None) -> None:
    """
    Run ffmpeg with the given arguments. Raises ProcessingError:
    client_fault=True when ffmpeg exits non-zero (input it cannot handle),
    client_fault=False when ffmpeg is missing or the run times out.
    Cancelling the awaiting task kills the ffmpeg process.
    """
    settings = get_settings()
    cmd = [settings.ffmpeg_binary, *args]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        logger.error("ffmpeg not found (%s); install FFmpeg or use processing_strategy=passthrough", settings.ffmpeg_binary)
        raise ProcessingError("Video processing is not available on this server.", error=str(e)) from e
    except OSError as e:
        logger.error("Could not start ffmpeg: %s", e)
        raise ProcessingError("Video processing is not available on this server.", error=str(e)) from e

    try:
        if timeout:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        else:
            _, stderr = await proc.communicate()
    except asyncio.TimeoutError:
        _kill(proc)
        await proc.wait()
        logger.error("ffmpeg timed out after %ss: %s", timeout, " ".join(cmd))
        raise ProcessingError("Video processing timed out.", error=f"ffmpeg timed out after {timeout}s")
    except asyncio.CancelledError:
        _kill(proc)
        await proc.wait()
        raise

    if proc.returncode != 0:
        detail = (stderr or b"").decode(errors="ignore")[-STDERR_TAIL_CHARS:]
        logger.error("ffmpeg exited with %s: %s", proc.returncode, detail)
        raise ProcessingError(
            "The video could not be processed. It may be corrupt or use an unsupported codec.",
            client_fault=True,
            error=detail,
        )


def _has_output(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def _ensure_output(path: Path, what: str) -> None:
    if not _has_output(path):
        raise ProcessingError(
            f"The {what} could not be generated from this video.",
            client_fault=True,
            error=f"ffmpeg produced no output at {path.name}",
        )


async def transcode_video(input_path: Path, output_path: Path) -> None:
    settings = get_settings()
    args = transcode_args(
        input_path,
        output_path,
        max_width=settings.transcode_max_width,
        crf=settings.transcode_crf,
        preset=settings.transcode_preset,
    )
    await run_ffmpeg(args, timeout=settings.ffmpeg_timeout_seconds)
    _ensure_output(output_path, "playable video")
    logger.info("Transcode completed for %s", input_path.name)


async def generate_thumbnail(input_path: Path, output_path: Path) -> None:
    """Grab the frame at thumbnail_at_seconds, or the first frame when the clip is shorter than that."""
    settings = get_settings()
    at_seconds = settings.thumbnail_at_seconds
    await run_ffmpeg(
        thumbnail_args(input_path, output_path, at_seconds=at_seconds, size=settings.thumbnail_size),
        timeout=settings.ffmpeg_timeout_seconds,
    )
    if at_seconds > 0 and not _has_output(output_path):
        # seeking past the end exits 0 without writing a frame
        logger.info("No frame at %ss in %s, using the first frame", at_seconds, input_path.name)
        await run_ffmpeg(
            thumbnail_args(input_path, output_path, at_seconds=0, size=settings.thumbnail_size),
            timeout=settings.ffmpeg_timeout_seconds,
        )
    _ensure_output(output_path, "thumbnail")
    logger.info("Thumbnail generated for %s", input_path.name)
